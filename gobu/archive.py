"""Zip archive creation for release packages."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Protocol, runtime_checkable
import os
import zipfile


@runtime_checkable
class ArchiveConsole(Protocol):
    """Minimal console interface required by :class:`ArchiveManager`."""

    dry_run: bool

    def info(self, message: str) -> None:
        ...

    def dry(self, message: str) -> None:
        ...


@dataclass(slots=True)
class ArchiveArtifact:
    """Files to package, stored relative to ``root_dir`` under ``prefix``."""

    root_dir: Path
    files: List[Path] = field(default_factory=list)
    prefix: str = ""


def entry_name(root_dir: Path, path: Path) -> str:
    """Return the archive name of ``path`` without a prefix.

    Files inside ``root_dir`` keep their relative path; any other file is
    stored under its bare file name.
    """

    root = Path(os.path.normpath(root_dir))
    source = Path(os.path.normpath(root / path))
    if source != root and source.is_relative_to(root):
        return source.relative_to(root).as_posix()
    return source.name


class ArchiveManager:
    """Create zip archives from a list of files."""

    def __init__(self, console: ArchiveConsole) -> None:
        self._console = console

    def create_archive(
        self,
        *,
        artifact: ArchiveArtifact,
        target_path: Path | str,
        overwrite: bool = True,
    ) -> Path:
        """Create a zip archive for *artifact* at *target_path*.

        Entries are named ``<prefix>/<entry_name>`` using forward slashes.
        Files are written in the order given. A failure midway leaves the
        partially written archive in place.
        """

        target = Path(target_path).expanduser()
        root_dir = Path(artifact.root_dir).expanduser()

        if self._console.dry_run:
            for path in artifact.files:
                self._console.dry(f"Would add {self._arcname(root_dir, path, artifact.prefix)}")
            self._console.dry(f"Would archive {len(artifact.files)} file(s) to {target}")
            return target

        if target.exists() and not overwrite:
            raise FileExistsError(f"Archive target '{target}' already exists")

        missing = [path for path in artifact.files if not (root_dir / path).is_file()]
        if missing:
            raise FileNotFoundError(f"Archive source file '{root_dir / missing[0]}' does not exist")

        target.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(
            target,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=9,
            allowZip64=True,
            strict_timestamps=False,
        ) as archive:
            for path in artifact.files:
                archive.write(root_dir / path, self._arcname(root_dir, path, artifact.prefix))

        self._console.info(f"Created {target}")
        return target

    @staticmethod
    def _arcname(root_dir: Path, path: Path, prefix: str) -> str:
        name = entry_name(root_dir, path)
        return f"{prefix}/{name}" if prefix else name


__all__ = [
    "ArchiveArtifact",
    "ArchiveConsole",
    "ArchiveManager",
    "entry_name",
]
