"""Bundling of the built binary and distribution files into a zip package."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence
import glob
import os

from .archive import ArchiveArtifact, ArchiveConsole, ArchiveManager, entry_name
from .build_config import BuildConfig


class PackagingError(RuntimeError):
    """Raised when the package archive cannot be created."""


@dataclass(frozen=True, slots=True)
class PackageLayout:
    base_name: str
    binary: str

    @property
    def archive_name(self) -> str:
        return f"{self.base_name}.zip"


def package_layout(
    binary_name: str,
    *,
    version: str,
    target_os: str,
    target_arch: str,
) -> PackageLayout:
    """Return the archive base name and binary file name for a package.

    Without a version the archive is named after the binary alone.
    """

    base_name = binary_name
    if version:
        base_name = f"{binary_name}-{version}-{target_os}-{target_arch}"
    binary = f"{binary_name}.exe" if target_os == "windows" else binary_name
    return PackageLayout(base_name=base_name, binary=binary)


def expand_patterns(root_dir: Path, patterns: Iterable[str]) -> List[Path]:
    """Expand glob ``patterns`` relative to ``root_dir``; unmatched ones are skipped."""

    files: List[Path] = []
    for pattern in patterns:
        for match in sorted(glob.glob(pattern, root_dir=root_dir)):
            path = Path(match)
            if (root_dir / path).is_file() and path not in files:
                files.append(path)
    return files


class Packager:
    def __init__(self, console: ArchiveConsole, *, archive_manager: ArchiveManager | None = None) -> None:
        self._console = console
        self._archives = archive_manager or ArchiveManager(console)

    def create_package(self, config: BuildConfig, extra_dist: Sequence[str]) -> Path:
        """Zip the built binary and the files matched by ``extra_dist``.

        Matches outside the working directory are stored under their file
        name. A match sharing an entry name with an earlier file, or the
        archive itself, is left out.
        """

        root_dir = Path(config.workdir)
        layout = package_layout(
            config.binary_name(),
            version=config.version,
            target_os=config.target_os(),
            target_arch=config.target_arch(),
        )

        binary = Path(layout.binary)
        if not self._console.dry_run and not (root_dir / binary).is_file():
            raise PackagingError(f"Built binary '{root_dir / binary}' not found")

        target = root_dir / layout.archive_name
        taken = {entry_name(root_dir, binary)}
        files: List[Path] = []
        for path in expand_patterns(root_dir, extra_dist):
            name = entry_name(root_dir, path)
            if name in taken or os.path.normpath(root_dir / path) == os.path.normpath(target):
                continue
            taken.add(name)
            files.append(path)
        files.append(binary)

        try:
            return self._archives.create_archive(
                artifact=ArchiveArtifact(root_dir=root_dir, files=files, prefix=layout.base_name),
                target_path=target,
            )
        except OSError as exc:
            raise PackagingError(f"Writing {layout.archive_name} failed: {exc}") from exc


__all__ = [
    "PackageLayout",
    "Packager",
    "PackagingError",
    "expand_patterns",
    "package_layout",
]
