"""Mutable accumulator for one ``go build`` invocation."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List
import os
import platform

from .console import Console

GOOS_VARIABLE = "GOOS"
GOARCH_VARIABLE = "GOARCH"
DEFAULT_TOOL = "go"
DEFAULT_SUBCOMMAND = "build"
NAME_PLACEHOLDER = "%n"

_MACHINE_ARCHITECTURES: Dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def host_os() -> str:
    """Return the running platform in ``GOOS`` naming."""

    return platform.system().lower() or "unknown"


def host_arch() -> str:
    """Return the running machine architecture in ``GOARCH`` naming."""

    machine = platform.machine().lower()
    return _MACHINE_ARCHITECTURES.get(machine, machine or "unknown")


@dataclass
class BuildConfig:
    """Flags, environment and mode selections collected from applied traits.

    Flag lists only grow, except when an explicit override trait resets one of
    them wholesale. ``subcommand`` and ``tool_binary`` are last-write-wins.

    :meth:`set_env` also writes the variable into :data:`os.environ` so that
    helpers running later in this process see the same target platform. At
    most one instance should therefore be active per process.
    """

    version: str = ""
    workdir: Path = field(default_factory=Path.cwd)
    build_time: datetime = field(default_factory=lambda: datetime.now().astimezone())
    console: Console = field(default_factory=Console, repr=False, compare=False)
    link_flags: List[str] = field(default_factory=list)
    build_flags: List[str] = field(default_factory=list)
    compile_flags: List[str] = field(default_factory=list)
    environment: List[str] = field(default_factory=list)
    subcommand: str | None = None
    tool_binary: str | None = None
    output_name_pattern: str | None = None
    package_requested: bool = False
    _given_os: str | None = field(default=None, init=False, repr=False)
    _given_arch: str | None = field(default=None, init=False, repr=False)

    def add_link_flags(self, *flags: str) -> None:
        self.link_flags.extend(flags)

    def reset_link_flags(self) -> None:
        self.link_flags.clear()

    def add_build_flags(self, *flags: str) -> None:
        self.build_flags.extend(flags)

    def reset_build_flags(self) -> None:
        self.build_flags.clear()

    def add_compile_flags(self, *flags: str) -> None:
        self.compile_flags.extend(flags)

    def reset_compile_flags(self) -> None:
        self.compile_flags.clear()

    def add_variable(self, name: str, value: str) -> None:
        """Inject ``name=value`` into the binary through the linker's ``-X``."""

        self.add_link_flags("-X", f"{name}={value}")

    def set_env(self, key: str, value: str) -> None:
        self.environment.append(f"{key}={value}")
        if key == GOOS_VARIABLE:
            self._given_os = value
        elif key == GOARCH_VARIABLE:
            self._given_arch = value
        try:
            os.environ[key] = value
        except (OSError, ValueError) as exc:
            self.console.warning(f"Failed to set environment variable {key}={value}: {exc}")

    def set_subcommand(self, subcommand: str) -> None:
        self.subcommand = subcommand

    def set_tool_binary(self, binary: str) -> None:
        self.tool_binary = binary

    def target_os(self) -> str:
        return self._given_os or host_os()

    def target_arch(self) -> str:
        return self._given_arch or host_arch()

    @property
    def default_name(self) -> str:
        return Path(self.workdir).resolve().name

    def binary_name(self) -> str:
        """Return the output binary name with the name template applied."""

        if self.output_name_pattern:
            return self.output_name_pattern.replace(NAME_PLACEHOLDER, self.default_name)
        return self.default_name

    def environment_mapping(self) -> Dict[str, str]:
        mapping: Dict[str, str] = {}
        for entry in self.environment:
            key, _, value = entry.partition("=")
            mapping[key] = value
        return mapping

    def render_command(self) -> tuple[List[str], List[str]]:
        """Return the command vector and the environment entries.

        Rendering does not modify the configuration; repeated calls on the same
        state return equal lists.
        """

        command: List[str] = [
            self.tool_binary or DEFAULT_TOOL,
            self.subcommand or DEFAULT_SUBCOMMAND,
        ]
        command.extend(self.build_flags)
        if self.link_flags:
            command.extend(["-ldflags", " ".join(self.link_flags)])
        if self.compile_flags:
            command.extend(["-gcflags", " ".join(self.compile_flags)])
        return command, list(self.environment)


__all__ = [
    "BuildConfig",
    "DEFAULT_SUBCOMMAND",
    "DEFAULT_TOOL",
    "GOARCH_VARIABLE",
    "GOOS_VARIABLE",
    "NAME_PLACEHOLDER",
    "host_arch",
    "host_os",
]
