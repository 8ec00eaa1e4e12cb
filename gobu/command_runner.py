"""Running the go tool and git, with a recorder standing in for the build on dry runs."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence
import os
import shlex
import subprocess


@dataclass(frozen=True, slots=True)
class CommandResult:
    command: Sequence[str]
    returncode: int
    output: str = ""


class CommandError(RuntimeError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, result: CommandResult):
        super().__init__(f"{format_command(result.command)} exited with status {result.returncode}")
        self.result = result


def format_command(command: Sequence[str], environment: Mapping[str, str] | None = None) -> str:
    """Render ``command`` as a shell line, led by ``NAME=value`` assignments."""

    assignments = [f"{name}={shlex.quote(value)}" for name, value in (environment or {}).items()]
    return " ".join(assignments + [shlex.quote(part) for part in command])


class CommandRunner:
    """Runs the build and answers read-only queries such as ``git describe``."""

    def build(self, command: Sequence[str], *, cwd: Path, env: Mapping[str, str]) -> CommandResult:
        raise NotImplementedError

    def capture(self, command: Sequence[str], *, cwd: Path | None = None) -> str:
        raise NotImplementedError


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

    @staticmethod
    def _checked(result: CommandResult) -> CommandResult:
        if result.returncode != 0:
            raise CommandError(result)
        return result

    def build(self, command: Sequence[str], *, cwd: Path, env: Mapping[str, str]) -> CommandResult:
        """Run the build with ``env`` layered over the process environment.

        The go tool's output goes straight to the terminal.
        """

        if not command:
            raise ValueError("Cannot run an empty command")
        environment = os.environ.copy()
        environment.update(env)
        process = subprocess.run(list(command), cwd=str(cwd), env=environment, check=False)
        return self._checked(CommandResult(command=list(command), returncode=process.returncode))

    def capture(self, command: Sequence[str], *, cwd: Path | None = None) -> str:
        if not command:
            raise ValueError("Cannot run an empty command")
        process = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=False,
        )
        result = CommandResult(command=list(command), returncode=process.returncode, output=process.stdout)
        return self._checked(result).output


@dataclass(frozen=True, slots=True)
class RecordedBuild:
    command: List[str]
    environment: Dict[str, str]

    def format(self) -> str:
        return f"[dry-run] {format_command(self.command, self.environment)}"


class RecordingCommandRunner(SubprocessCommandRunner):
    """Records the build instead of running it.

    Queries still run, they leave the checkout untouched.
    """

    def __init__(self) -> None:
        self.builds: List[RecordedBuild] = []

    def build(self, command: Sequence[str], *, cwd: Path, env: Mapping[str, str]) -> CommandResult:
        self.builds.append(RecordedBuild(command=list(command), environment=dict(env)))
        return CommandResult(command=list(command), returncode=0)

    def iter_formatted(self) -> Iterable[str]:
        for record in self.builds:
            yield record.format()


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordedBuild",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
]
