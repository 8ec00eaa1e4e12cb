"""Revision descriptor lookup for the ``version`` trait and package names."""
from __future__ import annotations

from pathlib import Path

from .command_runner import CommandError, CommandRunner, SubprocessCommandRunner

DESCRIBE_COMMAND = ("git", "describe", "--always", "--tags", "--dirty")


class GitVersionProvider:
    """Describe the checkout in ``workdir`` with ``git describe``.

    An empty string is returned when git is missing or the directory is not
    a repository; the build then proceeds without version metadata.
    """

    def __init__(self, runner: CommandRunner | None = None, *, workdir: Path | None = None) -> None:
        self._runner = runner or SubprocessCommandRunner()
        self._workdir = workdir

    def describe(self) -> str:
        try:
            output = self._runner.capture(DESCRIBE_COMMAND, cwd=self._workdir)
        except (CommandError, OSError):
            return ""
        return output.strip()


__all__ = ["DESCRIBE_COMMAND", "GitVersionProvider"]
