"""Console output handler shared by the CLI and the packager."""
from __future__ import annotations

import sys


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warning < info < debug
    Default: 'warning'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warning": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(self, level: str = "warning", dry_run: bool = False):
        self.level_name = level
        self.level = self.LEVELS.get(level, self.LEVELS["warning"])
        self.dry_run = dry_run

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"Error: {message}", file=sys.stderr)

    def warning(self, message: str) -> None:
        if self.level >= self.LEVELS["warning"]:
            print(f"Warning: {message}", file=sys.stderr)

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}")

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}")

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}")
