"""Locating and loading the optional project configuration file."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence
import json
import os
import tomllib

import yaml

ConfigLoader = Callable[[Any], Any]

CONFIG_ENV_VARIABLE = "GOBU_CONFIG"
EXTRA_DIST_ENV_VARIABLE = "GOBU_EXTRA_DIST"
CONFIG_STEM = "gobu"
DEFAULT_EXTRA_DIST = ("README*", "LICENSE")


class ConfigError(ValueError):
    """Raised when a project configuration file cannot be used."""


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}
"""Mapping of file suffixes to loader callables."""


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Load and decode a configuration mapping from ``path``.

    An empty YAML document yields an empty mapping.
    """

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS))
        raise ConfigError(
            f"Unsupported configuration file extension: {suffix or '<none>'}. Supported: {supported}"
        )

    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"

    try:
        with path.open(mode, **kwargs) as handle:
            data = loader(handle)
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file '{path}': {exc}") from exc
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot parse configuration file '{path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration file '{path}' must contain a mapping at the root")
    return data


def normalize_string_list(value: Any, *, field_name: str | None = None, split: bool = True) -> List[str]:
    """Coerce ``value`` into a list of trimmed strings.

    A single string is split on whitespace, or kept whole when ``split`` is
    false.
    """

    label = f"{field_name} " if field_name else ""
    if value is None:
        return []

    if isinstance(value, str):
        if split:
            return value.split()
        text = value.strip()
        return [text] if text else []

    if isinstance(value, Sequence):
        items: List[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigError(f"{label}entries must be strings")
            text = item.strip()
            if text:
                items.append(text)
        return items

    raise ConfigError(f"{label}must be a string or sequence of strings")


def find_config_file(workdir: Path, explicit: str | None = None) -> Path | None:
    """Return the configuration file to use, or ``None`` when there is none.

    ``explicit`` (from the command line) wins over ``GOBU_CONFIG``; both must
    exist. Otherwise the first ``gobu.<suffix>`` in ``workdir`` is used.
    """

    requested = explicit or os.environ.get(CONFIG_ENV_VARIABLE)
    if requested:
        path = Path(requested).expanduser()
        if not path.is_absolute():
            path = workdir / path
        if not path.is_file():
            raise ConfigError(f"Configuration file '{path}' does not exist")
        return path

    found = [workdir / f"{CONFIG_STEM}{suffix}" for suffix in FILE_LOADERS]
    found = [path for path in found if path.is_file()]
    if len(found) > 1:
        names = ", ".join(path.name for path in found)
        raise ConfigError(f"Multiple configuration files found: {names}. Only one format is allowed.")
    return found[0] if found else None


@dataclass(slots=True)
class ProjectConfig:
    extra_dist: List[str] | None = None
    traits: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    source: Path | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: Path | None = None) -> "ProjectConfig":
        allowed_keys = {"extra_dist", "traits"}
        unknown = {str(key) for key in data.keys() if str(key) not in allowed_keys}
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigError(f"Configuration contains unknown keys: {joined}")

        extra_dist: List[str] | None = None
        if "extra_dist" in data:
            extra_dist = normalize_string_list(data["extra_dist"], field_name="extra_dist")

        traits: Dict[str, Dict[str, Any]] = {}
        traits_section = data.get("traits") or {}
        if not isinstance(traits_section, Mapping):
            raise ConfigError("traits must be a mapping of trait names to definitions")
        for raw_name, raw_value in traits_section.items():
            name = str(raw_name).strip()
            if not name or "=" in name:
                raise ConfigError(f"Invalid trait name '{raw_name}' in configuration")
            traits[name] = cls._normalize_trait(name, raw_value)

        return cls(extra_dist=extra_dist, traits=traits, source=source)

    @staticmethod
    def _normalize_trait(name: str, raw_value: Any) -> Dict[str, Any]:
        if isinstance(raw_value, Mapping):
            unknown = {str(key) for key in raw_value.keys()} - {"help", "expands"}
            if unknown:
                joined = ", ".join(sorted(unknown))
                raise ConfigError(f"Trait '{name}' contains unknown keys: {joined}")
            help_text = raw_value.get("help")
            expands = normalize_string_list(
                raw_value.get("expands"), field_name=f"traits.{name}.expands", split=False
            )
        else:
            help_text = None
            expands = normalize_string_list(raw_value, field_name=f"traits.{name}", split=False)
        if not expands:
            raise ConfigError(f"Trait '{name}' must expand at least one trait")
        return {"help": str(help_text) if help_text else None, "expands": expands}

    def resolve_extra_dist(self, environ: Mapping[str, str] | None = None) -> List[str]:
        """Return the globs to bundle: environment, then config, then defaults."""

        env = os.environ if environ is None else environ
        override = env.get(EXTRA_DIST_ENV_VARIABLE)
        if override:
            return [pattern for pattern in override.split(" ") if pattern]
        if self.extra_dist is not None:
            return list(self.extra_dist)
        return list(DEFAULT_EXTRA_DIST)


def load_project_config(workdir: Path, explicit: str | None = None) -> ProjectConfig:
    path = find_config_file(workdir, explicit)
    if path is None:
        return ProjectConfig()
    return ProjectConfig.from_mapping(load_config_file(path), source=path)


__all__ = [
    "CONFIG_ENV_VARIABLE",
    "ConfigError",
    "DEFAULT_EXTRA_DIST",
    "EXTRA_DIST_ENV_VARIABLE",
    "FILE_LOADERS",
    "ProjectConfig",
    "find_config_file",
    "load_config_file",
    "load_project_config",
    "normalize_string_list",
]
