"""Trait descriptors and the registry that applies them to a build configuration."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Sequence

from .build_config import BuildConfig, host_arch, host_os

PARAMETER_DELIMITER = "="


class TraitKind(str, Enum):
    SIMPLE = "simple"
    PARAMETERIZED = "parameterized"
    COMPOSITE = "composite"


class InvalidTraitsError(ValueError):
    """Unknown trait names found in a request.

    Every unknown base name of the request is collected in :attr:`names` so a
    single run can report all of them.
    """

    def __init__(self, names: Sequence[str]):
        self.names = tuple(names)
        suffix = "" if len(self.names) == 1 else "s"
        super().__init__(f"Invalid trait{suffix}: {', '.join(self.names)}")


def base_name(token: str) -> str:
    """Return ``token`` up to and including the first ``=``."""

    head, sep, _ = token.partition(PARAMETER_DELIMITER)
    return head + sep


def token_value(token: str) -> str:
    return token.partition(PARAMETER_DELIMITER)[2]


def is_parameterized(name: str) -> bool:
    return PARAMETER_DELIMITER in name


@dataclass(frozen=True, slots=True)
class TraitDefinition:
    name: str
    help: str
    kind: TraitKind
    action: Callable[..., None] | None = None
    expands: tuple[str, ...] = ()


class TraitRegistry:
    """Ordered table of trait definitions plus the set of traits already applied.

    A registry serves one invocation: each trait runs at most once, however
    many times it is requested directly or through composite traits.
    """

    def __init__(self, definitions: Iterable[TraitDefinition] | None = None) -> None:
        self._definitions: Dict[str, TraitDefinition] = {}
        self._applied: Dict[str, None] = {}
        for definition in definitions or ():
            self._add(definition)

    @classmethod
    def with_builtins(cls) -> "TraitRegistry":
        return cls(BUILTIN_TRAITS)

    def _add(self, definition: TraitDefinition) -> None:
        if definition.name in self._definitions:
            raise ValueError(f"Trait '{definition.name}' is already defined")
        self._definitions[definition.name] = definition

    def register(
        self,
        name: str,
        help: str,
        action: Callable[..., None] | None = None,
        *,
        expands: Sequence[str] = (),
    ) -> TraitDefinition:
        """Register a trait; its kind follows from ``name`` and the arguments.

        Names ending in ``=`` are parameterized and need an ``action`` taking the
        configuration and the value. Other traits run ``expands`` through the
        registry first and then ``action``, if any.
        """

        name = name.strip()
        if not name:
            raise ValueError("Trait name cannot be empty")
        if is_parameterized(name):
            if not name.endswith(PARAMETER_DELIMITER) or name.count(PARAMETER_DELIMITER) > 1:
                raise ValueError(f"Parameterized trait '{name}' must end with a single '{PARAMETER_DELIMITER}'")
            if action is None:
                raise ValueError(f"Parameterized trait '{name}' requires an action")
            if expands:
                raise ValueError(f"Parameterized trait '{name}' cannot expand other traits")
            kind = TraitKind.PARAMETERIZED
        elif action is None:
            if not expands:
                raise ValueError(f"Trait '{name}' needs an action or traits to expand")
            kind = TraitKind.COMPOSITE
        else:
            kind = TraitKind.SIMPLE

        definition = TraitDefinition(
            name=name,
            help=help,
            kind=kind,
            action=action,
            expands=tuple(expands),
        )
        self._add(definition)
        return definition

    def register_composites(self, composites: Mapping[str, Mapping[str, Any]]) -> None:
        """Add composite traits given as ``{name: {"help": ..., "expands": [...]}}``.

        Constituents may name built-in traits or other composites from the same
        mapping. All unknown constituents are reported together.
        """

        names = [str(name).strip() for name in composites]
        duplicates = [name for name in names if name in self._definitions]
        if duplicates:
            raise ValueError(f"Trait '{duplicates[0]}' is already defined")

        known = set(self._definitions) | set(names)
        unknown: List[str] = []
        for entry in composites.values():
            for token in entry.get("expands", ()):
                candidate = base_name(token)
                if candidate not in known and candidate not in unknown:
                    unknown.append(candidate)
        if unknown:
            raise InvalidTraitsError(unknown)

        for name, entry in zip(names, composites.values()):
            expands = tuple(entry.get("expands", ()))
            help_text = entry.get("help") or f"Sets the traits: {', '.join(expands)}."
            self.register(name, str(help_text), expands=expands)

    def get(self, name: str) -> TraitDefinition | None:
        return self._definitions.get(base_name(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and base_name(name) in self._definitions

    def __iter__(self) -> Iterator[TraitDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def validate(self, *tokens: str) -> InvalidTraitsError | None:
        invalid: List[str] = []
        for token in tokens:
            name = base_name(token)
            if name not in self._definitions and name not in invalid:
                invalid.append(name)
        if invalid:
            return InvalidTraitsError(invalid)
        return None

    def apply(self, config: BuildConfig, *tokens: str) -> None:
        """Apply ``tokens`` to ``config`` from left to right.

        Traits already applied are skipped. A trait is marked applied before its
        effect runs, which keeps composite traits that refer back to each other
        from recursing. Unknown names are ignored; use :meth:`validate` first.
        """

        for token in tokens:
            name = base_name(token)
            if name in self._applied:
                continue
            definition = self._definitions.get(name)
            if definition is None:
                continue
            self._applied[name] = None

            if definition.expands:
                self.apply(config, *definition.expands)
            if definition.kind is TraitKind.PARAMETERIZED:
                definition.action(config, token_value(token))
            elif definition.action is not None:
                definition.action(config)

    def is_applied(self, name: str) -> bool:
        return base_name(name) in self._applied

    def applied_names(self) -> List[str]:
        return list(self._applied)

    def reset(self) -> None:
        self._applied.clear()


def _set_version_variables(config: BuildConfig) -> None:
    config.add_variable("main.timestamp", config.build_time.isoformat(timespec="seconds"))
    config.add_variable("main.version", config.version)
    config.add_variable("main.buildGOOS", host_os())
    config.add_variable("main.buildGOARCH", host_arch())


def _request_package(config: BuildConfig) -> None:
    config.package_requested = True


def _override_link_flags(config: BuildConfig, value: str) -> None:
    config.reset_link_flags()
    if value:
        config.add_link_flags(value)


def _override_build_flags(config: BuildConfig, value: str) -> None:
    config.reset_build_flags()
    if value:
        config.add_build_flags(value)


def _override_compile_flags(config: BuildConfig, value: str) -> None:
    config.reset_compile_flags()
    if value:
        config.add_compile_flags(value)


def _set_output_name(config: BuildConfig, value: str) -> None:
    config.output_name_pattern = value
    config.add_build_flags("-o", config.binary_name())


def _build_builtin_definitions() -> List[TraitDefinition]:
    registry = TraitRegistry()
    registry.register("nocgo", "Set 'CGO_ENABLED=0' environment variable.",
                      lambda config: config.set_env("CGO_ENABLED", "0"))
    registry.register("static", "Set '-extldflags \"-static\"' link flags.",
                      lambda config: config.add_link_flags("-extldflags", '"-static"'))
    registry.register("shrink", "Set '-s -w' link flags.",
                      lambda config: config.add_link_flags("-s", "-w"))
    registry.register("race", "Set '-race' build flag.",
                      lambda config: config.add_build_flags("-race"))
    registry.register("rebuild", "Set '-a' build flag.",
                      lambda config: config.add_build_flags("-a"))
    registry.register("trimpath", "Set '-trimpath' build flag.",
                      lambda config: config.add_build_flags("-trimpath"))
    registry.register("linux", "Set 'GOOS=linux' environment variable.",
                      lambda config: config.set_env("GOOS", "linux"))
    registry.register("windows", "Set 'GOOS=windows' environment variable.",
                      lambda config: config.set_env("GOOS", "windows"))
    registry.register("windowsgui", "Set windows trait and '-H windowsgui' link flag.",
                      lambda config: config.add_link_flags("-H", "windowsgui"),
                      expands=("windows",))
    registry.register("verbose", "Set '-v' build flag.",
                      lambda config: config.add_build_flags("-v"))
    registry.register("debug", "Set '-x' build flag.",
                      lambda config: config.add_build_flags("-x"))
    registry.register("install", "Run 'go install' instead of 'go build'.",
                      lambda config: config.set_subcommand("install"))
    registry.register(
        "version",
        "Set 'timestamp', 'version', 'buildGOOS' and 'buildGOARCH' go variables to the 'main' package.",
        _set_version_variables,
    )
    registry.register("package", "After building creates a zip-package of the binary.", _request_package)
    registry.register("release", "Sets the traits: shrink, version, static, rebuild and trimpath.",
                      expands=("shrink", "version", "static", "rebuild", "trimpath"))
    registry.register("default", "Sets the version trait. This is used if run without arguments.",
                      expands=("version",))

    registry.register("go=", "Set the 'go' binary explicitly.",
                      lambda config, value: config.set_tool_binary(value))
    registry.register("ldflags=", "Set 'go tool link' flags explicitly.", _override_link_flags)
    registry.register("buildflags=", "Set 'go build' flags explicitly.", _override_build_flags)
    registry.register("gcflags=", "Set 'go tool compile' flags explicitly.", _override_compile_flags)
    registry.register("name=", "Set binary name with the -o build flag. %n is replaced by the default name.",
                      _set_output_name)
    return list(registry)


BUILTIN_TRAITS = tuple(_build_builtin_definitions())
DEFAULT_TRAITS = ("default",)

__all__ = [
    "BUILTIN_TRAITS",
    "DEFAULT_TRAITS",
    "InvalidTraitsError",
    "PARAMETER_DELIMITER",
    "TraitDefinition",
    "TraitKind",
    "TraitRegistry",
    "base_name",
    "is_parameterized",
    "token_value",
]
