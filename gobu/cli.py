"""Command line interface for gobu."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from importlib import metadata
from pathlib import Path
from typing import Iterable, List, Sequence
import platform
import re
import sys

from . import __version__
from .build_config import BuildConfig, host_arch, host_os
from .command_runner import CommandError, RecordingCommandRunner, SubprocessCommandRunner
from .config_loader import load_project_config
from .console import Console
from .packager import Packager, PackagingError
from .traits import DEFAULT_TRAITS, TraitKind, TraitRegistry
from .version import GitVersionProvider

DISTRIBUTION_NAME = "gobu"


def _make_runner(dry_run: bool) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="gobu", description="Traitful go build")
    parser.add_argument("-v", "--version", action="store_true", help="Display version")
    parser.add_argument("-l", "--list", dest="list_traits", action="store_true", help="List traits")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug output")
    parser.add_argument(
        "-n",
        "--dryrun",
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Don't actually run any commands. Implies '-d'.",
    )
    parser.add_argument("--licenses", action="store_true", help="Show licenses of gobu.")
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="Project configuration file (default: gobu.toml/.yaml/.yml/.json in the current directory)",
    )
    parser.add_argument(
        "traits",
        nargs="*",
        metavar="TRAIT",
        help="Traits to apply, 'name' or 'name=value' (default: default)",
    )
    return parser.parse_args(list(argv))


def version_string() -> str:
    return f"gobu {__version__} (python {platform.python_version()}, {host_os()}/{host_arch()})"


def format_trait_listing(registry: TraitRegistry) -> str:
    definitions = sorted(registry, key=lambda definition: definition.name)
    width = max((len(definition.name) for definition in definitions), default=0) + 2

    def _section(title: str, parameterized: bool) -> List[str]:
        lines = [title]
        for definition in definitions:
            if (definition.kind is TraitKind.PARAMETERIZED) == parameterized:
                lines.append(f"  {definition.name.ljust(width)}{definition.help}")
        return lines

    lines = _section("Traits:", parameterized=False)
    lines.append("")
    lines.extend(_section("Parameterized traits:", parameterized=True))
    return "\n".join(lines)


def format_report(applied: Sequence[str], command: Sequence[str], environment: Sequence[str]) -> str:
    lines = ["Traits:", " ".join(applied), "Command:", " ".join(command), "Environment:"]
    lines.extend(environment)
    return "\n".join(lines)


def _requirement_name(requirement: str) -> str:
    match = re.match(r"[A-Za-z0-9][A-Za-z0-9._-]*", requirement)
    return match.group(0) if match else requirement


def format_licenses() -> str:
    """Describe the license of gobu and of its installed runtime dependencies."""

    names = [DISTRIBUTION_NAME]
    for requirement in metadata.requires(DISTRIBUTION_NAME) or []:
        if "extra ==" in requirement:
            continue
        names.append(_requirement_name(requirement))

    lines: List[str] = []
    for name in names:
        try:
            meta = metadata.metadata(name)
        except metadata.PackageNotFoundError:
            lines.append(f"{name}: not installed")
            continue
        license_name = meta.get("License-Expression") or meta.get("License") or "UNKNOWN"
        lines.append(f"{meta.get('Name', name)} {meta.get('Version', '')}: {license_name.strip()}")
    return "\n".join(lines)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    verbose = args.debug or args.dry_run
    console = Console("info" if verbose else "warning", dry_run=args.dry_run)

    if args.version:
        print(version_string())
        return 0

    if args.licenses:
        try:
            print(format_licenses())
        except metadata.PackageNotFoundError:
            console.error("Getting licenses failed: gobu is not installed as a distribution")
            return 1
        return 0

    workdir = Path.cwd()
    registry = TraitRegistry.with_builtins()
    try:
        project = load_project_config(workdir, args.config)
        registry.register_composites(project.traits)
    except ValueError as exc:
        console.error(f"Loading configuration failed: {exc}")
        return 2
    if project.source is not None:
        console.info(f"Using configuration {project.source}")

    if args.list_traits:
        print(format_trait_listing(registry))
        return 0

    traits = list(args.traits) or list(DEFAULT_TRAITS)
    invalid = registry.validate(*traits)
    if invalid is not None:
        console.error(f"Parsing command line failed: {invalid}")
        return 1

    runner = _make_runner(args.dry_run)
    config = BuildConfig(
        version=GitVersionProvider(runner, workdir=workdir).describe(),
        workdir=workdir,
        console=console,
    )
    registry.apply(config, *traits)
    command, environment = config.render_command()

    if verbose:
        print(format_report(registry.applied_names(), command, environment))

    try:
        runner.build(command, cwd=workdir, env=config.environment_mapping())
    except (CommandError, OSError) as exc:
        console.error(f"Build failed: {exc}")
        return 1

    if isinstance(runner, RecordingCommandRunner):
        for line in runner.iter_formatted():
            print(line)

    if config.package_requested:
        try:
            Packager(console).create_package(config, project.resolve_extra_dist())
        except PackagingError as exc:
            console.error(f"Creating package failed: {exc}")
            return 1

    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
