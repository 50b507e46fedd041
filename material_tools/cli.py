"""Command line interface for material-tools."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable
import sys

from .build import BuildOrchestrator
from .config_loader import MaterialToolsOptions, apply_defaults, load_options
from .console import Console
from .errors import MaterialToolsError
from .theming import MdTheme


def _add_source_arguments(parser: ArgumentParser) -> None:
    parser.add_argument("--config", "-c", type=Path, help="Options file (.toml, .json, .yaml)")
    parser.add_argument("--version", dest="package_version", help="Package version to build (default: local install)")
    parser.add_argument("--modules", "-m", action="append", default=[], help="Module ids to include (comma-separated)")
    parser.add_argument("--cache", type=Path, help="Package cache directory")


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="material-tools", description="Build custom Angular Material bundles")
    parser.add_argument(
        "--log",
        "-l",
        choices=list(Console.LEVELS),
        default="none",
        help="Set log level (default: none)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output (maps to debug)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build the JS/CSS bundle")
    _add_source_arguments(build_parser)
    build_parser.add_argument("--destination", "-d", type=Path, help="Output directory")
    build_parser.add_argument("--filename", help="Base filename of the generated files")
    build_parser.add_argument("--jobs", "-j", type=int, help="Number of builders run in parallel")
    build_parser.add_argument("--primary", help="Primary palette of the static theme")
    build_parser.add_argument("--accent", help="Accent palette of the static theme")
    build_parser.add_argument("--warn", help="Warn palette of the static theme")
    build_parser.add_argument("--background", help="Background palette of the static theme")
    build_parser.add_argument("--dark", action="store_true", default=None, help="Build a dark static theme")
    build_parser.add_argument("--dry-run", "-n", action="store_true", help="Show the files that would be written")

    modules_parser = subparsers.add_parser("modules", help="Print the resolved module order")
    _add_source_arguments(modules_parser)

    return parser.parse_args(list(argv))


def _collect_modules(values: Iterable[str]) -> list[str] | None:
    modules: list[str] = []
    for value in values:
        modules.extend(part.strip() for part in value.split(",") if part.strip())
    return modules or None


def _theme_overrides(args: Namespace, current: MdTheme | None) -> MdTheme | None:
    values: Dict[str, Any] = {}
    for role in ("primary", "accent", "warn", "background"):
        value = getattr(args, role, None)
        if value:
            values[role] = value
    if getattr(args, "dark", None):
        values["dark"] = True
    if not values:
        return current
    return replace(current or MdTheme(), **values)


def _load(args: Namespace, *, require_destination: bool) -> MaterialToolsOptions:
    destination = getattr(args, "destination", None)
    if not require_destination and destination is None:
        destination = Path.cwd()
    overrides: Dict[str, Any] = {
        "destination": destination,
        "destination_filename": getattr(args, "filename", None),
        "version": args.package_version,
        "modules": _collect_modules(args.modules),
        "cache": args.cache,
        "jobs": getattr(args, "jobs", None),
    }
    if args.config is not None:
        options = load_options(args.config).with_overrides(**overrides)
    else:
        options = apply_defaults({key: value for key, value in overrides.items() if value is not None})
    theme = _theme_overrides(args, options.theme)
    if theme is not options.theme:
        options = replace(options, theme=theme)
    return options


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    level = "debug" if args.verbose and args.log == "none" else args.log
    console = Console(level=level, dry_run=getattr(args, "dry_run", False))

    try:
        if args.command == "build":
            return _handle_build(args, console)
        if args.command == "modules":
            return _handle_modules(args, console)
    except MaterialToolsError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1
    raise ValueError(f"Unknown command: {args.command}")


def _handle_build(args: Namespace, console: Console) -> int:
    options = _load(args, require_destination=True)
    orchestrator = BuildOrchestrator(options, console=console)
    result = orchestrator.build(dry_run=args.dry_run)
    if not args.dry_run:
        print(f"Built {options.package_name} {result.version} ({len(result.modules)} modules) into {result.destination}")
    return 0


def _handle_modules(args: Namespace, console: Console) -> int:
    options = _load(args, require_destination=False)
    orchestrator = BuildOrchestrator(options, console=console)
    resolved = orchestrator.resolve()
    print(f"{options.package_name} {resolved.version}")
    for module in resolved.modules:
        print(module)
    return 0


__all__ = ["main"]
