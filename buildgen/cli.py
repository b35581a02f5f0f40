"""Command line interface for buildgen."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List
import logging
import sys

from .config_loader import WorkspaceConfig
from .errors import BuildGenError
from .generator import MakefileGenerator
from .target import TargetInfo


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="buildgen", description="Generate a Makefile from BUILD target definitions")
    parser.add_argument("-C", "--root", default=".", help="Workspace root (default: current directory)")
    parser.add_argument("--config", help="Configuration file (default: <root>/buildgen.{toml,json,yaml})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_selection(sub: ArgumentParser) -> None:
        sub.add_argument("targets", nargs="*", help="Targets such as //pkg:name (default: the root package)")
        sub.add_argument(
            "-p",
            "--package",
            dest="packages",
            action="append",
            default=[],
            help="Include every target of a package; may be repeated",
        )

    generate = subparsers.add_parser("generate", help="Write the Makefile")
    add_selection(generate)
    generate.add_argument("-o", "--output", help="Output path (default: [global].output)")
    generate.add_argument("--stdout", action="store_true", help="Print the Makefile instead of writing it")

    validate = subparsers.add_parser("validate", help="Parse and resolve targets without writing anything")
    add_selection(validate)

    listing = subparsers.add_parser("list", help="List targets in dependency order")
    add_selection(listing)

    return parser.parse_args(list(argv))


def _configure_logging(config: WorkspaceConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.global_config.log_level.upper())
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.global_config.log_file:
        log_path = Path(config.global_config.log_file)
        if not log_path.is_absolute():
            log_path = config.root / log_path
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", handlers=handlers, force=True)


def _selection(args: Namespace) -> tuple[List[TargetInfo], List[str]]:
    roots = [TargetInfo.parse(reference) for reference in args.targets]
    packages = [package.strip("/") for package in args.packages]
    if not roots and not packages:
        packages = [""]
    return roots, packages


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    root = Path(args.root).resolve()

    try:
        config = WorkspaceConfig.from_directory(root, config_file=Path(args.config) if args.config else None)
        _configure_logging(config, args.verbose)
        roots, packages = _selection(args)
        generator = MakefileGenerator(config)

        if args.command == "generate":
            if args.stdout:
                sys.stdout.write(generator.generate(roots, packages=packages))
                return 0
            output = generator.write(Path(args.output) if args.output else None, roots, packages=packages)
            print(f"Wrote {output}")
            return 0

        graph = generator.build_graph(roots, packages=packages)
        nodes = graph.resolve()
        if args.command == "list":
            for node in nodes:
                print(f"{node.target}\t{node.kind}")
            return 0
        print(f"OK: {len(nodes)} targets")
        return 0
    except (BuildGenError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


__all__ = ["main"]
