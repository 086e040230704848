"""CLI entrypoints for autotest commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

from . import generate_tests_for_project
from .config import PROJECT_CONFIG_NAMES, SUPPORTED_LANGUAGES, find_project_root, load_policy, write_default_config
from .errors import AutoTestError
from .logging import configure_logging

_DEFAULT_CONFIG_NAME = "auto_test.yaml"


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_log_file_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "--log-file",
        type=Path,
        default=argparse.SUPPRESS if suppress_default else None,
        help="Also write log records to this file.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path inside the project (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotest",
        description="Generate skeleton tests from a project's public function signatures.",
    )
    _add_verbose_option(parser)
    _add_log_file_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Analyze the project and write synthesized test files.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_log_file_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)
    generate_parser.add_argument("--output-dir", help="Directory (relative to the root) for test files.")
    generate_parser.add_argument(
        "--include-private",
        action="store_true",
        default=None,
        help="Also generate tests for non-public functions.",
    )
    generate_parser.add_argument(
        "--skip-function",
        action="append",
        dest="skip_functions",
        metavar="SUBSTRING",
        help="Skip functions whose name contains SUBSTRING (repeatable).",
    )
    generate_parser.add_argument(
        "--no-parallel",
        action="store_false",
        dest="parallel",
        default=None,
        help="Synthesize tests sequentially.",
    )
    generate_parser.add_argument("--chunk-size", type=int, help="Functions per parallel work unit.")
    generate_parser.add_argument(
        "--no-gitignore",
        action="store_false",
        dest="respect_gitignore",
        default=None,
        help="Do not honor .gitignore and git exclude files.",
    )
    generate_parser.add_argument(
        "--language",
        choices=SUPPORTED_LANGUAGES,
        help="Source language (detected from the project when omitted).",
    )
    generate_parser.add_argument("--config", type=Path, help="Explicit configuration file.")
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the files that would be written without writing them.",
    )

    init_parser = subparsers.add_parser(
        "init",
        help=f"Write a default {_DEFAULT_CONFIG_NAME} into the project root.",
    )
    _add_verbose_option(init_parser, suppress_default=True)
    _add_log_file_option(init_parser, suppress_default=True)
    _add_path_argument(init_parser)
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing configuration file.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for autotest commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "generate":
        _run_generate(parser, args)
    elif args.command == "init":
        _run_init(parser, args)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_generate(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    overrides: Dict[str, Any] = {
        "output_dir": args.output_dir,
        "include_private": args.include_private,
        "skip_functions": args.skip_functions,
        "parallel": args.parallel,
        "parallel_chunk_size": args.chunk_size,
        "respect_gitignore": args.respect_gitignore,
        "language": args.language,
    }
    dry_run = bool(args.dry_run)
    try:
        root = find_project_root(Path(args.path))
        policy = load_policy(root, config_file=args.config, overrides=overrides)
        result = generate_tests_for_project(root, policy, write=not dry_run)
    except AutoTestError as exc:
        parser.exit(1, f"autotest generate failed: {exc}\n")

    if not result.files:
        print("No tests generated (no matching functions found)")
    for test_file in result.files:
        prefix = "Would write" if dry_run else "Wrote"
        print(f"{prefix} {_relativize(Path(test_file.path))}")
    for diagnostic in result.diagnostics:
        print(f"warning: {diagnostic}", file=sys.stderr)


def _run_init(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    root = Path(args.path).expanduser().resolve()
    if not root.is_dir():
        parser.exit(1, f"Project path not found: {args.path}\n")

    existing = [root / name for name in PROJECT_CONFIG_NAMES if (root / name).exists()]
    if existing and not args.force:
        parser.exit(1, f"{_relativize(existing[0])} already exists (use --force to overwrite)\n")

    try:
        path = write_default_config(root / _DEFAULT_CONFIG_NAME)
    except OSError as exc:
        parser.exit(1, f"autotest init failed: {exc}\n")
    print(f"Configuration created at {_relativize(path)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
