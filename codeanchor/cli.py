"""CLI entrypoints for anchor commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .git import GitError, GitStage, HookInstaller, PreCommitHandler
from .logging import configure_logging
from .scanner import ComponentScanner
from .stores import ComponentCache
from .sync import SyncMode, SyncOrchestrator, SyncResult


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


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anchor",
        description="Keep component documentation in sync with source code.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser(
        "sync",
        help="Analyze components and update their README files.",
    )
    _add_verbose_option(sync_parser, suppress_default=True)
    _add_path_argument(sync_parser)
    sync_parser.add_argument(
        "--force",
        action="store_true",
        help="Re-analyze every component, ignoring the cache.",
    )
    sync_parser.add_argument(
        "--staged",
        action="store_true",
        help="Only consider components staged in git.",
    )
    sync_parser.add_argument(
        "--no-ai",
        dest="ai",
        action="store_false",
        help="Disable AI enrichment (template-only output).",
    )

    enrich_parser = subparsers.add_parser(
        "enrich",
        help="Add AI descriptions to READMEs that are missing or still pending.",
    )
    _add_verbose_option(enrich_parser, suppress_default=True)
    _add_path_argument(enrich_parser)
    enrich_parser.add_argument(
        "--force",
        action="store_true",
        help="Enrich every component, not only pending ones.",
    )

    hook_parser = subparsers.add_parser("hook", help="Manage and run the pre-commit hook.")
    _add_verbose_option(hook_parser, suppress_default=True)
    hook_subparsers = hook_parser.add_subparsers(dest="hook_command", required=True)

    run_parser = hook_subparsers.add_parser(
        "run", help="Sync staged components (used by the installed hook)."
    )
    _add_verbose_option(run_parser, suppress_default=True)
    _add_path_argument(run_parser)
    run_parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Append hook diagnostics to this file.",
    )

    install_parser = hook_subparsers.add_parser("install", help="Install the pre-commit hook.")
    _add_verbose_option(install_parser, suppress_default=True)
    _add_path_argument(install_parser)
    install_parser.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing pre-commit hook.",
    )

    uninstall_parser = hook_subparsers.add_parser("uninstall", help="Remove the pre-commit hook.")
    _add_verbose_option(uninstall_parser, suppress_default=True)
    _add_path_argument(uninstall_parser)

    cache_parser = subparsers.add_parser("cache", help="Inspect or reset the analysis cache.")
    _add_verbose_option(cache_parser, suppress_default=True)
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command", required=True)
    clear_parser = cache_subparsers.add_parser("clear", help="Delete every cached entry.")
    _add_verbose_option(clear_parser, suppress_default=True)
    _add_path_argument(clear_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for anchor commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    verbose = bool(getattr(args, "verbose", False))

    if args.command == "hook" and args.hook_command == "run":
        try:
            configure_logging(verbose=verbose, quiet=not verbose, log_file=args.log_file)
        except OSError:
            configure_logging(verbose=verbose, quiet=not verbose)
        PreCommitHandler(Path(args.path)).run_silent()
        return

    configure_logging(verbose=verbose)

    if args.command == "sync":
        _run_sync(parser, args)
    elif args.command == "enrich":
        _run_enrich(parser, args)
    elif args.command == "hook":
        _run_hook_admin(parser, args)
    elif args.command == "cache":
        try:
            config = load_config(Path(args.path))
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        ComponentCache(config.cache_dir).clear()
        print(f"Cache cleared at {_relativize(config.cache_dir)}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_sync(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        config = load_config(Path(args.path))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    candidates: list[Path] = []
    if args.staged:
        try:
            staged = GitStage().staged_files(config.root)
        except GitError as exc:
            parser.exit(1, f"anchor sync failed: {exc}\n")
        scanner = ComponentScanner(config.watch_patterns, config.ignore)
        candidates = scanner.select(config.root, staged)

    orchestrator = SyncOrchestrator.from_config(config, with_enrichment=args.ai)
    mode = SyncMode(restrict_to_list=args.staged, force=args.force, enable_enrichment=args.ai)
    try:
        result = orchestrator.run(candidates, mode)
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")

    _report(parser, result)


def _run_enrich(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        config = load_config(Path(args.path))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    if config.llm is None:
        print("AI enrichment is not configured. Add an llm section to .anchor.yml.")
        return

    orchestrator = SyncOrchestrator.from_config(config, with_enrichment=True)
    if orchestrator.generator.runner is None:
        parser.exit(1, "AI enrichment is unavailable. Run with --verbose for details.\n")
    try:
        files = orchestrator.pending_enrichment(force=args.force)
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    if not files:
        print("All documentation is already enriched")
        return

    print(f"{len(files)} component(s) need enrichment")
    result = orchestrator.run(
        files, SyncMode(restrict_to_list=True, force=True, enable_enrichment=True)
    )
    _report(parser, result)


def _report(parser: argparse.ArgumentParser, result: SyncResult) -> None:
    for output in result.outputs:
        print(f"Updated {_relativize(output)}")
    summary = f"Processed {result.processed}, skipped {result.skipped} (up to date)"
    if result.errors:
        summary += f", {result.errors} error(s)"
    print(summary)
    if result.errors:
        for path, message in result.failures:
            print(f"  {_relativize(Path(path))}: {message}", file=sys.stderr)
        parser.exit(1, "Some components need manual attention. Run with --verbose for details.\n")


def _run_hook_admin(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    installer = HookInstaller()
    try:
        if args.hook_command == "install":
            path = installer.install(Path(args.path), force=bool(args.force))
            print(f"Pre-commit hook installed at {_relativize(path)}")
        elif args.hook_command == "uninstall":
            if installer.uninstall(Path(args.path)):
                print("Pre-commit hook removed")
            else:
                print("No anchor pre-commit hook installed")
    except (FileNotFoundError, FileExistsError) as exc:
        parser.exit(1, f"{exc}\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
