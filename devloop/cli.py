"""devloop command-line interface.

Usage::

    python -m devloop new ./sample
    python -m devloop new github.com/acme/widget --template ./skeleton
    python -m devloop watch "./app/*" ./views --command "go build ./..."
"""

from __future__ import annotations

import argparse
import asyncio
import threading
import time
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from devloop.config import Config, ScaffoldConfig
from devloop.scaffolder import RewriteRule, ScaffoldError, Scaffolder, resolve_target
from devloop.utils import ConsoleLog, Log, console, format_duration, print_error, run_command
from devloop.watcher import WatchCoordinator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devloop",
        description="devloop -- project scaffolding and watch-and-rebuild helper",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m devloop new ./sample\n"
            "  python -m devloop new github.com/acme/widget\n"
            "  python -m devloop watch './app/*' --command 'go build ./...'\n"
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show trace output")
    # --verbose is also accepted after the subcommand without undoing an
    # earlier one.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Show trace output"
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    new = subparsers.add_parser(
        "new",
        parents=[common],
        help="create a skeleton application",
        description=(
            "Copy the skeleton application to TARGET and rewrite its import path.\n"
            "TARGET is a directory that does not exist yet (./sample) or an\n"
            "import path (github.com/acme/sample) inside the workspace root."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    new.add_argument("target", help="Destination path or import path")
    new.add_argument("--template", type=Path, default=None, help="Skeleton directory")
    new.add_argument(
        "--skeleton-module",
        default=None,
        help="Import path used inside the skeleton sources",
    )
    new.add_argument("--workspace", type=Path, default=None, help="Workspace root")
    new.add_argument(
        "--suffix",
        dest="suffixes",
        action="append",
        default=None,
        help="Source file extension to rewrite (repeatable, default: .go)",
    )

    watch = subparsers.add_parser(
        "watch",
        parents=[common],
        help="run a command whenever watched files are written",
        description=(
            "Watch directories and re-run COMMAND after every file write.\n"
            "A trailing '*' watches the directory and all directories below it."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    watch.add_argument("patterns", nargs="*", help="Watch patterns (default from config)")
    watch.add_argument("--command", "-c", dest="run", default=None, help="Shell command to run")
    watch.add_argument(
        "--no-initial-run",
        action="store_true",
        help="Don't run the command before the first change",
    )
    watch.add_argument(
        "--truncate-on-file",
        action="store_true",
        help="Stop recursive scans at the first plain file",
    )
    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_new(args: argparse.Namespace, config: Config, log: Log) -> int:
    overrides: dict[str, Any] = {}
    if args.template is not None:
        overrides["template_dir"] = args.template
    if args.skeleton_module:
        overrides["skeleton_module"] = args.skeleton_module
    if args.workspace is not None:
        overrides["workspace_root"] = args.workspace
    if args.suffixes:
        overrides["source_suffixes"] = args.suffixes

    try:
        scaffold = ScaffoldConfig.model_validate({**config.scaffold.model_dump(), **overrides})
    except ValidationError as exc:
        print_error(f"Invalid option: {exc}")
        return 1
    config.scaffold = scaffold

    try:
        module, destination = resolve_target(args.target, scaffold.workspace_root)
        rule = RewriteRule(old=scaffold.skeleton_module, new=module)
        Scaffolder(scaffold.source_suffixes, log=log).generate(
            scaffold.template_dir, destination, rule
        )
    except ScaffoldError as exc:
        print_error(str(exc))
        return 1
    return 0


def make_rebuild(command: str, log: Log):
    """Return a no-argument callback that runs *command* and reports the outcome."""

    def rebuild() -> None:
        log.info(f"Running: {command}")
        started = time.monotonic()
        returncode, stdout, stderr = asyncio.run(run_command(command, capture=True))
        elapsed = format_duration(time.monotonic() - started)
        if stdout:
            log.info(stdout)
        if returncode == 0:
            log.success(f"Done in {elapsed}.")
        else:
            if stderr:
                log.error(stderr)
            log.error(f"Command exited with status {returncode} after {elapsed}.")

    return rebuild


def cmd_watch(args: argparse.Namespace, config: Config, log: Log, stop: threading.Event | None = None) -> int:
    watch = config.watch
    if args.patterns:
        watch.patterns = args.patterns
    if args.run:
        watch.command = args.run
    if args.no_initial_run:
        watch.initial_run = False
    if args.truncate_on_file:
        watch.truncate_on_file = True

    if not watch.command:
        print_error("No command given: use --command or DEVLOOP_WATCH_COMMAND.")
        return 1

    rebuild = make_rebuild(watch.command, log)
    if watch.initial_run:
        rebuild()

    coordinator = WatchCoordinator(log=log, truncate_on_file=watch.truncate_on_file)
    for pattern in watch.patterns:
        coordinator.listen(pattern, rebuild)
    console.print(f"[bold]Watching {len(watch.patterns)} pattern(s). Press Ctrl+C to stop.[/bold]")

    stop = stop or threading.Event()
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        coordinator.close(timeout=5.0)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``python -m devloop``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    config = Config.from_env()
    if args.verbose:
        config.verbose = True
    log = ConsoleLog(verbose=config.verbose)

    if args.command == "new":
        return cmd_new(args, config, log)
    return cmd_watch(args, config, log)
