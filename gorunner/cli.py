#!/usr/bin/env python3
"""
gorunner command line

Usage:
    gorunner [options] [-- arguments passed to the program]

Watches *.go, go.mod and go.sum files, runs the tests, then rebuilds and
restarts the program in the entry directory on every change. Stop it with
Ctrl+C.
"""

import argparse
import os
import signal
import sys
import threading
from typing import Any, Dict, List, Optional, Sequence

from gorunner import __version__
from gorunner.config_loader import load_config
from gorunner.errors import UserError, format_error_for_display
from gorunner.log import RunnerLogger, setup_logging
from gorunner.runner import Runner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gorunner",
        description="Rebuild and restart a Go program whenever its sources change",
        epilog="Arguments after '--' are passed to the program, "
               "e.g. gorunner -- -c config.json --http=:8080"
    )
    parser.add_argument("-e", "--entry", default=None,
                        help="The directory with the main.go file (default: ./)")
    parser.add_argument("-t", "--tests", action="append", default=None,
                        help="Test directory in which 'go test' is executed (repeatable, default: ./)")
    parser.add_argument("-s", "--skip-tests", action="store_true", default=None,
                        help="Don't run any tests")
    parser.add_argument("-r", "--test-non-recursive", action="store_true", default=None,
                        help="Don't run tests recursively")
    parser.add_argument("-w", "--watch-dirs", action="append", default=None,
                        help="Directory to watch recursively for *.go, go.mod and go.sum changes "
                             "(repeatable, default: ./)")
    parser.add_argument("-x", "--exclude-dirs", action="append", default=None,
                        help="Don't listen to changes in this directory (repeatable)")
    parser.add_argument("--tags", action="append", default=None,
                        help="Build tag for 'go build' (repeatable)")
    parser.add_argument("--race", action="store_true", default=None,
                        help="Build with the race detector")
    parser.add_argument("--ldflags", default=None, help="ldflags for 'go build'")
    parser.add_argument("--gcflags", default=None, help="gcflags for 'go build'")
    parser.add_argument("-d", "--use-dlv", action="store_true", default=None,
                        help="Use delve to run the program")
    parser.add_argument("-p", "--port", type=int, default=None,
                        help="Listen port for delve (default: 2345)")
    parser.add_argument("-a", "--address", default=None,
                        help="Listen address for delve (default: 0.0.0.0)")
    parser.add_argument("-v", "--api-version", type=int, default=None,
                        help="API version to use for the delve server (default: 2)")
    parser.add_argument("-c", "--config", default=None,
                        help="Configuration file (default: ./.gorunner.json if present)")
    parser.add_argument("--log-level", default=os.getenv("GORUNNER_LOG_LEVEL", "info"),
                        choices=["debug", "info", "warn", "error"], help="Console log level")
    parser.add_argument("--no-color", action="store_true", help="Disable coloured output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command_args", nargs=argparse.REMAINDER,
                        help="Arguments passed to the program (after '--')")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed flags into config overrides; unset flags are left out."""
    command_args: List[str] = list(args.command_args or [])
    if command_args and command_args[0] == "--":
        command_args = command_args[1:]

    delve: Dict[str, Any] = {
        "enabled": args.use_dlv,
        "port": args.port,
        "address": args.address,
        "api_version": args.api_version,
    }
    overrides: Dict[str, Any] = {
        "working_directory": args.entry,
        "test_directories": args.tests,
        "run_tests": False if args.skip_tests else None,
        "recursive_tests": False if args.test_non_recursive else None,
        "watch_dirs": args.watch_dirs,
        "exclude_dirs": args.exclude_dirs,
        "tags": args.tags,
        "race_detector": args.race,
        "ldflags": args.ldflags,
        "gcflags": args.gcflags,
        "command_args": command_args or None,
        "delve": {k: v for k, v in delve.items() if v is not None} or None,
    }
    return {k: v for k, v in overrides.items() if v is not None}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level, use_colors=False if args.no_color else None)
    log = RunnerLogger(logger)

    try:
        config = load_config(args.config, **overrides_from_args(args))
    except UserError as e:
        print(format_error_for_display(e), file=sys.stderr)
        return 1

    runner = Runner(config, log)
    try:
        runner.watch()
    except UserError as e:
        log.error(str(e))
        return 1

    interrupted = threading.Event()

    def _on_signal(signum, frame):
        interrupted.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    while not interrupted.is_set():
        if runner.wait(timeout=0.2):
            break

    log.info("Shutting down gorunner...")
    error = runner.stop()
    if error is not None:
        log.warn(f"Failed to close the change notifier: {error}")

    if runner.fatal_error is not None:
        print(format_error_for_display(runner.fatal_error), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
