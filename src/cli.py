#!/usr/bin/env python3
"""
CLI for watching directories for changes.

Usage:
    fswatch [-t FILE-EXTENSION] DIRECTORIES...
    fswatch [-t FILE-EXTENSION] -- DIRECTORIES...

Prints one line to stdout for every change.
"""

import argparse
import logging
import signal
import sys
from datetime import datetime
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from src.fswatch import ConfigError, Watcher, WatcherConfig


USAGE = (
    "Usage: fswatch [-t FILE-EXTENSION] DIRECTORIES...\n"
    "This will print one line to stdout for every change."
)

logger = logging.getLogger("cli")


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that raises ConfigError instead of exiting."""

    def error(self, message):
        raise ConfigError(message)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = _ArgumentParser(prog="fswatch", add_help=False)
    parser.add_argument("-t", dest="extension", metavar="FILE-EXTENSION", default=None)
    parser.add_argument("directories", nargs="*")
    return parser


def split_terminator(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Split arguments at the first '--'; everything after it is a directory."""
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def check_options(arguments: List[str]) -> None:
    """Reject anything starting with '-' other than -t and its value."""
    expect_value = False
    for argument in arguments:
        if expect_value:
            expect_value = False
        elif argument == "-t":
            expect_value = True
        elif argument.startswith("-"):
            raise ConfigError(f"Unknown option: {argument}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    -t may appear anywhere before '--', between directories.

    Args:
        argv: Arguments without the program name (default: sys.argv[1:])

    Returns:
        Namespace with extension and directories

    Raises:
        ConfigError: On unknown options, a missing -t value or no directories
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    options, verbatim = split_terminator(argv)
    check_options(options)

    args = build_parser().parse_intermixed_args(options)
    args.directories.extend(verbatim)
    if not args.directories:
        raise ConfigError("No directories given")
    return args


def syntax_error() -> None:
    """Print usage to stderr and exit with status 1."""
    print(USAGE, file=sys.stderr)
    sys.exit(1)


def timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def say(message: str) -> None:
    """Print a timestamped line to stdout and flush it."""
    print(f"fswatch: [{timestamp()}] {message}", flush=True)


def setup_logging(level: str) -> None:
    """Send log records to stderr, keeping stdout for change lines."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


class GracefulShutdown:
    """Stop the watcher on SIGINT/SIGTERM."""

    def __init__(self, watcher: Watcher):
        self.watcher = watcher
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        # Only flag intent here; the watcher loop notices it
        self.should_exit = True
        self.watcher.stop()


def cmd_watch(args: argparse.Namespace, config: WatcherConfig) -> None:
    """Watch the given directories until interrupted."""
    watcher = Watcher(args.directories, extension=args.extension, config=config)
    shutdown = GracefulShutdown(watcher)

    say(f"Watching '{watcher.path}' for '{watcher.glob}'.")
    watcher.on_change(lambda: say("Change detected."))
    watcher.run()

    if shutdown.should_exit:
        logger.info("Received shutdown signal, stopped")
    logger.debug(f"Watcher stats: {watcher.stats.to_dict()}")


def main(argv: Optional[List[str]] = None) -> None:
    load_dotenv()

    try:
        args = parse_args(argv)
    except ConfigError:
        syntax_error()

    try:
        config = WatcherConfig.from_env()
    except ConfigError as e:
        print(f"fswatch: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_level)
    cmd_watch(args, config)


if __name__ == "__main__":
    main()
