"""
Command line interface for codenav.

Usage:
    codenav [--moodle-path P] [--config F] [--log-level L] symbol NAME [--type T] [--dir D]
    codenav ... usage TERM [--dir D ...] [--max N]
    codenav ... read FILE [--start N] [--end N]
    codenav ... tree [DIR] [--depth N]
"""

import argparse
import sys
from typing import List, Optional
import logging

from . import __version__
from .config.parser import configure_logging, load_config, validate_moodle_root
from .errors import NavigatorError
from .navigator import CodeNavigator, SYMBOL_TYPES
from .tools.ripgrep import validate_ripgrep_installed


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codenav",
        description="Navigate a Moodle/PHP source tree with ripgrep",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--moodle-path", dest="moodle_path", help="Root of the source tree")
    parser.add_argument("--config", help="Path to a codenav YAML configuration file")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")

    sub = parser.add_subparsers(dest="command", required=True)

    symbol = sub.add_parser("symbol", help="Find class, function, or constant definitions")
    symbol.add_argument("name")
    symbol.add_argument("--type", dest="symbol_type", choices=SYMBOL_TYPES, default="any")
    symbol.add_argument("--dir", dest="directory")

    usage = sub.add_parser("usage", help="Find usage examples of a term")
    usage.add_argument("term")
    usage.add_argument("--dir", dest="directories", action="append")
    usage.add_argument("--max", dest="max_results", type=int)

    read = sub.add_parser("read", help="Read a file with line numbers")
    read.add_argument("file")
    read.add_argument("--start", type=int, default=1)
    read.add_argument("--end", type=int)

    tree = sub.add_parser("tree", help="Show the directory structure")
    tree.add_argument("directory", nargs="?", default=".")
    tree.add_argument("--depth", type=int)

    return parser


def run(args: argparse.Namespace) -> str:
    """Load configuration, check the environment, and run one command."""
    result = load_config(args.config, root_override=args.moodle_path)
    config = result.config
    if not args.log_level:
        logging.getLogger().setLevel(config.get_logging_level())

    logger.info(f"Moodle path: {config.root}")
    validate_moodle_root(config.root)
    validate_ripgrep_installed(config.engine.binary)

    navigator = CodeNavigator(config)

    if args.command == "symbol":
        return navigator.search_symbol(args.name, args.symbol_type, args.directory)
    if args.command == "usage":
        return navigator.find_usage(args.term, args.directories, args.max_results)
    if args.command == "read":
        return navigator.read_file_content(args.file, args.start, args.end)
    return navigator.list_structure(args.directory, args.depth)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging((args.log_level or "INFO").upper())
        output = run(args)
    except (NavigatorError, ValueError) as e:
        print(f"codenav: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
