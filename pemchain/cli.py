#
# what goes on in CLI-land?
#

import argparse
import logging
import sys
from typing import List, Optional

from pemchain.chain import ChainBuilder
from pemchain.discovery import list_paths
from pemchain.display import render
from pemchain.settings import MAX_FILE_SIZE, MAX_PATHS, Settings


logger = logging.getLogger("pemchain")


def non_negative_int(value: str) -> int:
    """argparse type for counts and sizes."""
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, not {number}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns: Parsed arguments

    """

    parser = argparse.ArgumentParser(
        prog="pemchain",
        description="Match private keys with their requests and certificates, and trace who signed what"
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug output"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "-H",
        "--hidden",
        action="store_true",
        help="Process hidden files and directories"
    )
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Process directories recursively"
    )
    parser.add_argument(
        "-S",
        "--follow-symlinks",
        action="store_true",
        help="Follow symbolic links"
    )
    parser.add_argument(
        "-U",
        "--unlimited",
        action="store_true",
        help="Process an unlimited number of file paths"
    )
    parser.add_argument(
        "-X",
        "--cross-filesystems",
        action="store_true",
        help="Cross filesystem boundaries"
    )
    parser.add_argument(
        "--max-paths",
        type=non_negative_int,
        default=MAX_PATHS,
        help=f"Maximum number of file paths to process (default: {MAX_PATHS})"
    )
    parser.add_argument(
        "-m",
        "--max-file-size",
        type=non_negative_int,
        default=MAX_FILE_SIZE,
        help="Maximum size in bytes to process potential PEM/key/etc files"
    )
    parser.add_argument(
        "--no-sort",
        action="store_true",
        help="Keep directory entries in filesystem order instead of sorting them by name"
    )

    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "-l",
        dest="output",
        action="store_const",
        const="oneline",
        help="Output each chain as a row of values"
    )
    output.add_argument(
        "-L",
        dest="output",
        action="store_const",
        const="oneline-no-header",
        help="Output each chain as a row of values (header excluded)"
    )
    output.add_argument(
        "-o",
        "--output",
        dest="output",
        choices=["tree", "oneline", "json"],
        help="Output format (default: tree)"
    )

    parser.add_argument(
        "paths",
        metavar="PATH",
        nargs="*",
        help="Files or directories to analyze (default: current directory)"
    )
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    output = args.output or "tree"

    return Settings(
        verbose             = args.verbose,
        debug               = args.debug,
        max_file_size       = args.max_file_size,
        max_paths           = args.max_paths,
        unlimited           = args.unlimited,
        recursive           = args.recursive,
        hidden              = args.hidden,
        follow_symlinks     = args.follow_symlinks,
        cross_filesystems   = args.cross_filesystems,
        sort_paths          = not args.no_sort,
        output_format       = "oneline" if output == "oneline-no-header" else output,
        header              = output != "oneline-no-header",
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Configure logging based on settings
    if settings.debug:
        logger.setLevel(logging.DEBUG)
    elif settings.verbose:
        logger.setLevel(logging.INFO)
    else:
        logger.setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = settings_from_args(args)
    configure_logging(settings)

    #
    # a path we were told about but can't read kills the whole run
    #
    try:
        paths = list_paths(args.paths, settings)
    except OSError as e:
        print(f"pemchain: {e}", file=sys.stderr)
        return 1

    logger.info(f"Processing {len(paths)} files")

    chains = ChainBuilder(settings).build(paths)

    output = render(chains, settings.output_format, header=settings.header)
    if output:
        print(output)

    return 0
