#
# turn command line arguments into a flat list of files to look at
#

import logging
import os
import stat
from typing import Iterator, List, Set, Tuple

from pemchain.settings import Settings


logger = logging.getLogger(__name__)


def list_paths(arguments: List[str], settings: Settings) -> List[str]:
    """Expand arguments into file paths.

    Files named on the command line are always kept; directories are expanded
    according to settings. No arguments means the current directory. Every
    argument is checked before any directory is expanded, and only files
    found by expanding directories count against the limit.

    Args:
        arguments: Paths given by the user
        settings: Application settings

    Returns:
        File paths in discovery order

    Raises:
        OSError: an argument (or a directory named as one) can't be read
    """
    resolved = [(argument, os.stat(argument)) for argument in arguments or ["."]]

    # a named directory that can't be listed is fatal even if the limit is hit first
    for argument, st in resolved:
        if stat.S_ISDIR(st.st_mode):
            with os.scandir(argument):
                pass

    found: List[str] = []
    seen: Set[Tuple[int, int]] = set()
    expanded = 0
    truncated = False

    for argument, st in resolved:
        if stat.S_ISREG(st.st_mode):
            found.append(argument)
            continue

        if not stat.S_ISDIR(st.st_mode):
            logger.warning(f"Skipping '{argument}', not a file")
            continue

        for path in _walk(argument, st.st_dev, settings, seen, explicit=True):
            if not settings.unlimited and expanded >= settings.max_paths:
                truncated = True
                break
            found.append(path)
            expanded += 1

    if truncated:
        logger.warning(f"More than {settings.max_paths} files found, ignoring the rest (use --unlimited to process them all)")

    return found


def _walk(directory: str, root_dev: int, settings: Settings, seen: Set[Tuple[int, int]], explicit: bool = False) -> Iterator[str]:
    """Yield the files of directory (and of its subdirectories when recursive).

    Args:
        directory: Directory to list
        root_dev: Device of the directory named on the command line
        settings: Application settings
        seen: (device, inode) of every directory walked so far
        explicit: directory was named on the command line; errors are fatal
    """
    try:
        st = os.stat(directory)
        if (st.st_dev, st.st_ino) in seen:
            logger.debug(f"Already walked '{directory}'")
            return
        seen.add((st.st_dev, st.st_ino))

        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        if explicit:
            raise
        logger.warning(f"Skipping '{directory}': {e}")
        return

    if settings.sort_paths:
        entries.sort(key=lambda entry: entry.name)

    for entry in entries:
        if entry.name.startswith(".") and not settings.hidden:
            logger.debug(f"Skipping hidden '{entry.path}'")
            continue

        try:
            if entry.is_symlink() and not settings.follow_symlinks:
                logger.debug(f"Skipping symbolic link '{entry.path}'")
                continue

            if entry.is_file():
                yield entry.path

            elif entry.is_dir():
                if not settings.recursive:
                    continue

                if not settings.cross_filesystems and entry.stat().st_dev != root_dev:
                    logger.info(f"Skipping '{entry.path}', on another filesystem")
                    continue

                yield from _walk(entry.path, root_dev, settings, seen)

        except OSError as e:
            logger.warning(f"Skipping '{entry.path}': {e}")
