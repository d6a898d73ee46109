"""Path helpers and directory size calculation for nmcleaner."""

import logging
import os
import threading
from pathlib import Path

from nmcleaner.policy import VisitedSet, directory_identity, entry_identity

log = logging.getLogger(__name__)


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def normalize_root(root: str) -> str:
    """Expand and absolutize a scan root without resolving symlinks."""
    return os.path.abspath(expand_path(root))


def calculate_directory_size(
    path: str | Path,
    cancel: threading.Event | None = None,
    follow_symlinks: bool = False,
) -> int | None:
    """
    Calculate the total size of the regular files below a directory.

    Walks iteratively with os.scandir, so depth is bounded only by memory.
    Nested node_modules folders are counted like any other directory. Entries
    that cannot be read contribute nothing; directories reached twice (bind
    mounts, followed symlink loops) are counted once.

    Args:
        path: Directory to measure
        cancel: Optional event; when set the walk stops and None is returned
        follow_symlinks: Descend into symlinked directories

    Returns:
        Total bytes, or None if the directory itself could not be read or the
        walk was cancelled
    """
    top = os.fspath(path)
    visited = VisitedSet()

    try:
        visited.first_visit(directory_identity(os.stat(top)))
        with os.scandir(top) as entries:
            pending = list(entries)
    except OSError as e:
        log.debug("Cannot measure %s: %s", top, e)
        return None

    total_size = 0
    stack: list[list[os.DirEntry]] = [pending]

    while stack:
        if cancel is not None and cancel.is_set():
            return None

        for entry in stack.pop():
            try:
                if entry.is_file(follow_symlinks=False):
                    total_size += entry.stat(follow_symlinks=False).st_size
                elif entry.is_dir(follow_symlinks=follow_symlinks):
                    if not visited.first_visit(entry_identity(entry)):
                        continue
                    with os.scandir(entry.path) as children:
                        stack.append(list(children))
            except OSError:
                # Vanished or unreadable entries count as zero
                continue

    return total_size
