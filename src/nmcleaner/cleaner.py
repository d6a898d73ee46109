"""Deletion of node_modules directories with safety checks for nmcleaner."""

import logging
import os
from pathlib import Path
from typing import Callable

from send2trash import send2trash

from nmcleaner.models import NODE_MODULES, DeleteResult
from nmcleaner.policy import is_node_modules

log = logging.getLogger(__name__)

# Files whose presence marks a real dependency folder
PACKAGE_MARKERS = frozenset(
    {
        "package.json",
        "package-lock.json",
        ".package-lock.json",
        ".yarn-integrity",
        ".modules.yaml",
    }
)

# Entries inspected by looks_like_node_modules
MAX_MARKER_ENTRIES = 100


def looks_like_node_modules(path: Path) -> bool:
    """
    Check whether a directory contains typical node_modules contents.

    Looks at the first entries only: a package metadata file, a scoped
    package directory (``@scope``), ``.bin``, or a dotted package name is
    enough.

    Args:
        path: Directory to inspect

    Returns:
        True if the directory looks like installed dependencies
    """
    try:
        with os.scandir(path) as entries:
            for i, entry in enumerate(entries):
                if i >= MAX_MARKER_ENTRIES:
                    break
                try:
                    if entry.is_dir(follow_symlinks=False):
                        name = entry.name
                        if name.startswith("@") or name == ".bin":
                            return True
                        if "." in name and len(name) > 3:
                            return True
                        if (Path(entry.path) / "package.json").is_file():
                            return True
                    elif entry.name in PACKAGE_MARKERS:
                        return True
                except OSError:
                    continue
    except OSError:
        return False
    return False


def check_deletable(path: str, verify_contents: bool = False) -> str | None:
    """
    Validate a path before it is moved to the trash.

    Args:
        path: Path requested by the caller
        verify_contents: Also require node_modules-like contents

    Returns:
        Reason for refusal, or None if the path may be deleted
    """
    if not path or not os.path.isabs(path):
        return "Path must be absolute"

    target = Path(path)

    if not os.path.lexists(target):
        return "Path does not exist"

    if not target.is_dir():
        return "Path is not a directory"

    # Never touch anything that is not literally a node_modules folder
    if not is_node_modules(target.name):
        return f"Path does not end with '{NODE_MODULES}'"

    if verify_contents and not looks_like_node_modules(target):
        return "Safety check failed: this does not look like a node_modules directory"

    return None


def move_to_trash(path: Path) -> None:
    """Send a path to the platform trash / recycle bin."""
    send2trash(os.fspath(path))


def delete_single_node_modules(
    path: str,
    dry_run: bool = False,
    verify_contents: bool = False,
) -> DeleteResult:
    """
    Validate one path and move it to the trash.

    Args:
        path: Absolute path of a node_modules directory
        dry_run: If True, validate only
        verify_contents: Refuse directories that don't look like installed packages

    Returns:
        DeleteResult for this path
    """
    refusal = check_deletable(path, verify_contents)
    if refusal:
        log.warning("Refusing to delete %s: %s", path, refusal)
        return DeleteResult(path=path, success=False, error=refusal, dry_run=dry_run)

    if dry_run:
        return DeleteResult(path=path, success=True, dry_run=True)

    try:
        move_to_trash(Path(path))
    except PermissionError as e:
        log.warning("Could not trash %s: %s", path, e)
        return DeleteResult(path=path, success=False, error=f"Permission denied: {e}")
    except OSError as e:
        log.warning("Could not trash %s: %s", path, e)
        return DeleteResult(path=path, success=False, error=f"Failed to move to trash: {e}")
    except Exception as e:
        log.exception("Unexpected error trashing %s", path)
        return DeleteResult(path=path, success=False, error=f"Failed to move to trash: {e}")

    log.info("Moved %s to trash", path)
    return DeleteResult(path=path, success=True)


def delete_node_modules(
    paths: list[str],
    dry_run: bool = False,
    verify_contents: bool = False,
    progress_callback: Callable[[str, int, int], None] | None = None,
) -> list[DeleteResult]:
    """
    Delete a batch of node_modules directories.

    Every path is handled on its own: a failure is reported for that path and
    the batch carries on. Nothing is rescanned afterwards.

    Args:
        paths: Absolute node_modules paths
        dry_run: If True, validate only
        verify_contents: Refuse directories that don't look like installed packages
        progress_callback: Optional callback(path, current, total)

    Returns:
        One DeleteResult per requested path, in request order
    """
    results = []
    total = len(paths)

    for i, path in enumerate(paths):
        if progress_callback:
            progress_callback(path, i + 1, total)
        results.append(delete_single_node_modules(path, dry_run, verify_contents))

    return results
