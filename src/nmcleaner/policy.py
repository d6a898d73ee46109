"""Skip rules and node_modules classification.

Everything here is pure apart from ``VisitedSet``, which is a small
thread-safe container shared by the workers of one root.
"""

import os
import sys
import threading
from typing import Iterable, Optional

from nmcleaner.models import NODE_MODULES, NodeModulesMatch

# Pseudo filesystems and system trees that never hold user projects
if sys.platform == "darwin":
    SYSTEM_PATHS = frozenset(
        {
            "/dev",
            "/System",
            "/private/var/vm",
            "/private/var/db",
            "/cores",
        }
    )
elif os.name == "nt":
    SYSTEM_PATHS = frozenset()
else:
    SYSTEM_PATHS = frozenset(
        {
            "/proc",
            "/sys",
            "/dev",
            "/run",
            "/snap",
            "/boot",
            "/lost+found",
        }
    )

# Never entered, wherever they appear
SKIP_DIRECTORY_NAMES = frozenset(
    {
        # Version control
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        # Package manager stores and caches
        ".pnpm-store",
        ".npm",
        ".yarn",
        ".yarn-cache",
        ".npm-cache",
        # OS trash and index folders
        ".Trash",
        ".Trashes",
        ".Spotlight-V100",
        ".fseventsd",
        ".DocumentRevisions-V100",
        ".TemporaryItems",
        "$RECYCLE.BIN",
        "System Volume Information",
        "lost+found",
    }
)

# Only skipped directly below a scan root
if os.name == "nt":
    ROOT_LEVEL_SKIP_NAMES = frozenset(
        {
            "Windows",
            "Program Files",
            "Program Files (x86)",
            "ProgramData",
            "Recovery",
        }
    )
else:
    ROOT_LEVEL_SKIP_NAMES = frozenset()


def is_node_modules(name: str) -> bool:
    """
    Check whether a directory name is exactly ``node_modules``.

    Comparison follows the platform default: case-insensitive on Windows,
    exact everywhere else.
    """
    return os.path.normcase(name) == os.path.normcase(NODE_MODULES)


def classify(parent_path: str, name: str) -> Optional[NodeModulesMatch]:
    """
    Turn a child directory into a match when it is a node_modules folder.

    Args:
        parent_path: Directory being listed (becomes the project path)
        name: Name of the child directory

    Returns:
        A match with no size, or None
    """
    if not is_node_modules(name):
        return None
    return NodeModulesMatch(
        project_path=parent_path,
        node_modules_path=os.path.join(parent_path, name),
    )


class SkipPolicy:
    """Decides which directories are never entered.

    The defaults come from ``SYSTEM_PATHS``, ``SKIP_DIRECTORY_NAMES`` and
    ``ROOT_LEVEL_SKIP_NAMES``; tests and callers can override them.
    """

    def __init__(
        self,
        system_paths: Iterable[str] | None = None,
        skip_names: Iterable[str] | None = None,
        root_level_names: Iterable[str] | None = None,
        extra_skip_names: Iterable[str] = (),
    ) -> None:
        paths = SYSTEM_PATHS if system_paths is None else system_paths
        self.system_paths = frozenset(os.path.normcase(os.path.normpath(p)) for p in paths)
        names = SKIP_DIRECTORY_NAMES if skip_names is None else skip_names
        self.skip_names = frozenset(names) | frozenset(extra_skip_names)
        self.root_level_names = frozenset(
            ROOT_LEVEL_SKIP_NAMES if root_level_names is None else root_level_names
        )

    def should_skip(self, path: str, name: str, depth: int) -> bool:
        """
        Check whether a directory must not be entered.

        Args:
            path: Absolute path of the directory
            name: Its final path component
            depth: Depth below the scan root (children of the root are 1)

        Returns:
            True if the directory is a system location or a known dead end
        """
        if name in self.skip_names:
            return True
        if depth == 1 and name in self.root_level_names:
            return True
        return os.path.normcase(os.path.normpath(path)) in self.system_paths

    def skips_root(self, root: str) -> bool:
        """Whether a scan root itself is a system location."""
        return os.path.normcase(os.path.normpath(root)) in self.system_paths

    def reaches(
        self,
        root: str,
        path: str,
        max_depth: Optional[int] = None,
        follow_symlinks: bool = False,
    ) -> bool:
        """
        Check whether a walk of ``root`` would enter ``path``.

        Used to drop scan roots nested in another root, such as a volume
        mounted under ``/media`` when ``/`` is scanned as well. Both paths
        are absolute. A root does not reach itself.
        """
        if self.skips_root(root):
            return False
        try:
            relative = os.path.relpath(path, root)
        except ValueError:
            # Different drives on Windows
            return False
        parts = relative.split(os.sep)
        if relative == os.curdir or parts[0] == os.pardir:
            return False
        if max_depth is not None and len(parts) > max_depth:
            return False

        current = root
        for depth, name in enumerate(parts, start=1):
            current = os.path.join(current, name)
            if is_node_modules(name) or self.should_skip(current, name, depth):
                return False
            if not follow_symlinks and os.path.islink(current):
                return False
        return True


def directory_identity(stat_result: os.stat_result) -> Optional[tuple[int, int]]:
    """
    Stable identity of a directory, or None when the platform gives none.

    Args:
        stat_result: Result of a following stat() call

    Returns:
        (device, inode) tuple
    """
    if stat_result.st_ino == 0:
        return None
    return stat_result.st_dev, stat_result.st_ino


def entry_identity(entry: os.DirEntry) -> Optional[tuple[int, int]]:
    """Identity of a scandir entry's target directory."""
    if os.name == "nt":
        # DirEntry.stat() leaves st_dev/st_ino empty on Windows
        return directory_identity(os.stat(entry.path))
    return directory_identity(entry.stat(follow_symlinks=True))


class VisitedSet:
    """Directory identities already entered during one traversal."""

    def __init__(self) -> None:
        self._seen: set[tuple[int, int]] = set()
        self._lock = threading.Lock()

    def first_visit(self, identity: Optional[tuple[int, int]]) -> bool:
        """
        Record an identity.

        Returns:
            False if it was seen before, True otherwise (unknown identities
            always count as first visits)
        """
        if identity is None:
            return True
        with self._lock:
            if identity in self._seen:
                return False
            self._seen.add(identity)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
