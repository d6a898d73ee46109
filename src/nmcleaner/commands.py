"""Command surface of the nmcleaner engine.

These are the operations a front end (the CLI, or any UI process) calls. The
engine runs one thing at a time: a scan and a deletion never overlap, and a
second request while busy is rejected with ``ScanInProgressError``.
"""

import logging
import os
import threading
from typing import Optional

from nmcleaner import cleaner, drives
from nmcleaner.config import ScanConfig
from nmcleaner.exceptions import InvalidScanRequestError, ScanInProgressError
from nmcleaner.models import DeleteResult, DriveInfo, NodeModulesMatch, ScanReport
from nmcleaner.policy import SkipPolicy
from nmcleaner.progress import (
    ProgressCallback,
    ProgressChannel,
    ProgressDispatcher,
    ProgressReporter,
)
from nmcleaner.recursive_scanner import TraversalScheduler
from nmcleaner.scanner import normalize_root
from nmcleaner.session import ScanSession

log = logging.getLogger(__name__)

_engine_lock = threading.Lock()
_activity: Optional[str] = None
_active_session: Optional[ScanSession] = None


def _acquire(activity: str) -> None:
    global _activity
    if not _engine_lock.acquire(blocking=False):
        raise ScanInProgressError(_activity or "scan")
    _activity = activity


def _release() -> None:
    global _activity, _active_session
    _activity = None
    _active_session = None
    _engine_lock.release()


def is_busy() -> bool:
    """Whether a scan or deletion is currently running."""
    return _engine_lock.locked()


def active_session() -> Optional[ScanSession]:
    """The running scan session, if any."""
    return _active_session


def _prepare_roots(
    roots: list[str],
    policy: SkipPolicy | None = None,
    config: ScanConfig | None = None,
) -> list[str]:
    prepared: list[str] = []
    for root in roots:
        if not root or not root.strip():
            continue
        normalized = normalize_root(root.strip())
        if normalized not in prepared:
            prepared.append(normalized)
    if not prepared:
        raise InvalidScanRequestError("At least one scan root is required")

    # A root the walk of another root enters anyway would be scanned twice
    config = config or ScanConfig()
    policy = policy or SkipPolicy(extra_skip_names=config.extra_skip_names)
    outers = [r for r in prepared if os.path.isdir(r)]
    kept = []
    for root in prepared:
        covering = next(
            (
                outer
                for outer in outers
                if policy.reaches(outer, root, config.max_depth, config.follow_symlinks)
            ),
            None,
        )
        if covering is not None:
            log.info("Root %s is scanned as part of %s", root, covering)
            continue
        kept.append(root)
    return kept


def list_drives() -> list[DriveInfo]:
    """List drives and mounted volumes usable as scan roots."""
    return drives.list_drives()


def run_scan(
    roots: list[str],
    include_sizes: bool = False,
    on_progress: ProgressCallback | None = None,
    config: ScanConfig | None = None,
    policy: SkipPolicy | None = None,
) -> ScanReport:
    """
    Run a guarded scan session and return its full report.

    Progress snapshots are delivered to ``on_progress`` from a dispatcher
    thread; the terminal snapshot is always delivered before this returns.

    Args:
        roots: Folders, drives or mount points to walk
        include_sizes: Measure every match
        on_progress: Optional callback receiving ScanProgress snapshots
        config: Optional tunables
        policy: Optional skip policy override

    Returns:
        ScanReport with matches, root errors and final counters

    Raises:
        InvalidScanRequestError: If no usable root was given
        ScanInProgressError: If a scan or deletion is already running
    """
    global _active_session

    config = config or ScanConfig()
    prepared = _prepare_roots(roots, policy, config)

    _acquire("scan")
    try:
        session = ScanSession(prepared, include_sizes=include_sizes)
        _active_session = session

        channel = ProgressChannel(config.channel_capacity)
        reporter = ProgressReporter(session, channel, config.progress_interval)
        dispatcher = ProgressDispatcher(channel, on_progress) if on_progress else None

        if dispatcher:
            dispatcher.start()
        reporter.start()
        try:
            report = TraversalScheduler(session, config, policy).run()
        finally:
            reporter.finish()
            if dispatcher:
                dispatcher.join()
        return report
    finally:
        _release()


def start_scan_with_progress(
    roots: list[str],
    include_sizes: bool,
    on_progress: ProgressCallback | None = None,
    config: ScanConfig | None = None,
) -> list[NodeModulesMatch]:
    """Scan roots while streaming progress; resolves with the match list."""
    return run_scan(roots, include_sizes, on_progress=on_progress, config=config).matches


def start_scan(
    roots: list[str],
    include_sizes: bool,
    config: ScanConfig | None = None,
) -> list[NodeModulesMatch]:
    """Scan roots without a progress stream."""
    return run_scan(roots, include_sizes, config=config).matches


def cancel_scan() -> bool:
    """
    Raise the abort signal of the running scan.

    Returns:
        True if a scan was running
    """
    session = _active_session
    if session is None:
        return False
    log.warning("Cancelling scan")
    session.cancel()
    return True


def delete_node_modules(
    paths: list[str],
    dry_run: bool = False,
    verify_contents: bool = False,
) -> list[DeleteResult]:
    """
    Move node_modules directories to the trash.

    Raises:
        ScanInProgressError: If a scan (or another deletion) is running
    """
    _acquire("delete")
    try:
        return cleaner.delete_node_modules(paths, dry_run=dry_run, verify_contents=verify_contents)
    finally:
        _release()


def open_folder_in_explorer(path: str) -> None:
    """Open a folder in the system file manager."""
    drives.open_folder_in_explorer(path)
