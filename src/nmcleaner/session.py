"""Shared state of a single scan session."""

import logging
import threading
from typing import Optional

from nmcleaner.exceptions import SessionStateError
from nmcleaner.models import (
    NodeModulesMatch,
    RootError,
    ScanProgress,
    ScanReport,
    ScanState,
)

log = logging.getLogger(__name__)

_TRANSITIONS = {
    ScanState.IDLE: {ScanState.RUNNING},
    ScanState.RUNNING: {ScanState.COMPLETED, ScanState.ABORTED},
    ScanState.COMPLETED: set(),
    ScanState.ABORTED: set(),
}


class ScanSession:
    """Counters, matches and lifecycle of one scan.

    Workers and the progress reporter share a session; everything mutable is
    guarded by one lock. Counters only ever grow. Readers get copies through
    ``snapshot()`` and ``report()``.
    """

    def __init__(self, roots: list[str], include_sizes: bool = False) -> None:
        self.roots = list(roots)
        self.include_sizes = include_sizes
        self.cancel_event = threading.Event()

        self._lock = threading.Lock()
        self._state = ScanState.IDLE
        self._abort_reason: Optional[str] = None
        self._matches: dict[str, NodeModulesMatch] = {}
        self._root_errors: list[RootError] = []

        self._current_folder = ""
        self._folders_scanned = 0
        self._directories_skipped = 0
        self._discovered = 0
        self._estimate_seed = 0

    # -- lifecycle ---------------------------------------------------------

    @property
    def state(self) -> ScanState:
        with self._lock:
            return self._state

    def _transition(self, target: ScanState) -> None:
        with self._lock:
            if target not in _TRANSITIONS[self._state]:
                raise SessionStateError(f"Cannot move scan from {self._state.value} to {target.value}")
            self._state = target

    def start(self) -> None:
        self._transition(ScanState.RUNNING)

    def finish(self) -> ScanState:
        """Move to the terminal state: aborted if cancelled, else completed."""
        target = ScanState.ABORTED if self.cancelled else ScanState.COMPLETED
        self._transition(target)
        return target

    def cancel(self, reason: str = "Cancelled") -> None:
        """Raise the abort signal; workers stop taking new directories."""
        with self._lock:
            if self._abort_reason is None:
                self._abort_reason = reason
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    # -- worker updates ----------------------------------------------------

    def enter_folder(self, path: str) -> None:
        """Note the directory a worker is listing right now."""
        with self._lock:
            self._current_folder = path

    def record_scanned(self) -> None:
        with self._lock:
            self._folders_scanned += 1

    def record_skip(self, count: int = 1) -> None:
        with self._lock:
            self._directories_skipped += count

    def record_discovered(self, count: int = 1) -> None:
        """Count directories queued for a visit (feeds the estimate)."""
        with self._lock:
            self._discovered += count

    def seed_estimate(self, count: int) -> None:
        """Add the result of a shallow probe to the estimate seed."""
        with self._lock:
            self._estimate_seed += count

    def add_match(self, match: NodeModulesMatch) -> bool:
        """
        Record a match once per node_modules path.

        Returns:
            True if the match is new
        """
        with self._lock:
            if match.node_modules_path in self._matches:
                return False
            self._matches[match.node_modules_path] = match
            return True

    def set_size(self, node_modules_path: str, size: Optional[int]) -> None:
        with self._lock:
            match = self._matches.get(node_modules_path)
            if match is not None:
                match.size = size

    def record_root_error(self, root: str, reason: str) -> None:
        log.warning("Skipping root %s: %s", root, reason)
        with self._lock:
            self._root_errors.append(RootError(root=root, reason=reason))

    # -- readers -----------------------------------------------------------

    def _estimate(self) -> int:
        return max(self._estimate_seed, self._discovered, self._folders_scanned)

    def snapshot(self, is_complete: bool = False) -> ScanProgress:
        """Copy the counters into a progress snapshot."""
        with self._lock:
            return ScanProgress(
                current_folder=self._current_folder,
                folders_scanned=self._folders_scanned,
                total_folders_estimated=self._estimate(),
                node_modules_found=len(self._matches),
                directories_skipped=self._directories_skipped,
                is_complete=is_complete,
            )

    def matches(self) -> list[NodeModulesMatch]:
        with self._lock:
            return [m.model_copy() for m in self._matches.values()]

    def report(self) -> ScanReport:
        """Build the final report; call once the session is terminal."""
        state = self.state
        with self._lock:
            root_errors = list(self._root_errors)
        return ScanReport(
            state=state,
            matches=self.matches(),
            root_errors=root_errors,
            progress=self.snapshot(is_complete=state in (ScanState.COMPLETED, ScanState.ABORTED)),
            abort_reason=self._abort_reason if state == ScanState.ABORTED else None,
        )
