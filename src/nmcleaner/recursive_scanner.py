"""Concurrent discovery of node_modules directories.

The scheduler keeps one stack of pending directories per root and hands them
to a bounded pool of worker threads round-robin, so a scan of several drives
makes progress on all of them at once. Matched node_modules folders are never
descended into; when sizes are requested they are measured on a separate pool
so a huge dependency tree does not hold up discovery.
"""

import logging
import os
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Optional

from nmcleaner.config import ScanConfig
from nmcleaner.models import NodeModulesMatch, ScanReport
from nmcleaner.policy import SkipPolicy, VisitedSet, classify, directory_identity, entry_identity
from nmcleaner.scanner import calculate_directory_size
from nmcleaner.session import ScanSession

log = logging.getLogger(__name__)

# How long an idle worker waits before re-checking the abort signal
_IDLE_WAIT = 0.1


@dataclass(frozen=True)
class DirectoryVisit:
    """A directory waiting to be listed."""

    path: str
    depth: int
    root: str


class TraversalScheduler:
    """Walks every root of a session and fills it with matches."""

    def __init__(
        self,
        session: ScanSession,
        config: ScanConfig | None = None,
        policy: SkipPolicy | None = None,
    ) -> None:
        self.session = session
        self.config = config or ScanConfig()
        self.policy = policy or SkipPolicy(extra_skip_names=self.config.extra_skip_names)

        self._cond = threading.Condition()
        self._queues: dict[str, deque[DirectoryVisit]] = {}
        self._turns: deque[str] = deque()
        self._visited: dict[str, VisitedSet] = {}
        self._in_flight = 0

        self._size_pool: Optional[ThreadPoolExecutor] = None
        self._size_futures: list[Future] = []
        self._size_lock = threading.Lock()

    # -- setup -------------------------------------------------------------

    def _add_root(self, root: str) -> None:
        if root in self._queues:
            return
        if self.policy.skips_root(root):
            self.session.record_root_error(root, "System location")
            return
        try:
            if not os.path.exists(root):
                self.session.record_root_error(root, "Path does not exist")
                return
            if not os.path.isdir(root):
                self.session.record_root_error(root, "Path is not a directory")
                return
            identity = directory_identity(os.stat(root))
        except OSError as e:
            self.session.record_root_error(root, f"Cannot access: {e}")
            return

        visited = VisitedSet()
        visited.first_visit(identity)
        self._visited[root] = visited
        self._queues[root] = deque([DirectoryVisit(path=root, depth=0, root=root)])
        self._turns.append(root)
        self.session.record_discovered()
        self.session.seed_estimate(1 + self._probe(root))

    def _probe(self, root: str) -> int:
        """Count the immediate subdirectories of a root for the first estimate."""
        count = 0
        try:
            with os.scandir(root) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=self.config.follow_symlinks):
                            count += 1
                    except OSError:
                        continue
        except OSError:
            return 0
        return count

    # -- queue -------------------------------------------------------------

    def _push(self, visit: DirectoryVisit) -> None:
        self.session.record_discovered()
        with self._cond:
            self._queues[visit.root].append(visit)
            self._cond.notify()

    def _pop_fair(self) -> Optional[DirectoryVisit]:
        # Caller holds self._cond
        for _ in range(len(self._turns)):
            root = self._turns[0]
            self._turns.rotate(-1)
            queue = self._queues[root]
            if queue:
                return queue.pop()
        return None

    def _next_visit(self) -> Optional[DirectoryVisit]:
        """Block until there is work; None once the scan is drained or cancelled."""
        with self._cond:
            while True:
                if self.session.cancelled:
                    self._cond.notify_all()
                    return None
                visit = self._pop_fair()
                if visit is not None:
                    self._in_flight += 1
                    return visit
                if self._in_flight == 0:
                    self._cond.notify_all()
                    return None
                self._cond.wait(_IDLE_WAIT)

    def _visit_done(self) -> None:
        with self._cond:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._cond.notify_all()

    # -- work --------------------------------------------------------------

    def _worker(self) -> None:
        while True:
            visit = self._next_visit()
            if visit is None:
                return
            try:
                self._visit(visit)
            except Exception:
                log.exception("Worker failed while visiting %s", visit.path)
                self.session.cancel(f"Internal error while visiting {visit.path}")
            finally:
                self._visit_done()

    def _visit(self, visit: DirectoryVisit) -> None:
        try:
            with os.scandir(visit.path) as entries:
                self.session.enter_folder(visit.path)
                for entry in entries:
                    if self.session.cancelled:
                        break
                    self._handle_entry(visit, entry)
        except OSError as e:
            if visit.depth == 0:
                self.session.record_root_error(visit.root, f"Cannot access: {e}")
                return
            log.debug("Skipping unreadable directory %s: %s", visit.path, e)
            self.session.record_skip()
            return
        self.session.record_scanned()

    def _handle_entry(self, visit: DirectoryVisit, entry: os.DirEntry) -> None:
        try:
            if not entry.is_dir(follow_symlinks=self.config.follow_symlinks):
                return
        except OSError:
            self.session.record_skip()
            return

        match = classify(visit.path, entry.name)
        if match is not None:
            if self.session.add_match(match) and self.session.include_sizes:
                self._measure_later(match)
            return

        depth = visit.depth + 1
        if self.policy.should_skip(entry.path, entry.name, depth):
            log.debug("Skipping system directory %s", entry.path)
            self.session.record_skip()
            return
        if self.config.max_depth is not None and depth > self.config.max_depth:
            self.session.record_skip()
            return

        try:
            identity = entry_identity(entry)
        except OSError as e:
            log.debug("Cannot stat %s: %s", entry.path, e)
            self.session.record_skip()
            return
        if not self._visited[visit.root].first_visit(identity):
            log.debug("Already visited %s", entry.path)
            self.session.record_skip()
            return

        self._push(DirectoryVisit(path=entry.path, depth=depth, root=visit.root))

    # -- sizing ------------------------------------------------------------

    def _measure_later(self, match: NodeModulesMatch) -> None:
        with self._size_lock:
            future = self._size_pool.submit(self._measure, match.node_modules_path)
            self._size_futures.append(future)

    def _measure(self, node_modules_path: str) -> None:
        try:
            size = calculate_directory_size(
                node_modules_path,
                cancel=self.session.cancel_event,
                follow_symlinks=self.config.follow_symlinks,
            )
        except Exception:
            log.exception("Size calculation failed for %s", node_modules_path)
            return
        self.session.set_size(node_modules_path, size)

    # -- entry point -------------------------------------------------------

    def _wait(self, futures: list[Future]) -> None:
        try:
            wait(futures)
        except KeyboardInterrupt:
            log.warning("Interrupted, cancelling scan")
            self.session.cancel("Interrupted")
            wait(futures)

    def run(self) -> ScanReport:
        """
        Scan every root of the session to completion (or cancellation).

        Returns:
            Report with the matches found, per-root errors and final counters
        """
        session = self.session
        session.start()
        log.info("Scanning %d root(s), sizes %s", len(session.roots), session.include_sizes)

        for root in session.roots:
            self._add_root(root)

        if self._queues:
            with ThreadPoolExecutor(
                max_workers=self.config.size_workers, thread_name_prefix="nmcleaner-size"
            ) as size_pool:
                self._size_pool = size_pool
                with ThreadPoolExecutor(
                    max_workers=self.config.workers, thread_name_prefix="nmcleaner-scan"
                ) as pool:
                    workers = [pool.submit(self._worker) for _ in range(self.config.workers)]
                    self._wait(workers)
                with self._size_lock:
                    pending = list(self._size_futures)
                self._wait(pending)

        state = session.finish()
        report = session.report()
        log.info(
            "Scan %s: %d match(es), %d folder(s) scanned, %d skipped",
            state.value,
            len(report.matches),
            report.progress.folders_scanned,
            report.progress.directories_skipped,
        )
        return report


def scan_roots(
    roots: list[str],
    include_sizes: bool = False,
    config: ScanConfig | None = None,
    policy: SkipPolicy | None = None,
) -> ScanReport:
    """
    Run a standalone scan without a progress stream or the engine guard.

    Args:
        roots: Absolute directories to walk
        include_sizes: Measure each match
        config: Optional tunables
        policy: Optional skip policy override

    Returns:
        ScanReport for the finished session
    """
    session = ScanSession(roots, include_sizes=include_sizes)
    return TraversalScheduler(session, config, policy).run()
