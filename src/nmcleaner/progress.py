"""Throttled progress reporting for scan sessions.

The reporter samples a ``ScanSession`` on a fixed interval and publishes
snapshots into a bounded ``ProgressChannel``. A slow consumer never slows the
scan down: when the channel is full the oldest snapshot is dropped, since a
newer one supersedes it. The terminal snapshot is published by ``close()`` and
is never dropped.
"""

import logging
import threading
from collections import deque
from typing import Callable, Iterator, Optional

from nmcleaner.config import DEFAULT_CHANNEL_CAPACITY, DEFAULT_PROGRESS_INTERVAL
from nmcleaner.models import ScanProgress
from nmcleaner.session import ScanSession

log = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]


class ProgressChannel:
    """Bounded, merging queue of progress snapshots."""

    def __init__(self, capacity: int = DEFAULT_CHANNEL_CAPACITY) -> None:
        self._buffer: deque[ScanProgress] = deque(maxlen=capacity)
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    def publish(self, snapshot: ScanProgress) -> bool:
        """
        Queue an intermediate snapshot.

        Returns:
            False if the channel is already closed
        """
        with self._cond:
            if self._closed:
                return False
            if len(self._buffer) == self._buffer.maxlen:
                self.dropped += 1
            self._buffer.append(snapshot)
            self._cond.notify()
            return True

    def close(self, final: ScanProgress) -> None:
        """Publish the terminal snapshot and stop accepting more."""
        with self._cond:
            if self._closed:
                return
            if len(self._buffer) == self._buffer.maxlen:
                self.dropped += 1
            self._buffer.append(final)
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def get(self, timeout: Optional[float] = None) -> Optional[ScanProgress]:
        """
        Take the oldest buffered snapshot.

        Blocks until one is available, the channel is closed and drained, or
        the timeout expires. Returns None in the last two cases.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._buffer or self._closed, timeout):
                return None
            if self._buffer:
                return self._buffer.popleft()
            return None

    def __iter__(self) -> Iterator[ScanProgress]:
        while True:
            snapshot = self.get()
            if snapshot is None:
                return
            yield snapshot


class ProgressReporter:
    """Samples a session on a timer and feeds a channel."""

    def __init__(
        self,
        session: ScanSession,
        channel: ProgressChannel,
        interval: float = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        self.session = session
        self.channel = channel
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        # Initial snapshot so consumers see the session before the first tick
        self.channel.publish(self.session.snapshot())
        self._thread = threading.Thread(
            target=self._run, name="nmcleaner-progress", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.channel.publish(self.session.snapshot())

    def finish(self) -> ScanProgress:
        """Stop sampling and publish the terminal snapshot."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
        final = self.session.snapshot(is_complete=True)
        self.channel.close(final)
        return final


class ProgressDispatcher:
    """Drains a channel on its own thread and hands snapshots to a callback.

    Callback failures are logged and never reach the scan.
    """

    def __init__(self, channel: ProgressChannel, callback: ProgressCallback) -> None:
        self.channel = channel
        self.callback = callback
        self._thread = threading.Thread(
            target=self._run, name="nmcleaner-progress-dispatch", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        for snapshot in self.channel:
            try:
                self.callback(snapshot)
            except Exception:
                log.exception("Progress callback failed")

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)
