"""
Exceptions raised by the nmcleaner engine.

Only requests that are rejected before any work begins raise. Failures that
happen while scanning or deleting are recorded on the returned results instead.
"""

from typing import Optional


class NmCleanerError(Exception):
    """Base class for all nmcleaner errors."""


class ScanInProgressError(NmCleanerError):
    """
    Raised when the engine is already busy.

    A second scan, or a deletion while a scan is running (or the reverse), is
    rejected rather than queued.

    Attributes:
        activity: What the engine is currently doing ("scan" or "delete").
    """

    def __init__(self, activity: str, message: Optional[str] = None):
        self.activity = activity
        self.message = message or f"Cannot start: a {activity} is already running"
        super().__init__(self.message)


class InvalidScanRequestError(NmCleanerError):
    """Raised for a structurally invalid scan request, such as no roots."""


class SessionStateError(NmCleanerError):
    """Raised on an illegal scan session state transition."""


class FolderOpenError(NmCleanerError):
    """Raised when no file manager could open a folder."""
