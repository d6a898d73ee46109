"""Scan configuration for nmcleaner."""

import os
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_SIZE_WORKERS = 4
DEFAULT_PROGRESS_INTERVAL = 0.1  # seconds
DEFAULT_CHANNEL_CAPACITY = 16


def default_workers() -> int:
    """Traversal pool size: listing is I/O bound, so oversubscribe the CPUs."""
    return min(32, (os.cpu_count() or 1) * 2)


class ScanConfig(BaseModel):
    """Tunables for one scan session."""

    workers: int = Field(
        default_factory=default_workers,
        ge=1,
        description="Threads listing and classifying directories",
    )
    size_workers: int = Field(
        DEFAULT_SIZE_WORKERS,
        ge=1,
        description="Threads summing node_modules sizes",
    )
    progress_interval: float = Field(
        DEFAULT_PROGRESS_INTERVAL,
        gt=0,
        description="Seconds between progress snapshots",
    )
    channel_capacity: int = Field(
        DEFAULT_CHANNEL_CAPACITY,
        ge=1,
        description="Snapshots buffered before older ones are dropped",
    )
    follow_symlinks: bool = Field(
        False,
        description="Traverse symlinked directories (cycles are still detected)",
    )
    max_depth: Optional[int] = Field(
        None,
        ge=1,
        description="Deepest level below a root that is entered, unlimited when unset",
    )
    extra_skip_names: list[str] = Field(
        default_factory=list,
        description="Additional directory names that are never entered",
    )
