"""Data models for nmcleaner."""

import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

NODE_MODULES = "node_modules"


def format_size(size_bytes: Optional[int]) -> str:
    """Format bytes to human-readable string (decimal units), dash when unknown."""
    if size_bytes is None:
        return "—"
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class ScanState(str, Enum):
    """Lifecycle of a scan session."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"  # Every queue drained
    ABORTED = "aborted"  # Cancelled or failed, results are partial


class NodeModulesMatch(BaseModel):
    """A node_modules directory found during a scan."""

    project_path: str = Field(..., description="Directory containing the node_modules folder")
    node_modules_path: str = Field(..., description="Absolute path of the node_modules folder")
    size: Optional[int] = Field(
        None,
        ge=0,
        description="Total bytes of regular files, absent unless sizing was requested and finished",
    )

    @model_validator(mode="after")
    def _check_paths(self) -> "NodeModulesMatch":
        # Case-insensitive where the platform is (Windows)
        basename = os.path.basename(self.node_modules_path)
        if os.path.normcase(basename) != os.path.normcase(NODE_MODULES):
            raise ValueError(f"not a node_modules path: {self.node_modules_path}")
        if os.path.dirname(self.node_modules_path) != self.project_path:
            raise ValueError(
                f"project_path {self.project_path!r} is not the parent of {self.node_modules_path!r}"
            )
        return self

    @classmethod
    def from_path(cls, node_modules_path: str) -> "NodeModulesMatch":
        """Build a match from the node_modules path alone."""
        return cls(
            project_path=os.path.dirname(node_modules_path),
            node_modules_path=node_modules_path,
        )

    @property
    def size_human(self) -> str:
        """Human-readable size string."""
        return format_size(self.size)


class ScanProgress(BaseModel):
    """Point-in-time snapshot of a running scan."""

    current_folder: str = Field("", description="Directory most recently entered by a worker")
    folders_scanned: int = Field(0, description="Directories listed so far")
    total_folders_estimated: int = Field(
        0, description="Advisory estimate of the total directory count, only grows"
    )
    node_modules_found: int = Field(0, description="Matches recorded so far")
    directories_skipped: int = Field(0, description="Directories intentionally not entered")
    is_complete: bool = Field(False, description="Set on the terminal snapshot only")

    @property
    def percent(self) -> float:
        """Advisory completion percentage, capped below 100 until complete."""
        if self.is_complete:
            return 100.0
        if self.total_folders_estimated <= 0:
            return 0.0
        return min(99.0, self.folders_scanned / self.total_folders_estimated * 100)


class DeleteResult(BaseModel):
    """Outcome of deleting a single path."""

    path: str = Field(..., description="Path as requested by the caller")
    success: bool = Field(..., description="Whether the path was moved to the trash")
    error: Optional[str] = Field(None, description="Reason for failure or refusal")
    dry_run: bool = Field(False, description="Whether this was only validated")


class DriveInfo(BaseModel):
    """A mount point that can be used as a scan root."""

    path: str = Field(..., description="Mount point")
    name: str = Field(..., description="Display label")


class RootError(BaseModel):
    """A scan root that could not be traversed."""

    root: str = Field(..., description="Root as requested")
    reason: str = Field(..., description="Why the root was not scanned")


class ScanReport(BaseModel):
    """Everything a finished (or aborted) session produced."""

    state: ScanState = Field(..., description="Terminal state of the session")
    matches: list[NodeModulesMatch] = Field(default_factory=list)
    root_errors: list[RootError] = Field(default_factory=list)
    progress: ScanProgress = Field(default_factory=ScanProgress)
    abort_reason: Optional[str] = Field(None, description="Why the session was aborted")

    @property
    def total_size(self) -> int:
        """Sum of all known match sizes."""
        return sum(m.size for m in self.matches if m.size is not None)

    @property
    def completed(self) -> bool:
        return self.state == ScanState.COMPLETED
