"""Failure taxonomy shared by the sync pipeline."""

from __future__ import annotations

from pathlib import Path


class SyncError(Exception):
    """Base class for every failure raised by hashlist-sync."""


class StateLoadError(SyncError):
    """The persisted page registry could not be read."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class CorruptStateError(StateLoadError):
    """The registry file exists but does not decode to a page mapping."""


class DownloadError(SyncError):
    """Fetching or unpacking the hashlist archive failed."""


class IndexingError(SyncError):
    """The indexing backend could not be reached or rejected the whole batch."""


class RunInProgressError(SyncError):
    """A sync run is already active in this process."""


class SyncCancelled(SyncError):
    """Cooperative cancellation observed inside a collaborator."""


__all__ = [
    "CorruptStateError",
    "DownloadError",
    "IndexingError",
    "RunInProgressError",
    "StateLoadError",
    "SyncCancelled",
    "SyncError",
]
