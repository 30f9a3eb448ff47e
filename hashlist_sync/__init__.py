"""Incremental indexing of published torrent hashlist pages."""

from .errors import (
    CorruptStateError,
    DownloadError,
    IndexingError,
    RunInProgressError,
    StateLoadError,
    SyncCancelled,
    SyncError,
)
from .lifecycle import RunContext, RunLifecycle
from .orchestrator import RunStatus, SyncOrchestrator, SyncSummary

__version__ = "0.1.0"

__all__ = [
    "CorruptStateError",
    "DownloadError",
    "IndexingError",
    "RunContext",
    "RunInProgressError",
    "RunLifecycle",
    "RunStatus",
    "StateLoadError",
    "SyncCancelled",
    "SyncError",
    "SyncOrchestrator",
    "SyncSummary",
]
