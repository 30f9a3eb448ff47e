"""Records flowing through the sync pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ExtractedEntry:
    """One torrent record extracted from a hashlist page."""

    info_hash: str | None
    filename: str
    source_page: str
    size: int | None = None
    metadata: dict[str, Any] | None = field(default=None)

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "info_hash": self.info_hash,
            "filename": self.filename,
            "source_page": self.source_page,
            "size": self.size,
        }
        if self.metadata is not None:
            document["metadata"] = self.metadata
        return document


@dataclass(slots=True)
class EnrichmentResult:
    """Outcome of parsing one raw title."""

    success: bool
    raw_title: str | None = None
    metadata: dict[str, Any] | None = None
    error: str | None = None


__all__ = ["EnrichmentResult", "ExtractedEntry"]
