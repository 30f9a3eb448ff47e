"""In-run deduplication of extracted entries by content hash."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import ExtractedEntry


@dataclass
class DeduplicationResult:
    entries: list[ExtractedEntry]
    duplicates: int
    missing_hash: int

    @property
    def unique_count(self) -> int:
        return len(self.entries)


class EntryDeduplicator:
    """Collapse entries sharing an info-hash, keeping the first occurrence.

    Entries without a hash are never merged with each other; they pass
    through untouched and are counted so callers can report them.
    """

    def dedupe(self, entries: Iterable[ExtractedEntry]) -> DeduplicationResult:
        seen: set[str] = set()
        unique: list[ExtractedEntry] = []
        duplicates = 0
        missing = 0
        for entry in entries:
            if not entry.info_hash:
                missing += 1
                unique.append(entry)
                continue
            if entry.info_hash in seen:
                duplicates += 1
                continue
            seen.add(entry.info_hash)
            unique.append(entry)
        return DeduplicationResult(unique, duplicates, missing)


__all__ = ["DeduplicationResult", "EntryDeduplicator"]
