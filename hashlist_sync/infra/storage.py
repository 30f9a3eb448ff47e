"""JSON-backed registry of hashlist pages that have already been indexed."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Mapping

import structlog

from ..errors import CorruptStateError, StateLoadError


class PageRegistry:
    """Persisted mapping of page identifier -> marker (entry count).

    A key present in the mapping means the page was fully processed by a
    previous run and must not be processed again until it is forgotten.
    The file is only ever replaced atomically, so a crash mid-save leaves the
    previous version intact.
    """

    def __init__(self, path: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.path = path
        self.pages: dict[str, Any] = {}
        self.logger = logger or structlog.get_logger("hashlist_sync.registry")

    def __len__(self) -> int:
        return len(self.pages)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self.pages

    def load(self) -> dict[str, Any]:
        """Replace the in-memory mapping with the persisted one.

        A missing file is the first-ever run and yields an empty mapping.
        """

        if not self.path.exists():
            self.pages = {}
            return self.pages
        try:
            with self.path.open("r", encoding="utf-8") as stream:
                payload = json.load(stream)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CorruptStateError(
                f"Registry file is not valid JSON: {self.path}", path=self.path
            ) from exc
        except OSError as exc:
            raise StateLoadError(f"Unable to read registry file: {self.path}", path=self.path) from exc
        if not isinstance(payload, dict):
            raise CorruptStateError(
                f"Registry file must contain a JSON object: {self.path}", path=self.path
            )
        self.pages = payload
        self.logger.info("registry_loaded", pages=len(self.pages), path=str(self.path))
        return self.pages

    def save(self, pages: Mapping[str, Any] | None = None) -> None:
        """Atomically rewrite the registry file with the full mapping."""

        payload = dict(self.pages if pages is None else pages)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                json.dump(payload, stream, ensure_ascii=False)
                stream.flush()
                os.fsync(stream.fileno())
            os.replace(tmp_path, self.path)
        finally:
            tmp_path.unlink(missing_ok=True)
        self.logger.info("registry_saved", pages=len(payload), path=str(self.path))

    def mark_processed(self, page_id: str, marker: Any) -> None:
        self.pages[page_id] = marker

    def contains(self, page_id: str) -> bool:
        return page_id in self.pages

    def forget(self, page_ids: Iterable[str]) -> int:
        """Drop pages so the next run processes them again."""

        removed = 0
        for page_id in page_ids:
            if page_id in self.pages:
                del self.pages[page_id]
                removed += 1
        return removed

    def reset(self) -> None:
        self.pages = {}
        self.path.unlink(missing_ok=True)


__all__ = ["PageRegistry"]
