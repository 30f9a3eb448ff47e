"""Extract torrent entries from downloaded hashlist pages."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
from lzstring import LZString
from selectolax.parser import HTMLParser

from .models import ExtractedEntry

_INFO_HASH = re.compile(r"^[0-9a-f]{40}$")


@dataclass
class ParserStats:
    pages_parsed: int = 0
    pages_empty: int = 0
    entries_accepted: int = 0
    entries_rejected: int = 0


class HashlistPageParser:
    """Parse hashlist pages whose payload sits in an iframe URL fragment.

    The fragment is an lz-string ``compressToEncodedURIComponent`` JSON
    document: either a list of torrents or ``{"torrents": [...]}``. Problems
    with a single page are logged and produce an empty list so the page is
    retried on the next run.
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("hashlist_sync.parser")
        self.stats = ParserStats()

    def parse(self, path: Path, page_id: str) -> list[ExtractedEntry]:
        html = path.read_text(encoding="utf-8", errors="replace")
        self.stats.pages_parsed += 1
        encoded = self.extract_payload(html)
        if not encoded:
            self.logger.warning("page_payload_missing", page=page_id)
            self.stats.pages_empty += 1
            return []
        decoded = self.decompress(encoded)
        if not decoded:
            self.logger.warning("page_payload_undecodable", page=page_id)
            self.stats.pages_empty += 1
            return []
        entries = self.entries_from_json(decoded, page_id)
        if not entries:
            self.stats.pages_empty += 1
        return entries

    @staticmethod
    def extract_payload(html: str) -> str | None:
        tree = HTMLParser(html)
        for node in tree.css("iframe"):
            src = (node.attributes.get("src") or "").strip()
            if "#" not in src:
                continue
            fragment = src.split("#", 1)[1].strip()
            if fragment:
                return fragment
        return None

    @staticmethod
    def decompress(encoded: str) -> str | None:
        try:
            return LZString().decompressFromEncodedURIComponent(encoded)
        except (KeyError, IndexError, TypeError, ValueError):
            return None

    def entries_from_json(self, text: str, page_id: str) -> list[ExtractedEntry]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            self.logger.warning("page_payload_invalid_json", page=page_id, error=str(exc))
            return []
        if isinstance(payload, dict):
            payload = payload.get("torrents")
        if not isinstance(payload, list):
            self.logger.warning("page_payload_unexpected_shape", page=page_id)
            return []

        entries: list[ExtractedEntry] = []
        rejected = 0
        for item in payload:
            entry = self._entry_from_item(item, page_id)
            if entry is None:
                rejected += 1
                continue
            entries.append(entry)
        if rejected:
            self.logger.debug("page_entries_rejected", page=page_id, rejected=rejected)
        self.stats.entries_accepted += len(entries)
        self.stats.entries_rejected += rejected
        return entries

    @staticmethod
    def _entry_from_item(item: Any, page_id: str) -> ExtractedEntry | None:
        if not isinstance(item, dict):
            return None
        filename = item.get("filename")
        info_hash = item.get("hash")
        if not isinstance(filename, str) or not filename.strip():
            return None
        if not isinstance(info_hash, str):
            return None
        info_hash = info_hash.strip().lower()
        if not _INFO_HASH.match(info_hash):
            return None
        size = item.get("bytes")
        if isinstance(size, bool) or not isinstance(size, (int, float)):
            size = None
        return ExtractedEntry(
            info_hash=info_hash,
            filename=filename.strip(),
            source_page=page_id,
            size=int(size) if size is not None else None,
        )

    def close(self) -> None:
        """Log per-run totals and reset counters."""

        self.logger.info(
            "parser_closed",
            pages_parsed=self.stats.pages_parsed,
            pages_empty=self.stats.pages_empty,
            entries_accepted=self.stats.entries_accepted,
            entries_rejected=self.stats.entries_rejected,
        )
        self.stats = ParserStats()


__all__ = ["HashlistPageParser", "ParserStats"]
