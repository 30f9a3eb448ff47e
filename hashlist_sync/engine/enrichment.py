"""Attach parsed release metadata to extracted entries."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Sequence

import structlog
from RTN import parse as rtn_parse

from .models import EnrichmentResult, ExtractedEntry


def _dump(parsed: Any) -> dict[str, Any]:
    if hasattr(parsed, "model_dump"):
        return parsed.model_dump(mode="json")
    return dict(parsed)


class TitleEnricher:
    """Batch title parser backed by rank-torrent-name."""

    def __init__(
        self,
        parse_func: Callable[[str], Any] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self._parse = parse_func or rtn_parse
        self.logger = logger or structlog.get_logger("hashlist_sync.enrichment")

    def batch_parse(self, titles: Sequence[str]) -> list[EnrichmentResult]:
        results: list[EnrichmentResult] = []
        failures = 0
        for title in titles:
            try:
                parsed = self._parse(title)
            except Exception as exc:  # noqa: BLE001
                failures += 1
                results.append(EnrichmentResult(success=False, raw_title=title, error=str(exc)))
                continue
            metadata = _dump(parsed)
            results.append(
                EnrichmentResult(
                    success=True,
                    raw_title=metadata.get("raw_title") or title,
                    metadata=metadata,
                )
            )
        if failures:
            self.logger.warning("title_parse_failures", failed=failures, total=len(titles))
        return results

    def enrich(self, entries: Sequence[ExtractedEntry]) -> int:
        """Parse the distinct titles of ``entries`` and apply the results."""

        titles = list(dict.fromkeys(entry.filename for entry in entries))
        if not titles:
            return 0
        return apply_enrichment(entries, self.batch_parse(titles))


def apply_enrichment(
    entries: Iterable[ExtractedEntry], results: Iterable[EnrichmentResult]
) -> int:
    """Assign metadata by raw title; the first successful result per title wins."""

    successful: dict[str, EnrichmentResult] = {}
    for result in results:
        if not result.success or result.raw_title is None:
            continue
        successful.setdefault(result.raw_title, result)

    enriched = 0
    for entry in entries:
        result = successful.get(entry.filename)
        if result is not None:
            entry.metadata = result.metadata
            enriched += 1
    return enriched


__all__ = ["TitleEnricher", "apply_enrichment"]
