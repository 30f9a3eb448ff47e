"""Elasticsearch bulk exporter."""

from __future__ import annotations

from typing import Any, Iterator, Sequence

import structlog
from elastic_transport import TransportError
from elasticsearch import ApiError, Elasticsearch, helpers

from ...config import ElasticConfig
from ...errors import IndexingError
from ..models import ExtractedEntry
from .base import BaseExporter, ExportResult

MAX_ERROR_DETAILS = 50


def build_client(config: ElasticConfig) -> Elasticsearch:
    options: dict[str, Any] = {
        "hosts": [config.url],
        "request_timeout": config.request_timeout,
        "verify_certs": config.verify_certs,
        "retry_on_timeout": True,
    }
    if config.api_key:
        options["api_key"] = config.api_key
    elif config.username is not None:
        options["basic_auth"] = (config.username, config.password)
    return Elasticsearch(**options)


class ElasticExporter(BaseExporter):
    """Index entries with ``helpers.streaming_bulk`` keyed by info-hash."""

    def __init__(
        self,
        client: Elasticsearch,
        batch_size: int = 5000,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.batch_size = batch_size
        self.logger = logger or structlog.get_logger("hashlist_sync.exporter")

    @classmethod
    def from_config(cls, config: ElasticConfig) -> "ElasticExporter":
        return cls(build_client(config), batch_size=config.batch_size)

    def export_many(self, entries: Sequence[ExtractedEntry], index: str) -> ExportResult:
        result = ExportResult()
        try:
            for ok, item in helpers.streaming_bulk(
                self.client,
                self._actions(entries, index),
                chunk_size=self.batch_size,
                raise_on_error=False,
                raise_on_exception=False,
            ):
                if ok:
                    result.indexed += 1
                    continue
                result.failed += 1
                if len(result.details) < MAX_ERROR_DETAILS:
                    result.details.append(item)
        except (ApiError, TransportError) as exc:
            raise IndexingError(f"Bulk indexing into {index} failed: {exc}") from exc
        if result.errors:
            self.logger.warning(
                "bulk_index_item_errors", index=index, failed=result.failed, indexed=result.indexed
            )
        return result

    @staticmethod
    def _actions(entries: Sequence[ExtractedEntry], index: str) -> Iterator[dict[str, Any]]:
        for entry in entries:
            action: dict[str, Any] = {
                "_op_type": "index",
                "_index": index,
                "_source": entry.to_document(),
            }
            if entry.info_hash:
                action["_id"] = entry.info_hash
            yield action

    def close(self) -> None:
        self.client.close()


__all__ = ["ElasticExporter", "build_client"]
