"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Sequence

from ..models import ExtractedEntry


@dataclass
class ExportResult:
    """Outcome of one batched write.

    ``errors`` is true when at least one item failed; partial success is
    possible and only summarised by the counters.
    """

    indexed: int = 0
    failed: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)

    @property
    def errors(self) -> bool:
        return self.failed > 0


class BaseExporter(ABC):
    """Uniform contract for the batch indexing sinks."""

    @abstractmethod
    def export_many(self, entries: Sequence[ExtractedEntry], index: str) -> ExportResult:
        """Write the whole batch to ``index``."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter", "ExportResult"]
