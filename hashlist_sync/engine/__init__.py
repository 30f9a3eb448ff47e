"""Engine components turning pages into deduplicated, enriched entries."""

from .dedup import DeduplicationResult, EntryDeduplicator
from .enrichment import TitleEnricher, apply_enrichment
from .models import EnrichmentResult, ExtractedEntry
from .parser import HashlistPageParser

__all__ = [
    "DeduplicationResult",
    "EnrichmentResult",
    "EntryDeduplicator",
    "ExtractedEntry",
    "HashlistPageParser",
    "TitleEnricher",
    "apply_enrichment",
]
