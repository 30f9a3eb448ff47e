"""Sync orchestrator wiring download, page parsing, dedup, enrichment and indexing."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from enum import IntEnum
from pathlib import Path
from typing import Callable

from .config import ConfigRepository
from .engine import EntryDeduplicator, ExtractedEntry, HashlistPageParser, TitleEnricher
from .engine.exporter import BaseExporter, ElasticExporter, FileExporter
from .errors import RunInProgressError, SyncCancelled
from .infra import ArchiveDownloader
from .lifecycle import RunContext, RunLifecycle
from .logging_conf import configure_logging
from .ui import ProgressReporter


class RunStatus(IntEnum):
    SUCCESS = 0
    FAILURE = 1


@dataclass
class SyncSummary:
    """Counters and outcome of one run."""

    status: RunStatus = RunStatus.SUCCESS
    pages_found: int = 0
    pages_processed: int = 0
    entries_extracted: int = 0
    entries_unique: int = 0
    entries_enriched: int = 0
    entries_indexed: int = 0
    entries_failed: int = 0
    cancelled: bool = False
    error: str | None = None

    @property
    def exit_code(self) -> int:
        return int(self.status)

    def as_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["status"] = self.status.name.lower()
        return payload


class SyncOrchestrator:
    """Drive one incremental sync of the hashlist archive into the index.

    Only one run may be active per orchestrator; a concurrent call to
    :meth:`run` is rejected with :class:`RunInProgressError`. The registry
    file is assumed to be owned by a single process.
    """

    def __init__(
        self,
        lifecycle: RunLifecycle,
        downloader: ArchiveDownloader,
        parser: HashlistPageParser,
        exporter: BaseExporter,
        index_name: str,
        enricher: TitleEnricher | None = None,
        deduplicator: EntryDeduplicator | None = None,
        page_glob: str = "*.html",
        keep_downloads: bool = False,
        progress_factory: Callable[[], ProgressReporter] | None = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.downloader = downloader
        self.parser = parser
        self.exporter = exporter
        self.index_name = index_name
        self.enricher = enricher
        self.deduplicator = deduplicator or EntryDeduplicator()
        self.page_glob = page_glob
        self.keep_downloads = keep_downloads
        self.progress_factory = progress_factory or (lambda: ProgressReporter(enabled=False))
        self.logger = configure_logging().bind(component="orchestrator")
        self._run_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        repository: ConfigRepository,
        progress_enabled: bool | None = None,
    ) -> "SyncOrchestrator":
        config = repository.load_config()
        locator = repository.locator
        if config.sink == "elasticsearch":
            exporter: BaseExporter = ElasticExporter.from_config(config.elasticsearch)
        else:
            exporter = FileExporter(locator.exports_dir)
        progress_flag = config.enable_progress_bar if progress_enabled is None else progress_enabled
        return cls(
            lifecycle=RunLifecycle(locator.state_path(config)),
            downloader=ArchiveDownloader(config.archive, locator.downloads_dir),
            parser=HashlistPageParser(),
            exporter=exporter,
            index_name=config.elasticsearch.index,
            enricher=TitleEnricher() if config.enrichment_enabled else None,
            page_glob=config.archive.page_glob,
            keep_downloads=config.archive.keep_downloads,
            progress_factory=lambda: ProgressReporter(enabled=progress_flag),
        )

    def close(self) -> None:
        self.exporter.close()
        self.downloader.close()

    # ------------------------------------------------------------------
    def run(self, cancel_event: threading.Event | None = None) -> SyncSummary:
        """Execute one run and report its outcome; never raises for run failures."""

        if not self._run_lock.acquire(blocking=False):
            raise RunInProgressError("A sync run is already in progress")
        cancel_event = cancel_event or threading.Event()
        summary = SyncSummary()
        try:
            self._execute(cancel_event, summary)
        except SyncCancelled as exc:
            summary.cancelled = True
            self.logger.info("run_cancelled", reason=str(exc))
        except Exception as exc:  # noqa: BLE001
            summary.status = RunStatus.FAILURE
            summary.error = str(exc)
            self.logger.exception("run_failed", error=str(exc))
        finally:
            self._run_lock.release()
        self.logger.info("run_summary", **summary.as_dict())
        return summary

    def list_candidate_pages(self, directory: Path, context: RunContext) -> list[Path]:
        pages = sorted(path for path in directory.rglob(self.page_glob) if path.is_file())
        return [path for path in pages if not context.contains(path.name)]

    # ------------------------------------------------------------------
    def _execute(self, cancel_event: threading.Event, summary: SyncSummary) -> None:
        with self.lifecycle.session(cancel_event) as context:
            context.resources.callback(self.parser.close)
            directory = self.downloader.fetch(cancel_event)
            if not self.keep_downloads:
                context.resources.callback(self.downloader.cleanup, directory)

            pages = self.list_candidate_pages(directory, context)
            summary.pages_found = len(pages)
            self.logger.info("pages_found", count=len(pages))

            try:
                entries = self._process_pages(pages, context, cancel_event, summary)
                summary.entries_extracted = len(entries)
                if not entries:
                    self.logger.info("nothing_to_index")
                    return
                unique = self._prepare(entries, summary)
            except Exception:
                # entries of these pages never reached the index
                discarded = context.rollback()
                summary.pages_processed = context.processed_count
                self.logger.warning("registry_rolled_back", pages=discarded)
                raise
            self._export(unique, summary)

    def _process_pages(
        self,
        pages: list[Path],
        context: RunContext,
        cancel_event: threading.Event,
        summary: SyncSummary,
    ) -> list[ExtractedEntry]:
        entries: list[ExtractedEntry] = []
        progress = self.progress_factory()
        progress.start(total=len(pages))
        try:
            for page in pages:
                if cancel_event.is_set():
                    summary.cancelled = True
                    self.logger.info("cancellation_requested", pages_processed=context.processed_count)
                    break
                page_id = page.name
                if context.contains(page_id):
                    # same file name seen earlier in this archive
                    continue
                page_entries = self.parser.parse(page, page_id)
                progress.advance(page_id, len(page_entries))
                if not page_entries:
                    continue
                entries.extend(page_entries)
                context.mark_processed(page_id, len(page_entries))
                summary.pages_processed = context.processed_count
                self.logger.info("page_processed", page=page_id, entries=len(page_entries))
        finally:
            progress.close()
        return entries

    def _prepare(self, entries: list[ExtractedEntry], summary: SyncSummary) -> list[ExtractedEntry]:
        result = self.deduplicator.dedupe(entries)
        unique = result.entries
        summary.entries_unique = len(unique)
        if result.missing_hash:
            self.logger.warning("entries_missing_hash", count=result.missing_hash)

        if self.enricher is not None:
            summary.entries_enriched = self.enricher.enrich(unique)
            self.logger.info("entries_enriched", count=summary.entries_enriched, total=len(unique))
        return unique

    def _export(self, unique: list[ExtractedEntry], summary: SyncSummary) -> None:
        export = self.exporter.export_many(unique, self.index_name)
        summary.entries_indexed = export.indexed
        summary.entries_failed = export.failed
        if export.errors:
            summary.status = RunStatus.FAILURE
            summary.error = f"Failed to index {export.failed} of {len(unique)} entries"
            self.logger.error(
                "indexing_failed", index=self.index_name, failed=export.failed, total=len(unique)
            )
            return
        self.logger.info("entries_indexed", index=self.index_name, count=export.indexed)


__all__ = ["RunStatus", "SyncOrchestrator", "SyncSummary"]
