from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from conftest import (
    StubDownloader,
    StubExporter,
    StubParser,
    entries_for,
    info_hash,
    stub_title_parser,
    write_pages,
)
from hashlist_sync.engine import TitleEnricher
from hashlist_sync.engine.exporter import FileExporter
from hashlist_sync.errors import DownloadError, IndexingError, RunInProgressError, SyncCancelled
from hashlist_sync.lifecycle import RunLifecycle
from hashlist_sync.orchestrator import RunStatus, SyncOrchestrator

INDEX = "dmm-test"


def _orchestrator(lifecycle, downloader, parser, exporter, **kwargs) -> SyncOrchestrator:
    return SyncOrchestrator(
        lifecycle=lifecycle,
        downloader=downloader,
        parser=parser,
        exporter=exporter,
        index_name=INDEX,
        **kwargs,
    )


def _persisted(state_path: Path) -> dict:
    return json.loads(state_path.read_text(encoding="utf-8"))


def test_first_run_indexes_and_records_pages(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html", "b.html"])
    parser = StubParser({"a.html": entries_for("a.html", [1, 2]), "b.html": entries_for("b.html", [3])})
    exporter = StubExporter()
    downloader = StubDownloader(pages_dir)

    summary = _orchestrator(lifecycle, downloader, parser, exporter).run()

    assert summary.status is RunStatus.SUCCESS
    assert summary.exit_code == 0
    assert summary.pages_found == 2
    assert summary.pages_processed == 2
    assert summary.entries_indexed == 3
    assert len(exporter.batches) == 1
    index, batch = exporter.batches[0]
    assert index == INDEX
    assert [entry.info_hash for entry in batch] == [info_hash(1), info_hash(2), info_hash(3)]
    assert _persisted(state_path) == {"a.html": 2, "b.html": 1}
    assert downloader.cleaned == [pages_dir]
    assert parser.closed == 1
    assert not lifecycle.is_running


def test_processed_pages_are_never_reprocessed(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html", "b.html", "c.html"])
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text(json.dumps({"a.html": 4, "b.html": 1}), encoding="utf-8")
    parser = StubParser({name: entries_for(name, [seed]) for seed, name in enumerate(["a.html", "b.html", "c.html"])})
    exporter = StubExporter()

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, exporter).run()

    assert parser.visited == ["c.html"]
    assert summary.pages_found == 1
    assert [entry.source_page for entry in exporter.batches[0][1]] == ["c.html"]
    assert _persisted(state_path) == {"a.html": 4, "b.html": 1, "c.html": 1}


def test_nothing_new_skips_indexing(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html"])
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text(json.dumps({"a.html": 1}), encoding="utf-8")
    exporter = StubExporter()

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), StubParser({}), exporter).run()

    assert summary.status is RunStatus.SUCCESS
    assert summary.pages_found == 0
    assert exporter.batches == []
    assert _persisted(state_path) == {"a.html": 1}


def test_cancellation_stops_after_current_page(lifecycle, pages_dir, state_path) -> None:
    names = [f"p{i}.html" for i in range(1, 6)]
    write_pages(pages_dir, names)
    cancel = threading.Event()

    def _cancel_after_second(page_id: str) -> None:
        if page_id == "p2.html":
            cancel.set()

    parser = StubParser(
        {name: entries_for(name, [i * 10, i * 10 + 1]) for i, name in enumerate(names, start=1)},
        after_parse=_cancel_after_second,
    )
    exporter = StubExporter()

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, exporter).run(cancel)

    assert parser.visited == ["p1.html", "p2.html"]
    assert summary.cancelled is True
    assert summary.status is RunStatus.SUCCESS
    assert summary.pages_processed == 2
    assert [entry.source_page for entry in exporter.batches[0][1]] == ["p1.html"] * 2 + ["p2.html"] * 2
    assert _persisted(state_path) == {"p1.html": 2, "p2.html": 2}


def test_cancel_before_start_touches_nothing(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html"])
    cancel = threading.Event()
    cancel.set()
    downloader = StubDownloader(pages_dir)

    summary = _orchestrator(lifecycle, downloader, StubParser({}), StubExporter()).run(cancel)

    assert summary.cancelled is True
    assert summary.exit_code == 0
    assert downloader.fetch_calls == 0
    assert not state_path.exists()


def test_cancellation_during_download_is_not_a_failure(lifecycle, pages_dir, state_path) -> None:
    downloader = StubDownloader(pages_dir, error=SyncCancelled("stop"))
    parser = StubParser({})

    summary = _orchestrator(lifecycle, downloader, parser, StubExporter()).run()

    assert summary.cancelled is True
    assert summary.status is RunStatus.SUCCESS
    assert parser.closed == 1
    assert _persisted(state_path) == {}


def test_partial_indexing_failure_still_persists_registry(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html"])
    parser = StubParser({"a.html": entries_for("a.html", [1, 2, 3])})
    exporter = StubExporter(failed=1)

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, exporter).run()

    assert summary.status is RunStatus.FAILURE
    assert summary.exit_code == 1
    assert summary.entries_indexed == 2
    assert summary.entries_failed == 1
    assert "1 of 3" in summary.error
    assert _persisted(state_path) == {"a.html": 3}
    assert not lifecycle.is_running


def test_indexing_exception_is_reported_as_failure(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html"])
    parser = StubParser({"a.html": entries_for("a.html", [1])})
    exporter = StubExporter(error=IndexingError("cluster unavailable"))

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, exporter).run()

    assert summary.status is RunStatus.FAILURE
    assert summary.error == "cluster unavailable"
    assert _persisted(state_path) == {"a.html": 1}
    assert parser.closed == 1


def test_download_failure_finishes_run(lifecycle, pages_dir, state_path) -> None:
    parser = StubParser({})
    downloader = StubDownloader(pages_dir, error=DownloadError("HTTP 502"))

    summary = _orchestrator(lifecycle, downloader, parser, StubExporter()).run()

    assert summary.status is RunStatus.FAILURE
    assert "502" in summary.error
    assert parser.closed == 1
    assert downloader.cleaned == []
    assert state_path.exists()


def test_corrupt_registry_fails_before_download(lifecycle, pages_dir, state_path) -> None:
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text("{broken", encoding="utf-8")
    downloader = StubDownloader(pages_dir)

    summary = _orchestrator(lifecycle, downloader, StubParser({}), StubExporter()).run()

    assert summary.status is RunStatus.FAILURE
    assert downloader.fetch_calls == 0
    assert state_path.read_text(encoding="utf-8") == "{broken"


def test_empty_pages_are_not_recorded(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["empty.html", "full.html"])
    parser = StubParser({"full.html": entries_for("full.html", [7])})

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, StubExporter()).run()

    assert parser.visited == ["empty.html", "full.html"]
    assert summary.pages_processed == 1
    assert _persisted(state_path) == {"full.html": 1}


def test_duplicate_hashes_are_indexed_once(lifecycle, pages_dir) -> None:
    write_pages(pages_dir, ["a.html", "b.html"])
    parser = StubParser({"a.html": entries_for("a.html", [1, 2]), "b.html": entries_for("b.html", [2, 3])})
    exporter = StubExporter()

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, exporter).run()

    batch = exporter.batches[0][1]
    assert summary.entries_extracted == 4
    assert summary.entries_unique == 3
    assert [entry.info_hash for entry in batch] == [info_hash(1), info_hash(2), info_hash(3)]
    assert batch[1].source_page == "a.html"


def test_enrichment_applies_to_every_entry_sharing_a_filename(lifecycle, pages_dir) -> None:
    write_pages(pages_dir, ["a.html"])
    shared = entries_for("a.html", [1, 2], filename="Shared.Title.2021.1080p")
    parser = StubParser({"a.html": shared + entries_for("a.html", [3], filename="Broken.Title")})
    exporter = StubExporter()
    enricher = TitleEnricher(parse_func=stub_title_parser(failing=["Broken.Title"]))

    summary = _orchestrator(
        lifecycle, StubDownloader(pages_dir), parser, exporter, enricher=enricher
    ).run()

    batch = exporter.batches[0][1]
    assert summary.entries_enriched == 2
    assert batch[0].metadata == batch[1].metadata
    assert batch[0].metadata["parsed_title"] == "Shared"
    assert batch[2].metadata is None


def test_keep_downloads_skips_cleanup(lifecycle, pages_dir) -> None:
    downloader = StubDownloader(pages_dir)

    _orchestrator(lifecycle, downloader, StubParser({}), StubExporter(), keep_downloads=True).run()

    assert downloader.cleaned == []


def test_concurrent_run_is_rejected(lifecycle, pages_dir) -> None:
    orchestrator = _orchestrator(lifecycle, StubDownloader(pages_dir), StubParser({}), StubExporter())
    orchestrator._run_lock.acquire()
    try:
        with pytest.raises(RunInProgressError):
            orchestrator.run()
    finally:
        orchestrator._run_lock.release()
    assert orchestrator.run().status is RunStatus.SUCCESS


def test_same_page_name_in_two_directories_processed_once(lifecycle, pages_dir, state_path) -> None:
    nested = pages_dir / "nested"
    nested.mkdir()
    write_pages(pages_dir, ["a.html"])
    write_pages(nested, ["a.html"])
    parser = StubParser({"a.html": entries_for("a.html", [1])})

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, StubExporter()).run()

    assert parser.visited == ["a.html"]
    assert summary.pages_processed == 1


def test_close_releases_exporter_and_downloader(lifecycle, pages_dir) -> None:
    downloader = StubDownloader(pages_dir)
    exporter = StubExporter()
    _orchestrator(lifecycle, downloader, StubParser({}), exporter).close()
    assert downloader.closed is True
    assert exporter.closed is True


def test_from_config_builds_file_sink(config_repository) -> None:
    config = config_repository.load_config()
    config_repository.save_config(config.model_copy(update={"sink": "file", "enrichment_enabled": False}))

    orchestrator = SyncOrchestrator.from_config(config_repository, progress_enabled=False)

    assert isinstance(orchestrator.exporter, FileExporter)
    assert orchestrator.enricher is None
    assert orchestrator.index_name == "dmm-entries"
    assert isinstance(orchestrator.lifecycle, RunLifecycle)
    assert orchestrator.lifecycle.state_path == config_repository.state_path()
    orchestrator.close()


def test_parse_failure_keeps_earlier_pages_unrecorded(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html", "b.html", "c.html"])
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text(json.dumps({"old.html": 5}), encoding="utf-8")
    parser = StubParser(
        {"a.html": entries_for("a.html", [1]), "b.html": entries_for("b.html", [2])},
        errors={"c.html": ValueError("unreadable page")},
    )
    exporter = StubExporter()

    summary = _orchestrator(lifecycle, StubDownloader(pages_dir), parser, exporter).run()

    assert parser.visited == ["a.html", "b.html", "c.html"]
    assert summary.status is RunStatus.FAILURE
    assert summary.error == "unreadable page"
    assert summary.pages_processed == 0
    assert exporter.batches == []
    assert _persisted(state_path) == {"old.html": 5}
    assert parser.closed == 1
    assert not lifecycle.is_running


def test_enrichment_crash_keeps_pages_unrecorded(lifecycle, pages_dir, state_path) -> None:
    write_pages(pages_dir, ["a.html"])
    parser = StubParser({"a.html": entries_for("a.html", [1])})
    exporter = StubExporter()

    class CrashingEnricher:
        def enrich(self, entries) -> int:  # noqa: ANN001
            raise RuntimeError("title service down")

    summary = _orchestrator(
        lifecycle, StubDownloader(pages_dir), parser, exporter, enricher=CrashingEnricher()
    ).run()

    assert summary.status is RunStatus.FAILURE
    assert exporter.batches == []
    assert _persisted(state_path) == {}
