"""Shared fixtures and stub collaborators for the hashlist-sync test-suite."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from hashlist_sync.config import ConfigLocator, ConfigRepository
from hashlist_sync.engine.exporter import BaseExporter, ExportResult
from hashlist_sync.engine.models import ExtractedEntry
from hashlist_sync.lifecycle import RunLifecycle


def info_hash(seed: int) -> str:
    return f"{seed:040x}"


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HASHLIST_SYNC_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def make_entry() -> Callable[..., ExtractedEntry]:
    def _builder(seed: int | None, filename: str = "Some.Movie.2020.1080p", page: str = "page.html") -> ExtractedEntry:
        return ExtractedEntry(
            info_hash=info_hash(seed) if seed is not None else None,
            filename=filename,
            source_page=page,
            size=1024,
        )

    return _builder


@pytest.fixture
def pages_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "archive" / "hashlists-main"
    directory.mkdir(parents=True)
    return directory


def write_pages(directory: Path, names: Iterable[str]) -> list[Path]:
    paths = []
    for name in names:
        path = directory / name
        path.write_text("<html></html>", encoding="utf-8")
        paths.append(path)
    return paths


class StubDownloader:
    def __init__(self, directory: Path, error: Exception | None = None) -> None:
        self.directory = directory
        self.error = error
        self.fetch_calls = 0
        self.cleaned: list[Path] = []
        self.closed = False

    def fetch(self, cancel_event: threading.Event | None = None) -> Path:
        self.fetch_calls += 1
        if self.error is not None:
            raise self.error
        return self.directory

    def cleanup(self, directory: Path) -> None:
        self.cleaned.append(directory)

    def close(self) -> None:
        self.closed = True


class StubParser:
    """Return pre-seeded entries per page id and record visits."""

    def __init__(
        self,
        entries: dict[str, list[ExtractedEntry]],
        after_parse: Callable[[str], None] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.entries = entries
        self.after_parse = after_parse
        self.errors = errors or {}
        self.visited: list[str] = []
        self.closed = 0

    def parse(self, path: Path, page_id: str) -> list[ExtractedEntry]:
        self.visited.append(page_id)
        if page_id in self.errors:
            raise self.errors[page_id]
        result = list(self.entries.get(page_id, []))
        if self.after_parse is not None:
            self.after_parse(page_id)
        return result

    def close(self) -> None:
        self.closed += 1


class StubExporter(BaseExporter):
    def __init__(self, failed: int = 0, error: Exception | None = None) -> None:
        self.failed = failed
        self.error = error
        self.batches: list[tuple[str, list[ExtractedEntry]]] = []
        self.closed = False

    def export_many(self, entries, index: str) -> ExportResult:
        self.batches.append((index, list(entries)))
        if self.error is not None:
            raise self.error
        return ExportResult(indexed=len(entries) - self.failed, failed=self.failed)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "parsedPages.json"


@pytest.fixture
def lifecycle(state_path: Path) -> RunLifecycle:
    return RunLifecycle(state_path)


def entries_for(page: str, seeds: Iterable[int], filename: str | None = None) -> list[ExtractedEntry]:
    return [
        ExtractedEntry(
            info_hash=info_hash(seed),
            filename=filename or f"Release.{seed}.1080p",
            source_page=page,
        )
        for seed in seeds
    ]


def stub_title_parser(failing: Iterable[str] = ()) -> Callable[[str], dict[str, Any]]:
    failing = set(failing)

    def _parse(title: str) -> dict[str, Any]:
        if title in failing:
            raise ValueError(f"cannot parse {title}")
        return {"raw_title": title, "parsed_title": title.split(".")[0], "resolution": "1080p"}

    return _parse
