"""Run start/finish state handling around the page registry."""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator

import structlog

from .errors import SyncCancelled
from .infra.storage import PageRegistry


@dataclass
class RunContext:
    """State owned by exactly one active run."""

    registry: PageRegistry
    processed_count: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resources: ExitStack = field(default_factory=ExitStack)
    marked: list[str] = field(default_factory=list)

    def contains(self, page_id: str) -> bool:
        return self.registry.contains(page_id)

    def mark_processed(self, page_id: str, entry_count: int) -> None:
        self.registry.mark_processed(page_id, entry_count)
        self.marked.append(page_id)
        self.processed_count += 1

    def rollback(self) -> int:
        """Forget pages marked during this run so the next run retries them."""

        removed = self.registry.forget(self.marked)
        self.marked = []
        self.processed_count = 0
        return removed


class RunLifecycle:
    """Create a :class:`RunContext` at start and persist it at finish.

    ``finish`` always releases the resources registered on the context,
    even when saving the registry fails. Recovery after a crash relies on
    the persisted registry only; ``is_running`` is informational.
    """

    def __init__(
        self,
        state_path: Path,
        registry_factory: Callable[[Path], PageRegistry] = PageRegistry,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.state_path = state_path
        self.registry_factory = registry_factory
        self.logger = logger or structlog.get_logger("hashlist_sync.lifecycle")
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, cancel_event: threading.Event | None = None) -> RunContext:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelled("Cancelled before run start")
        registry = self.registry_factory(self.state_path)
        registry.load()
        self._running = True
        self.logger.info("run_started", known_pages=len(registry))
        return RunContext(registry=registry)

    def finish(self, context: RunContext) -> None:
        self.logger.info("run_finished", pages_processed=context.processed_count)
        try:
            context.registry.save()
        finally:
            self._running = False
            context.processed_count = 0
            context.marked = []
            context.registry.pages = {}
            context.resources.close()

    @contextmanager
    def session(self, cancel_event: threading.Event | None = None) -> Iterator[RunContext]:
        """Yield a started context and finish it on every exit path."""

        context = self.start(cancel_event)
        try:
            yield context
        finally:
            self.finish(context)


__all__ = ["RunContext", "RunLifecycle"]
