"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)


@dataclass
class ProgressState:
    total: int
    processed: int = 0
    empty: int = 0
    entries: int = 0
    current_page: str | None = None


class ProgressReporter:
    """Render page-processing progress and keep counters for the CLI."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.state: ProgressState | None = None

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            # non-interactive output: stay silent, logs carry the counts
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]pages", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            TextColumn("[green]✓{task.fields[processed]:>5}", justify="right"),
            TextColumn("[yellow]∅{task.fields[empty]:>5}", justify="right"),
            TextColumn("[cyan]{task.fields[entries]:>8} entries", justify="right"),
            TextColumn("[dim]{task.fields[current_page]}", justify="left"),
            refresh_per_second=8,
            expand=True,
            transient=True,
            console=self._console,
        )
        try:
            self._progress.__enter__()
        except LiveError:
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "pages", total=total, processed=0, empty=0, entries=0, current_page=""
        )

    def advance(self, page_id: str, entries: int) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        self.state.current_page = page_id
        if entries:
            self.state.processed += 1
            self.state.entries += entries
        else:
            self.state.empty += 1
        if self._progress is not None and self._task_id is not None:
            display = page_id if len(page_id) <= 40 else page_id[:37] + "..."
            self._progress.update(
                self._task_id,
                advance=1,
                processed=self.state.processed,
                empty=self.state.empty,
                entries=self.state.entries,
                current_page=display,
            )

    def close(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress.__exit__(None, None, None)
            self._progress = None
        self._task_id = None

    def summary(self) -> dict[str, int]:
        if not self.state:
            return {"processed": 0, "empty": 0, "entries": 0}
        return {
            "processed": self.state.processed,
            "empty": self.state.empty,
            "entries": self.state.entries,
        }


__all__ = ["ProgressReporter", "ProgressState"]
