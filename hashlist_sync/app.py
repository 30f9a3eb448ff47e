"""Typer CLI entrypoint for hashlist-sync."""

from __future__ import annotations

import signal
import sys
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, ScheduleConfig, ScheduleType
from .errors import RunInProgressError, StateLoadError
from .infra import PageRegistry
from .logging_conf import configure_logging, sync_log_path, tail_log
from .orchestrator import SyncOrchestrator, SyncSummary
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="Incrementally index published torrent hashlists.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
state_app = typer.Typer(name="state", help="Inspect or clear the processed-page registry.", no_args_is_help=True)
config_app = typer.Typer(name="config", help="Show or initialise the configuration file.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Log viewing commands.", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator: SyncOrchestrator | None = None
    scheduler: APSchedulerAdapter | None = None


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    return AppState(repository=ConfigRepository())


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _get_orchestrator(state: AppState) -> SyncOrchestrator:
    if state.orchestrator is None:
        state.orchestrator = SyncOrchestrator.from_config(
            state.repository, progress_enabled=_progress_default_enabled()
        )
    return state.orchestrator


def _get_scheduler(state: AppState) -> APSchedulerAdapter:
    if state.scheduler is None:
        state.scheduler = APSchedulerAdapter()
    return state.scheduler


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _registry(state: AppState) -> PageRegistry:
    registry = PageRegistry(state.repository.state_path())
    try:
        registry.load()
    except StateLoadError as exc:
        console.print(f"Registry could not be read: {exc}", style="red")
        console.print("Use `hashlist-sync state reset` to start over.", style="dim")
        raise typer.Exit(code=1) from exc
    return registry


def _format_schedule(schedule: ScheduleConfig) -> str:
    if schedule.value in (None, "", {}):
        return schedule.type.value
    if schedule.type is ScheduleType.CRON:
        return f"cron ({schedule.value})"
    return f"{schedule.type.value} ({schedule.value})"


def _render_summary(summary: SyncSummary) -> Table:
    table = Table(title="Sync result", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Status", summary.status.name.lower())
    table.add_row("Pages found", str(summary.pages_found))
    table.add_row("Pages processed", str(summary.pages_processed))
    table.add_row("Entries extracted", str(summary.entries_extracted))
    table.add_row("Unique entries", str(summary.entries_unique))
    table.add_row("Enriched", str(summary.entries_enriched))
    table.add_row("Indexed", str(summary.entries_indexed))
    if summary.entries_failed:
        table.add_row("Failed", str(summary.entries_failed), style="red")
    if summary.cancelled:
        table.add_row("Cancelled", "yes", style="yellow")
    return table


def _render_jobs_table(jobs: Iterable[dict]) -> Table:
    table = Table(title="Scheduled jobs", box=box.SIMPLE_HEAD)
    table.add_column("Job ID", style="cyan", no_wrap=True)
    table.add_column("Next run", style="green")
    table.add_column("Trigger", style="magenta", overflow="fold")
    for job in jobs:
        table.add_row(
            str(job.get("id", "-")),
            str(job.get("next_run_time", "-")),
            str(job.get("trigger", "-")),
        )
    return table


app.add_typer(state_app, name="state")
app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("sync", help="Run one incremental sync now.")
def sync(
    ctx: typer.Context,
    quiet: bool = typer.Option(False, "--quiet", help="Print a one-line result only.", is_flag=True),
) -> None:
    orchestrator = _get_orchestrator(_get_state(ctx))
    cancel_event = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())
    try:
        summary = orchestrator.run(cancel_event)
    finally:
        signal.signal(signal.SIGINT, previous)
        orchestrator.close()
    if quiet:
        console.print(
            f"{summary.status.name.lower()}: {summary.pages_processed} pages, "
            f"{summary.entries_indexed} entries indexed"
        )
    else:
        console.print(_render_summary(summary))
    if summary.error:
        console.print(summary.error, style="red")
    raise typer.Exit(code=summary.exit_code)


@app.command("watch", help="Run syncs on the configured schedule until interrupted.")
def watch(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.repository.load_config()
    orchestrator = _get_orchestrator(state)
    scheduler = _get_scheduler(state)
    cancel_event = threading.Event()
    stop = threading.Event()

    def _job() -> None:
        try:
            orchestrator.run(cancel_event)
        except RunInProgressError:
            console.print("Previous run still active, skipping.", style="yellow")

    def _handle_signal(signum, frame):  # noqa: ANN001, ARG001
        cancel_event.set()
        stop.set()

    signal.signal(signal.SIGTERM, _handle_signal)
    scheduler.schedule_sync(config.schedule, _job)
    scheduler.start()
    console.print(f"Scheduled: {_format_schedule(config.schedule)}", style="cyan")
    console.print(_render_jobs_table(scheduler.list_jobs()))
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        cancel_event.set()
    finally:
        scheduler.shutdown()
        orchestrator.close()
    console.print("Scheduler stopped.", style="green")


@state_app.command("show", help="Show registry size and recently recorded pages.")
def state_show(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", help="Number of page ids to list."),
) -> None:
    state = _get_state(ctx)
    registry = _registry(state)
    console.print(f"{len(registry)} pages recorded in {registry.path}", style="cyan")
    if not len(registry) or limit <= 0:
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("Page", style="green", overflow="fold")
    table.add_column("Entries", justify="right")
    for page_id, marker in list(registry.pages.items())[-limit:]:
        table.add_row(page_id, str(marker))
    console.print(table)


@state_app.command("reset", help="Delete the registry so every page is processed again.")
def state_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    path = state.repository.state_path()
    if not yes and not typer.confirm(f"Delete {path}?", default=False):
        console.print("Cancelled.", style="yellow")
        raise typer.Exit(code=0)
    PageRegistry(path).reset()
    console.print("Registry cleared.", style="green")


@state_app.command("forget", help="Remove individual pages from the registry.")
def state_forget(
    ctx: typer.Context,
    page_ids: List[str] = typer.Argument(..., help="Page file names to forget."),
) -> None:
    state = _get_state(ctx)
    registry = _registry(state)
    removed = registry.forget(page_ids)
    registry.save()
    console.print(f"Removed {removed} of {len(page_ids)} pages.", style="green")


@config_app.command("show", help="Print the effective configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.repository.load_config()
    console.print(f"# {state.repository.locator.config_path()}", style="dim")
    console.print(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False))


@config_app.command("init", help="Write the configuration file with current values.")
def config_init(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    path = state.repository.save_config(state.repository.load_config())
    console.print(f"Configuration written to {path}", style="green")


@log_app.command("show", help="Show the most recent sync log lines.")
def log_show(tail: Optional[int] = typer.Option(100, "--tail", help="Number of lines.")) -> None:
    lines = tail_log(sync_log_path(), tail or 100)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print("".join(lines))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
