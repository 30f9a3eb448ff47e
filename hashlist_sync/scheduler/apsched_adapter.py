"""APScheduler wrapper exposing higher level helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType
from ..logging_conf import configure_logging

SYNC_JOB_ID = "hashlist-sync"


class APSchedulerAdapter:
    """Manage the periodic sync job."""

    def __init__(self) -> None:
        self.scheduler = BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_sync(self, schedule: ScheduleConfig, callback: Callable[[], object]) -> None:
        trigger = self._build_trigger(schedule)
        # overlapping runs would share one registry file
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=SYNC_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info("job_scheduled", schedule=schedule.model_dump(mode="json"))

    def remove_sync(self) -> None:
        try:
            self.scheduler.remove_job(SYNC_JOB_ID)
        except JobLookupError:
            self.logger.warning("job_remove_failed", job=SYNC_JOB_ID)

    def _build_trigger(self, schedule: ScheduleConfig):
        value = schedule.value
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(value))
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(value, dict):
                return IntervalTrigger(**value)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return IntervalTrigger(seconds=float(value))
            raise ValueError(f"Unsupported interval value: {value!r}")
        if schedule.type is ScheduleType.ONCE:
            # no date means "as soon as the scheduler starts"
            return DateTrigger(run_date=datetime.fromisoformat(value) if value else None)
        raise ValueError(f"Unknown schedule type: {schedule.type}")

    def list_jobs(self) -> list[dict]:
        return [
            {"id": job.id, "next_run_time": job.next_run_time, "trigger": str(job.trigger)}
            for job in self.scheduler.get_jobs()
        ]


__all__ = ["APSchedulerAdapter", "SYNC_JOB_ID"]
