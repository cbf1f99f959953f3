"""Periodic creation and resolution jobs on an APScheduler BackgroundScheduler."""

from __future__ import annotations

from typing import Any

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from automarkets.config import Settings
from automarkets.jobs import run_creation_job, run_resolution_job

log = structlog.get_logger(__name__)

CREATION_JOB_ID = "market-creation"
RESOLUTION_JOB_ID = "market-resolution"


class AutomationScheduler:
    """Runs the creation cycle and the resolution check on fixed intervals.

    Jobs never overlap themselves: APScheduler caps each at one instance and the
    job functions hold their own non-blocking locks.
    """

    def __init__(self, settings: Settings, scheduler: BackgroundScheduler | None = None) -> None:
        self.settings = settings
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self._configured = False

    def _creation(self) -> None:
        result = run_creation_job(self.settings)
        log.info(
            "scheduled_creation_done",
            success=result.success,
            market_created=result.market_created,
            market_id=result.market_id,
            reason=result.reason,
            error=result.error,
        )

    def _resolution(self) -> None:
        report = run_resolution_job(self.settings)
        if report.errors:
            log.warning("scheduled_resolution_errors", errors=report.errors[:5])

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.exception is not None:
            log.error("scheduled_job_crashed", job_id=event.job_id, error=str(event.exception))

    def configure(self) -> None:
        if self._configured:
            return
        self.scheduler.add_listener(self._on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
        self.scheduler.add_job(
            self._creation,
            IntervalTrigger(minutes=self.settings.creation_interval_min),
            id=CREATION_JOB_ID,
            name="Market creation cycle",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self._resolution,
            IntervalTrigger(minutes=self.settings.resolution_interval_min),
            id=RESOLUTION_JOB_ID,
            name="Market resolution check",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._configured = True
        log.info(
            "scheduler_configured",
            creation_interval_min=self.settings.creation_interval_min,
            resolution_interval_min=self.settings.resolution_interval_min,
        )

    def start(self) -> None:
        self.configure()
        if not self.scheduler.running:
            self.scheduler.start()
            log.info("scheduler_started", jobs=len(self.scheduler.get_jobs()))

    def stop(self, wait: bool = True) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            log.info("scheduler_stopped")

    def status(self) -> dict[str, Any]:
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({"id": job.id, "name": job.name, "next_run": next_run.isoformat() if next_run else None})
        return {"running": self.scheduler.running, "jobs": jobs}
