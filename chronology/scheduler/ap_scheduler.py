"""ChronologyScheduler: one-shot event timers on APScheduler's AsyncIOScheduler.

Each registered event becomes a ``DateTrigger`` job in the ``events`` job
store. The job id is derived from the run time, the action and the event
context, so registering the same event twice replaces the first job
instead of adding a second one.

With a ``jobstore_url`` the jobs live in a SQL table, so a short-lived
process (the ``save`` command) can register and cancel jobs that a
long-running ``run`` process later fires. Short-lived processes start the
scheduler paused: the job table is opened but nothing is executed. A
running scheduler rescans the table every ``poll_seconds`` to notice jobs
written by other processes.

When a job fires, the action is dispatched with its context through the
``ActionHooks`` of the scheduler that is currently running in this process.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime

from apscheduler.events import EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from chronology.core.logging import correlation_scope
from chronology.scheduler.hooks import ActionHooks

logger = logging.getLogger(__name__)

EVENTS_JOBSTORE = "events"
_POLL_JOB_ID = "chronology:poll"
# Persistent job stores keep a textual reference to the job function.
_FIRE_REF = f"{__name__}:fire_event"

_active: ChronologyScheduler | None = None


def event_job_id(run_at: int, action: str, context: Mapping[str, object]) -> str:
    digest = hashlib.sha256(
        json.dumps(dict(context), sort_keys=True, default=str).encode("utf-8")
    ).hexdigest()[:16]
    return f"event:{run_at}:{action}:{digest}"


async def fire_event(action: str, context: dict[str, object]) -> None:
    """Job function for every event job."""
    scheduler = _active
    if scheduler is None:
        logger.warning("Event %s fired with no running scheduler", action)
        return
    await scheduler.fire(action, context)


class ChronologyScheduler:
    """Registers and cancels single-run events.

    Wraps APScheduler v3 so the rest of the codebase does not depend on its
    internals directly.
    """

    def __init__(
        self,
        hooks: ActionHooks | None = None,
        *,
        misfire_grace_seconds: int | None = 300,
        jobstore_url: str | None = None,
        poll_seconds: int | None = None,
    ) -> None:
        events_store = (
            SQLAlchemyJobStore(url=jobstore_url) if jobstore_url else MemoryJobStore()
        )
        self._scheduler = AsyncIOScheduler(
            jobstores={EVENTS_JOBSTORE: events_store},
            timezone=UTC,
        )
        self._scheduler.add_listener(self._on_missed, EVENT_JOB_MISSED)
        self._hooks = hooks if hooks is not None else ActionHooks()
        self._misfire_grace_seconds = misfire_grace_seconds
        self._poll_seconds = poll_seconds
        self._missed: list[str] = []

    @property
    def hooks(self) -> ActionHooks:
        return self._hooks

    @property
    def running(self) -> bool:
        return self._scheduler.running

    @property
    def job_ids(self) -> list[str]:
        """Ids of the event jobs not yet run."""
        return [job.id for job in self._scheduler.get_jobs(jobstore=EVENTS_JOBSTORE)]

    @property
    def missed_job_ids(self) -> list[str]:
        """Event jobs dropped because they ran later than the misfire grace time."""
        return list(self._missed)

    def register(self, run_at: int, action: str, context: Mapping[str, object]) -> bool:
        """Schedule ``action`` to run once at ``run_at`` (UTC epoch seconds)."""
        job_id = event_job_id(run_at, action, context)
        # A stopped scheduler queues jobs without checking for duplicates.
        if self._scheduler.get_job(job_id, EVENTS_JOBSTORE) is not None:
            self._remove_job(job_id)

        run_date = datetime.fromtimestamp(run_at, UTC)
        self._scheduler.add_job(
            _FIRE_REF,
            trigger=DateTrigger(run_date=run_date, timezone=UTC),
            args=[action, dict(context)],
            id=job_id,
            name=action,
            jobstore=EVENTS_JOBSTORE,
            misfire_grace_time=self._misfire_grace_seconds,
            replace_existing=True,
        )
        logger.info("Registered %s at %s (%s)", action, run_date.isoformat(), job_id)
        return True

    def deregister(self, run_at: int, action: str, context: Mapping[str, object]) -> bool:
        """Cancel a registered event. Returns ``False`` if it was not registered."""
        job_id = event_job_id(run_at, action, context)
        if not self._remove_job(job_id):
            logger.debug("No registered job %s to cancel", job_id)
            return False
        logger.info("Deregistered %s (%s)", action, job_id)
        return True

    def start(self, *, paused: bool = False) -> None:
        """Start the scheduler. Idempotent.

        A paused scheduler opens its job store so jobs can be added and
        removed, but runs nothing.
        """
        global _active
        if self._scheduler.running:
            return
        self._scheduler.start(paused=paused)
        if not paused:
            _active = self
            if self._poll_seconds:
                self._scheduler.add_job(
                    self._poll,
                    trigger=IntervalTrigger(seconds=self._poll_seconds, timezone=UTC),
                    id=_POLL_JOB_ID,
                    replace_existing=True,
                )
        logger.info(
            "Scheduler started%s with %d jobs", " paused" if paused else "", len(self.job_ids)
        )

    def stop(self) -> None:
        """Stop the scheduler. Idempotent. Jobs in a SQL job store are kept."""
        global _active
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=False)
        if _active is self:
            _active = None
        logger.info("Scheduler stopped")

    async def fire(self, action: str, context: Mapping[str, object]) -> None:
        subject_id = context.get("subject_id")
        with correlation_scope(
            subject_id=subject_id if isinstance(subject_id, int) else None,
            action=action,
        ):
            try:
                completed = await self._hooks.dispatch(action, context)
            except Exception:
                logger.exception("Dispatch of %s failed", action)
                return
            logger.info("Fired %s (%d handlers)", action, completed)

    def _remove_job(self, job_id: str) -> bool:
        try:
            self._scheduler.remove_job(job_id, EVENTS_JOBSTORE)
        except JobLookupError:
            return False
        return True

    def _on_missed(self, event: JobExecutionEvent) -> None:
        if event.jobstore != EVENTS_JOBSTORE:
            return
        self._missed.append(event.job_id)
        logger.warning(
            "Missed event job %s scheduled for %s", event.job_id, event.scheduled_run_time
        )

    async def _poll(self) -> None:
        # Running any job makes APScheduler recompute its next wakeup from
        # the job store, which picks up jobs saved by other processes.
        logger.debug("Rescanned event job store")


__all__ = ["EVENTS_JOBSTORE", "ChronologyScheduler", "event_job_id", "fire_event"]
