"""Timed jobs for the daily round lifecycle.

All triggers run in UTC. Each job body catches and logs its own failures so one
bad run never stops the scheduler; the next tick simply tries again.
"""

from __future__ import annotations

from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from collections.abc import Callable

    from apscheduler.schedulers.base import BaseScheduler

    from mixtape.app import MixtapeServices
    from mixtape.config import ScheduleConfig

log = getLogger(__name__)

ROUND_CREATION_JOB = "create_daily_rounds"
ROUND_PROCESSING_JOB = "process_completed_rounds"
TOKEN_REFRESH_JOB = "refresh_expired_tokens"
CLEANUP_JOB = "cleanup_old_data"


def _guarded(name: str, job: Callable[[], object]) -> Callable[[], None]:
    def run() -> None:
        log.info("Job %s started", name)
        try:
            job()
        except Exception:  # noqa: BLE001
            log.exception("Job %s failed", name)
            return
        log.info("Job %s finished", name)

    run.__name__ = name
    return run


def register_jobs(
    scheduler: BaseScheduler,
    services: MixtapeServices,
    schedule: ScheduleConfig,
) -> None:
    rounds = services.rounds
    jobs = (
        (
            ROUND_CREATION_JOB,
            "Create daily rounds",
            rounds.create_daily_rounds,
            CronTrigger(hour=schedule.round_creation_hour, minute=0, timezone=UTC),
        ),
        (
            ROUND_PROCESSING_JOB,
            "Publish and conclude yesterday's rounds",
            rounds.process_completed_rounds,
            CronTrigger(hour=schedule.round_processing_hour, minute=0, timezone=UTC),
        ),
        (
            TOKEN_REFRESH_JOB,
            "Refresh expiring platform tokens",
            rounds.refresh_expired_tokens,
            CronTrigger(
                hour=f"*/{schedule.token_refresh_interval_hours}", minute=0, timezone=UTC
            ),
        ),
        (
            CLEANUP_JOB,
            "Remove expired rounds and submissions",
            rounds.cleanup_old_data,
            CronTrigger(
                day_of_week=schedule.cleanup_day_of_week,
                hour=schedule.cleanup_hour,
                minute=0,
                timezone=UTC,
            ),
        ),
    )
    for job_id, name, func, trigger in jobs:
        scheduler.add_job(
            _guarded(job_id, func),
            trigger,
            id=job_id,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )


def build_scheduler(services: MixtapeServices, schedule: ScheduleConfig) -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=UTC)
    register_jobs(scheduler, services, schedule)
    return scheduler


def run_scheduler(services: MixtapeServices, schedule: ScheduleConfig) -> None:
    """Block running the jobs until interrupted."""

    if not schedule.enabled:
        log.info("Scheduler disabled by MIXTAPE_SCHEDULER_ENABLED")
        return
    scheduler = build_scheduler(services, schedule)
    for job in scheduler.get_jobs():
        log.info("Scheduled %s (%s)", job.id, job.trigger)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        log.info("Scheduler stopping")
        if scheduler.running:
            scheduler.shutdown(wait=False)
