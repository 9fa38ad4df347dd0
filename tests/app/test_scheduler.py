from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from mixtape import scheduler as scheduler_module
from mixtape.config import ScheduleConfig
from mixtape.scheduler import (
    CLEANUP_JOB,
    ROUND_CREATION_JOB,
    ROUND_PROCESSING_JOB,
    TOKEN_REFRESH_JOB,
    register_jobs,
    run_scheduler,
)

if TYPE_CHECKING:
    from apscheduler.job import Job

    from mixtape.app import MixtapeServices


class _RecordingRounds:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def create_daily_rounds(self) -> None:
        self.calls.append("create")

    def process_completed_rounds(self) -> None:
        self.calls.append("process")

    def refresh_expired_tokens(self) -> None:
        self.calls.append("refresh")

    def cleanup_old_data(self) -> None:
        raise RuntimeError("database is locked")


class _Services:
    def __init__(self) -> None:
        self.rounds = _RecordingRounds()


def _fields(job: Job) -> dict[str, str]:
    trigger = cast("CronTrigger", job.trigger)
    return {field.name: str(field) for field in trigger.fields}


@pytest.fixture
def services() -> _Services:
    return _Services()


@pytest.fixture
def jobs(services: _Services) -> dict[str, Job]:
    scheduler = BackgroundScheduler()
    register_jobs(
        scheduler,
        cast("MixtapeServices", services),
        ScheduleConfig(round_processing_hour=9, token_refresh_interval_hours=6),
    )
    return {job.id: job for job in scheduler.get_jobs()}


def test_register_jobs_adds_every_job(jobs: dict[str, Job]) -> None:
    assert set(jobs) == {ROUND_CREATION_JOB, ROUND_PROCESSING_JOB, TOKEN_REFRESH_JOB, CLEANUP_JOB}


def test_job_triggers_follow_schedule(jobs: dict[str, Job]) -> None:
    assert isinstance(jobs[ROUND_CREATION_JOB].trigger, CronTrigger)
    assert _fields(jobs[ROUND_CREATION_JOB])["hour"] == "0"
    assert _fields(jobs[ROUND_PROCESSING_JOB])["hour"] == "9"
    cleanup = _fields(jobs[CLEANUP_JOB])
    assert cleanup["day_of_week"] == "sun"
    assert cleanup["hour"] == "2"
    refresh = _fields(jobs[TOKEN_REFRESH_JOB])
    assert refresh["hour"] == "*/6"
    assert refresh["minute"] == "0"


def test_jobs_run_the_round_operations(jobs: dict[str, Job], services: _Services) -> None:
    jobs[ROUND_CREATION_JOB].func()
    jobs[ROUND_PROCESSING_JOB].func()
    jobs[TOKEN_REFRESH_JOB].func()

    assert services.rounds.calls == ["create", "process", "refresh"]


def test_failing_job_is_logged_not_raised(
    jobs: dict[str, Job], caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.ERROR, logger="mixtape.scheduler"):
        jobs[CLEANUP_JOB].func()

    assert "Job cleanup_old_data failed" in caplog.text


def test_disabled_scheduler_does_not_start(
    services: _Services, monkeypatch: pytest.MonkeyPatch
) -> None:
    def fail_build(*_: object) -> None:
        raise AssertionError("scheduler must not be built")

    monkeypatch.setattr(scheduler_module, "build_scheduler", fail_build)

    run_scheduler(cast("MixtapeServices", services), ScheduleConfig(enabled=False))
