"""Timing configuration for the daily round jobs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, env_int
from .errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class ScheduleConfig:
    """Hours are UTC. Rounds close at ``deadline_hour`` on their own date."""

    enabled: bool = True
    round_creation_hour: int = 0
    round_processing_hour: int = 8
    token_refresh_interval_hours: int = 4
    token_refresh_window_hours: int = 1
    cleanup_day_of_week: str = "sun"
    cleanup_hour: int = 2
    cleanup_retention_days: int = 30
    deadline_hour: int = 23

    def __post_init__(self) -> None:
        hours = ("round_creation_hour", "round_processing_hour", "cleanup_hour", "deadline_hour")
        for name in hours:
            value = getattr(self, name)
            if not 0 <= value <= 23:
                raise ConfigurationError(f"{name} must be between 0 and 23, got {value}")


def get_schedule_config() -> ScheduleConfig:
    return ScheduleConfig(
        enabled=env_flag("MIXTAPE_SCHEDULER_ENABLED", default=True),
        round_creation_hour=env_int("MIXTAPE_ROUND_CREATION_HOUR", 0, minimum=0),
        round_processing_hour=env_int("MIXTAPE_ROUND_PROCESSING_HOUR", 8, minimum=0),
        token_refresh_interval_hours=env_int(
            "MIXTAPE_TOKEN_REFRESH_INTERVAL_HOURS", 4, minimum=1
        ),
        cleanup_retention_days=env_int("MIXTAPE_CLEANUP_RETENTION_DAYS", 30, minimum=1),
        deadline_hour=env_int("MIXTAPE_ROUND_DEADLINE_HOUR", 23, minimum=0),
    )
