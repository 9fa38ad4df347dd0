"""Application configuration helpers."""

from __future__ import annotations

from .apple_music import AppleMusicConfig, get_apple_music_config, normalize_private_key
from .env import require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConfigurationValueError,
    MissingConfigurationError,
)
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .schedule import ScheduleConfig, get_schedule_config
from .spotify import (
    DEFAULT_SPOTIFY_SCOPES,
    SpotifyConfig,
    get_spotify_config,
    merge_spotify_scopes,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_SPOTIFY_SCOPES",
    "AppleMusicConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ScheduleConfig",
    "SpotifyConfig",
    "StorageConfig",
    "configure_logging",
    "get_apple_music_config",
    "get_database_config",
    "get_schedule_config",
    "get_spotify_config",
    "get_storage_config",
    "merge_spotify_scopes",
    "normalize_private_key",
    "require_env_vars",
]
