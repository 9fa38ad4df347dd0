"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "mixtape"
DEFAULT_DB_FILENAME: Final[str] = "mixtape.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME
    http_cache_filename: str = HTTP_CACHE_FILENAME

    def ensure_data_dir(self) -> Path:
        data_dir = self.data_dir.expanduser().resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.ensure_data_dir() / self.database_filename}"

    def http_cache_path(self) -> Path:
        return self.ensure_data_dir() / self.http_cache_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def _default_data_dir() -> Path:
    base = os.getenv("XDG_DATA_HOME")
    base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("MIXTAPE_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    echo = os.getenv("MIXTAPE_SQL_ECHO", "").strip().lower() in {"1", "true", "yes"}
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri, echo=echo)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri(), echo=echo)
