from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from mixtape.config import get_database_config, get_storage_config
from mixtape.config.storage import DEFAULT_DB_FILENAME, StorageConfig


def test_storage_prefers_explicit_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("MIXTAPE_DATA_DIR", str(custom))

    assert get_storage_config().data_dir == custom


def test_storage_falls_back_to_xdg_data_home(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("MIXTAPE_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert get_storage_config().data_dir == (tmp_path / "mixtape").resolve()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://mixtape@db/mixtape")
    monkeypatch.setenv("MIXTAPE_SQL_ECHO", "true")

    config = get_database_config()

    assert config.uri == "postgresql+psycopg://mixtape@db/mixtape"
    assert config.echo


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.delenv("MIXTAPE_SQL_ECHO", raising=False)
    storage = StorageConfig(data_dir=tmp_path / "data-dir")

    config = get_database_config(storage=storage)

    expected_path = (tmp_path / "data-dir" / DEFAULT_DB_FILENAME).resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected_path}"
    assert not config.echo
    assert expected_path.parent.exists()


def test_http_cache_lives_in_data_dir(tmp_path: Path) -> None:
    storage = StorageConfig(data_dir=tmp_path)

    assert storage.http_cache_path() == tmp_path.resolve() / "http_cache.db"
