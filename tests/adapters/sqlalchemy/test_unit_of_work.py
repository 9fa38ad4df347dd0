from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from mixtape.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from mixtape.domain.errors import DuplicateEntityError
from mixtape.domain.model import User
from tests.helpers.seed import make_user

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_migrates_schema() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine, force=True)

    tables = set(inspect(engine).get_table_names())
    assert {
        "user",
        "user_music_account",
        "user_music_preferences",
        "user_email_alias",
        "group",
        "group_member",
        "group_playlist",
        "song",
        "daily_round",
        "submission",
        "alembic_version",
    } <= tables


def test_repositories_require_open_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_unit_of_work_persists_users(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    user = make_user("Ada")

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.users.add(user)
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        stored = uow.repositories.users.get(user.id)
        assert stored is not None
        assert stored.email == "ada@example.com"
        assert stored.created_at.tzinfo is not None


def test_unit_of_work_rolls_back_on_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    user = make_user("Ada")

    with pytest.raises(RuntimeError), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.users.add(user)
        uow.flush()
        raise RuntimeError("abort")

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.repositories.users.get(user.id) is None


def test_commit_translates_integrity_errors(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.repositories.users.add(make_user("Ada"))
        uow.commit()

    with pytest.raises(DuplicateEntityError), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.users.add(User(email="ada@example.com", display_name="Other Ada"))
        uow.commit()


def test_flush_translates_integrity_errors(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(DuplicateEntityError), SqlAlchemyUnitOfWork() as uow:
        uow.repositories.users.add(make_user("Ada"))
        uow.repositories.users.add(User(email="ada@example.com", display_name="Twin"))
        uow.flush()
