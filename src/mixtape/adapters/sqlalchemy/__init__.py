"""SQLAlchemy adapter package for mixtape."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyDailyRoundRepository,
    SqlAlchemyEmailAliasRepository,
    SqlAlchemyGroupPlaylistRepository,
    SqlAlchemyGroupRepository,
    SqlAlchemyMembershipRepository,
    SqlAlchemyMusicAccountRepository,
    SqlAlchemyPreferencesRepository,
    SqlAlchemySongRepository,
    SqlAlchemySubmissionRepository,
    SqlAlchemyUserRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyDailyRoundRepository",
    "SqlAlchemyEmailAliasRepository",
    "SqlAlchemyGroupPlaylistRepository",
    "SqlAlchemyGroupRepository",
    "SqlAlchemyMembershipRepository",
    "SqlAlchemyMusicAccountRepository",
    "SqlAlchemyPreferencesRepository",
    "SqlAlchemySongRepository",
    "SqlAlchemySubmissionRepository",
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyUserRepository",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "startup",
]
