"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from mixtape.domain.ports.persistence import (
        DailyRoundRepository,
        EmailAliasRepository,
        GroupPlaylistRepository,
        GroupRepository,
        MembershipRepository,
        MusicAccountRepository,
        PreferencesRepository,
        SongRepository,
        SubmissionRepository,
        UserRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    ``commit`` raises ``DuplicateEntityError`` when a unique constraint rejects
    the pending changes; the session has been rolled back by then.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def flush(self) -> None:
        """Send pending changes without committing, fixing statement order."""
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class MixtapeRepositories(RepositoryCollection):
    users: UserRepository
    music_accounts: MusicAccountRepository
    email_aliases: EmailAliasRepository
    preferences: PreferencesRepository
    groups: GroupRepository
    memberships: MembershipRepository
    playlists: GroupPlaylistRepository
    rounds: DailyRoundRepository
    submissions: SubmissionRepository
    songs: SongRepository


type MixtapeUnitOfWork = UnitOfWork[MixtapeRepositories]
type UnitOfWorkFactory = Callable[[], MixtapeUnitOfWork]
