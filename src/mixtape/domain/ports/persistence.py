"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from mixtape.domain.model import (
    DailyRound,
    Group,
    GroupMember,
    GroupPlaylist,
    Song,
    Submission,
    User,
    UserEmailAlias,
    UserMusicAccount,
    UserMusicPreferences,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import date, datetime
    from uuid import UUID

    from mixtape.domain.model import Platform


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def delete(self, entity: TEntity) -> None: ...


@runtime_checkable
class UserRepository(Repository[User], Protocol):
    def get(self, user_id: UUID) -> User | None: ...

    def get_by_email(self, email: str) -> User | None: ...


@runtime_checkable
class MusicAccountRepository(Repository[UserMusicAccount], Protocol):
    def get(self, user_id: UUID, platform: Platform) -> UserMusicAccount | None: ...

    def list_for_user(self, user_id: UUID) -> Sequence[UserMusicAccount]: ...

    def list_for_users(self, user_ids: Iterable[UUID]) -> Sequence[UserMusicAccount]: ...

    def list_refreshable_expiring_before(self, moment: datetime) -> Sequence[UserMusicAccount]:
        """Accounts holding a refresh token whose expiry is at or before ``moment``."""
        ...


@runtime_checkable
class EmailAliasRepository(Repository[UserEmailAlias], Protocol):
    def get_by_email(self, alias_email: str) -> UserEmailAlias | None: ...

    def list_for_user(self, user_id: UUID) -> Sequence[UserEmailAlias]: ...


@runtime_checkable
class PreferencesRepository(Repository[UserMusicPreferences], Protocol):
    def get_for_user(self, user_id: UUID) -> UserMusicPreferences | None: ...

    def list_for_users(self, user_ids: Iterable[UUID]) -> Sequence[UserMusicPreferences]: ...


@runtime_checkable
class GroupRepository(Repository[Group], Protocol):
    def get(self, group_id: UUID) -> Group | None: ...

    def list_all(self) -> Sequence[Group]: ...

    def list_administered_by(self, user_id: UUID) -> Sequence[Group]: ...


@runtime_checkable
class MembershipRepository(Repository[GroupMember], Protocol):
    def get(self, group_id: UUID, user_id: UUID) -> GroupMember | None: ...

    def list_for_group(self, group_id: UUID) -> Sequence[GroupMember]:
        """Members ordered by join time."""
        ...

    def list_for_user(self, user_id: UUID) -> Sequence[GroupMember]: ...

    def count_for_group(self, group_id: UUID) -> int: ...


@runtime_checkable
class GroupPlaylistRepository(Repository[GroupPlaylist], Protocol):
    def get(self, playlist_id: UUID) -> GroupPlaylist | None: ...

    def get_active(self, group_id: UUID, platform: Platform) -> GroupPlaylist | None: ...

    def list_active(self, group_id: UUID) -> Sequence[GroupPlaylist]: ...

    def list_owned_by(self, user_id: UUID) -> Sequence[GroupPlaylist]:
        """Active and superseded rows alike."""
        ...


@runtime_checkable
class DailyRoundRepository(Repository[DailyRound], Protocol):
    def get(self, round_id: UUID) -> DailyRound | None: ...

    def get_for_date(self, group_id: UUID, day: date) -> DailyRound | None: ...

    def list_active_on(self, day: date) -> Sequence[DailyRound]: ...

    def list_dated_before(self, day: date) -> Sequence[DailyRound]: ...


@runtime_checkable
class SubmissionRepository(Repository[Submission], Protocol):
    def get(self, round_id: UUID, user_id: UUID) -> Submission | None: ...

    def list_for_round(self, round_id: UUID) -> Sequence[Submission]:
        """Submissions in the order they were made."""
        ...

    def list_for_user(self, user_id: UUID) -> Sequence[Submission]: ...

    def count_for_round(self, round_id: UUID) -> int: ...


@runtime_checkable
class SongRepository(Repository[Song], Protocol):
    def get(self, song_id: UUID) -> Song | None: ...

    def get_many(self, song_ids: Iterable[UUID]) -> dict[UUID, Song]: ...
