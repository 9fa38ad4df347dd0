"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from mixtape.adapters.sqlalchemy.mappings import (
    daily_round_table,
    group_member_table,
    group_playlist_table,
    group_table,
    song_table,
    submission_table,
    user_email_alias_table,
    user_music_account_table,
    user_music_preferences_table,
    user_table,
)
from mixtape.domain.model import (
    DailyRound,
    Group,
    GroupMember,
    GroupPlaylist,
    PlaylistState,
    RoundStatus,
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

    from sqlalchemy.orm import Session

    from mixtape.domain.model import Platform


class SqlAlchemyRepository[TEntity]:
    """Shared add/delete for repositories over a single mapped class."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def delete(self, entity: TEntity) -> None:
        self.session.delete(entity)

    def _get(self, entity_id: UUID) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)


class SqlAlchemyUserRepository(SqlAlchemyRepository[User]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, User)

    def get(self, user_id: UUID) -> User | None:
        return self._get(user_id)

    def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(user_table.c.email == email.strip().lower())
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyMusicAccountRepository(SqlAlchemyRepository[UserMusicAccount]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, UserMusicAccount)

    def get(self, user_id: UUID, platform: Platform) -> UserMusicAccount | None:
        stmt = (
            select(UserMusicAccount)
            .where(user_music_account_table.c.user_id == user_id)
            .where(user_music_account_table.c.platform == platform)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_user(self, user_id: UUID) -> Sequence[UserMusicAccount]:
        stmt = select(UserMusicAccount).where(user_music_account_table.c.user_id == user_id)
        return self.session.execute(stmt).scalars().all()

    def list_for_users(self, user_ids: Iterable[UUID]) -> Sequence[UserMusicAccount]:
        ids = list(user_ids)
        if not ids:
            return []
        stmt = select(UserMusicAccount).where(user_music_account_table.c.user_id.in_(ids))
        return self.session.execute(stmt).scalars().all()

    def list_refreshable_expiring_before(self, moment: datetime) -> Sequence[UserMusicAccount]:
        columns = user_music_account_table.c
        stmt = (
            select(UserMusicAccount)
            .where(columns.refresh_token.is_not(None))
            .where(columns.expires_at.is_not(None))
            .where(columns.expires_at <= moment)
            .order_by(columns.expires_at)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyEmailAliasRepository(SqlAlchemyRepository[UserEmailAlias]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, UserEmailAlias)

    def get_by_email(self, alias_email: str) -> UserEmailAlias | None:
        stmt = select(UserEmailAlias).where(
            user_email_alias_table.c.alias_email == alias_email.strip().lower()
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_user(self, user_id: UUID) -> Sequence[UserEmailAlias]:
        stmt = select(UserEmailAlias).where(user_email_alias_table.c.user_id == user_id)
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyPreferencesRepository(SqlAlchemyRepository[UserMusicPreferences]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, UserMusicPreferences)

    def get_for_user(self, user_id: UUID) -> UserMusicPreferences | None:
        stmt = select(UserMusicPreferences).where(
            user_music_preferences_table.c.user_id == user_id
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_users(self, user_ids: Iterable[UUID]) -> Sequence[UserMusicPreferences]:
        ids = list(user_ids)
        if not ids:
            return []
        stmt = select(UserMusicPreferences).where(
            user_music_preferences_table.c.user_id.in_(ids)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyGroupRepository(SqlAlchemyRepository[Group]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Group)

    def get(self, group_id: UUID) -> Group | None:
        return self._get(group_id)

    def list_all(self) -> Sequence[Group]:
        stmt = select(Group).order_by(group_table.c.created_at, group_table.c.id)
        return self.session.execute(stmt).scalars().all()

    def list_administered_by(self, user_id: UUID) -> Sequence[Group]:
        stmt = select(Group).where(group_table.c.admin_user_id == user_id)
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyMembershipRepository(SqlAlchemyRepository[GroupMember]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, GroupMember)

    def get(self, group_id: UUID, user_id: UUID) -> GroupMember | None:
        stmt = (
            select(GroupMember)
            .where(group_member_table.c.group_id == group_id)
            .where(group_member_table.c.user_id == user_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_group(self, group_id: UUID) -> Sequence[GroupMember]:
        stmt = (
            select(GroupMember)
            .where(group_member_table.c.group_id == group_id)
            .order_by(group_member_table.c.joined_at, group_member_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def list_for_user(self, user_id: UUID) -> Sequence[GroupMember]:
        stmt = select(GroupMember).where(group_member_table.c.user_id == user_id)
        return self.session.execute(stmt).scalars().all()

    def count_for_group(self, group_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(group_member_table)
            .where(group_member_table.c.group_id == group_id)
        )
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemyGroupPlaylistRepository(SqlAlchemyRepository[GroupPlaylist]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, GroupPlaylist)

    def get(self, playlist_id: UUID) -> GroupPlaylist | None:
        return self._get(playlist_id)

    def get_active(self, group_id: UUID, platform: Platform) -> GroupPlaylist | None:
        stmt = (
            select(GroupPlaylist)
            .where(group_playlist_table.c.group_id == group_id)
            .where(group_playlist_table.c.platform == platform)
            .where(group_playlist_table.c.state == PlaylistState.ACTIVE)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_active(self, group_id: UUID) -> Sequence[GroupPlaylist]:
        stmt = (
            select(GroupPlaylist)
            .where(group_playlist_table.c.group_id == group_id)
            .where(group_playlist_table.c.state == PlaylistState.ACTIVE)
            .order_by(group_playlist_table.c.created_at)
        )
        return self.session.execute(stmt).scalars().all()

    def list_owned_by(self, user_id: UUID) -> Sequence[GroupPlaylist]:
        stmt = select(GroupPlaylist).where(group_playlist_table.c.owner_user_id == user_id)
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyDailyRoundRepository(SqlAlchemyRepository[DailyRound]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, DailyRound)

    def get(self, round_id: UUID) -> DailyRound | None:
        return self._get(round_id)

    def get_for_date(self, group_id: UUID, day: date) -> DailyRound | None:
        stmt = (
            select(DailyRound)
            .where(daily_round_table.c.group_id == group_id)
            .where(daily_round_table.c.date == day)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_active_on(self, day: date) -> Sequence[DailyRound]:
        stmt = (
            select(DailyRound)
            .where(daily_round_table.c.date == day)
            .where(daily_round_table.c.status == RoundStatus.ACTIVE)
            .order_by(daily_round_table.c.created_at)
        )
        return self.session.execute(stmt).scalars().all()

    def list_dated_before(self, day: date) -> Sequence[DailyRound]:
        stmt = select(DailyRound).where(daily_round_table.c.date < day)
        return self.session.execute(stmt).scalars().all()


class SqlAlchemySubmissionRepository(SqlAlchemyRepository[Submission]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Submission)

    def get(self, round_id: UUID, user_id: UUID) -> Submission | None:
        stmt = (
            select(Submission)
            .where(submission_table.c.round_id == round_id)
            .where(submission_table.c.user_id == user_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_round(self, round_id: UUID) -> Sequence[Submission]:
        stmt = (
            select(Submission)
            .where(submission_table.c.round_id == round_id)
            .order_by(submission_table.c.submitted_at, submission_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def list_for_user(self, user_id: UUID) -> Sequence[Submission]:
        stmt = select(Submission).where(submission_table.c.user_id == user_id)
        return self.session.execute(stmt).scalars().all()

    def count_for_round(self, round_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(submission_table)
            .where(submission_table.c.round_id == round_id)
        )
        return int(self.session.execute(stmt).scalar_one())


class SqlAlchemySongRepository(SqlAlchemyRepository[Song]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Song)

    def get(self, song_id: UUID) -> Song | None:
        return self._get(song_id)

    def get_many(self, song_ids: Iterable[UUID]) -> dict[UUID, Song]:
        ids = list(dict.fromkeys(song_ids))
        if not ids:
            return {}
        stmt = select(Song).where(song_table.c.id.in_(ids))
        return {song.id: song for song in self.session.execute(stmt).scalars()}
