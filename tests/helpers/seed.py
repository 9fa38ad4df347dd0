"""Builders for persisted test fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from mixtape.domain.model import (
    DailyRound,
    Group,
    GroupMember,
    GroupPlaylist,
    Platform,
    Song,
    Submission,
    User,
    UserEmailAlias,
    UserMusicAccount,
    UserMusicPreferences,
)

if TYPE_CHECKING:
    from uuid import UUID

    from mixtape.domain.ports import MixtapeRepositories, Repository, UnitOfWorkFactory

FAR_FUTURE = datetime(2099, 1, 1, tzinfo=UTC)


def _repository_for(repos: MixtapeRepositories, entity: object) -> Repository[object]:
    mapping: dict[type, Repository[object]] = {
        User: repos.users,
        UserMusicAccount: repos.music_accounts,
        UserEmailAlias: repos.email_aliases,
        UserMusicPreferences: repos.preferences,
        Group: repos.groups,
        GroupMember: repos.memberships,
        GroupPlaylist: repos.playlists,
        DailyRound: repos.rounds,
        Submission: repos.submissions,
        Song: repos.songs,
    }
    return mapping[type(entity)]


def persist(unit_of_work_factory: UnitOfWorkFactory, *entities: object) -> None:
    with unit_of_work_factory() as uow:
        repos = uow.repositories
        for entity in entities:
            _repository_for(repos, entity).add(entity)
        uow.commit()


def make_user(name: str) -> User:
    return User(email=f"{name.lower()}@example.com", display_name=name)


def make_account(
    user: User,
    platform: Platform = Platform.SPOTIFY,
    *,
    access_token: str | None = None,
    refresh_token: str | None = "refresh-token",
    expires_at: datetime | None = FAR_FUTURE,
) -> UserMusicAccount:
    return UserMusicAccount(
        user_id=user.id,
        platform=platform,
        access_token=access_token or f"{user.display_name.lower()}-{platform}-token",
        refresh_token=refresh_token,
        expires_at=expires_at,
    )


@dataclass
class GroupFixture:
    """A persisted group with its members in join order."""

    group: Group
    members: list[User]
    accounts: list[UserMusicAccount] = field(default_factory=list)

    @property
    def admin(self) -> User:
        return self.members[0]

    @property
    def group_id(self) -> UUID:
        return self.group.id


def seed_group(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    name: str = "Night Owls",
    members: dict[str, tuple[Platform, ...]],
    preferences: dict[str, Platform] | None = None,
    joined: datetime = datetime(2025, 1, 1, tzinfo=UTC),
) -> GroupFixture:
    """Persist a group whose first member is the admin.

    ``members`` maps display names to the platforms each member has connected.
    """

    users = [make_user(member_name) for member_name in members]
    group = Group(name=name, admin_user_id=users[0].id)
    entities: list[object] = [*users, group]
    accounts: list[UserMusicAccount] = []
    for index, (user, platforms) in enumerate(zip(users, members.values(), strict=True)):
        entities.append(
            GroupMember(
                group_id=group.id, user_id=user.id, joined_at=joined + timedelta(minutes=index)
            )
        )
        for platform in platforms:
            account = make_account(user, platform)
            accounts.append(account)
            entities.append(account)
    for user in users:
        preferred = (preferences or {}).get(user.display_name)
        if preferred is not None:
            entities.append(UserMusicPreferences(user_id=user.id, preferred_platform=preferred))
    persist(unit_of_work_factory, *entities)
    return GroupFixture(group=group, members=users, accounts=accounts)


def seed_round(
    unit_of_work_factory: UnitOfWorkFactory,
    group: Group,
    day: date,
    *,
    submissions: dict[User, Song] | None = None,
) -> DailyRound:
    daily_round = DailyRound(
        group_id=group.id,
        date=day,
        deadline_at=datetime.combine(day, datetime.min.time(), tzinfo=UTC) + timedelta(hours=23),
    )
    entities: list[object] = [daily_round]
    for offset, (user, song) in enumerate((submissions or {}).items()):
        entities.append(song)
        entities.append(
            Submission(
                round_id=daily_round.id,
                user_id=user.id,
                song_id=song.id,
                submitted_at=datetime.combine(day, datetime.min.time(), tzinfo=UTC)
                + timedelta(hours=9, minutes=offset),
            )
        )
    persist(unit_of_work_factory, *entities)
    return daily_round


def seed_playlist(
    unit_of_work_factory: UnitOfWorkFactory,
    group: Group,
    owner: User,
    platform: Platform = Platform.SPOTIFY,
    *,
    platform_playlist_id: str = "existing-playlist",
) -> GroupPlaylist:
    playlist = GroupPlaylist(
        group_id=group.id,
        platform=platform,
        platform_playlist_id=platform_playlist_id,
        playlist_url=f"https://example.test/{platform_playlist_id}",
        playlist_name=group.playlist_name,
        owner_user_id=owner.id,
    )
    persist(unit_of_work_factory, playlist)
    return playlist
