"""SQLAlchemy mapping metadata for the mixtape domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
    text,
)
from sqlalchemy.orm import configure_mappers

from mixtape.domain.model import (
    DailyRound,
    Group,
    GroupMember,
    GroupPlaylist,
    Platform,
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
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class PlatformIdMapType(TypeDecorator[dict[Platform, str]]):
    """``{platform: track id}`` stored as a JSON object keyed by platform value."""

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: Mapping[Platform, str] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = {str(platform): track_id for platform, track_id in sorted(value.items())}
        return json.dumps(payload, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[Platform, str]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        items = cast(dict[str, Any], loaded)
        platform_ids: dict[Platform, str] = {}
        for key, track_id in items.items():
            if key in Platform.__members__.values() and isinstance(track_id, str):
                platform_ids[Platform(key)] = track_id
            else:
                log.debug("Ignoring unknown platform id entry %r", key)
        return platform_ids


def _enum_column_type[TEnum: StrEnum](enum_cls: type[TEnum], length: int) -> Enum:
    # store the enum values ("apple-music"), not the member names
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


PlatformColumnType = _enum_column_type(Platform, 32)

mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Users -----------------------------------------------------------------------

user_table = Table(
    "user",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("email", String(320), nullable=False),
    Column("display_name", String(200), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("email"),
)

user_music_account_table = Table(
    "user_music_account",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("user_id", UUIDColumnType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
    Column("platform", PlatformColumnType, nullable=False),
    Column("access_token", Text, nullable=False),
    Column("refresh_token", Text, nullable=True),
    Column("expires_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("user_id", "platform"),
    Index(None, "expires_at"),
)

user_music_preferences_table = Table(
    "user_music_preferences",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("user_id", UUIDColumnType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
    Column("preferred_platform", PlatformColumnType, nullable=True),
    UniqueConstraint("user_id"),
)

user_email_alias_table = Table(
    "user_email_alias",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("alias_email", String(320), nullable=False),
    Column("user_id", UUIDColumnType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
    Column("platform", PlatformColumnType, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("alias_email"),
    Index(None, "user_id"),
)

# Groups ----------------------------------------------------------------------

group_table = Table(
    "group",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String(200), nullable=False),
    Column("admin_user_id", UUIDColumnType, ForeignKey("user.id"), nullable=False),
    Column("invite_code", String(8), nullable=False),
    Column("max_members", Integer, nullable=False),
    Column("is_public", Boolean, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("invite_code"),
    Index(None, "admin_user_id"),
)

group_member_table = Table(
    "group_member",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("group_id", UUIDColumnType, ForeignKey("group.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", UUIDColumnType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
    Column("joined_at", UTCDateTime(), nullable=False),
    UniqueConstraint("group_id", "user_id"),
    Index(None, "user_id"),
)

group_playlist_table = Table(
    "group_playlist",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("group_id", UUIDColumnType, ForeignKey("group.id", ondelete="CASCADE"), nullable=False),
    Column("platform", PlatformColumnType, nullable=False),
    Column("platform_playlist_id", String(255), nullable=False),
    Column("playlist_url", String(500), nullable=True),
    Column("playlist_name", String(255), nullable=False),
    Column("owner_user_id", UUIDColumnType, ForeignKey("user.id"), nullable=False),
    Column("state", _enum_column_type(PlaylistState, 16), nullable=False),
    Column("last_updated", UTCDateTime(), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    # at most one active playlist per group and platform; superseded rows are kept
    Index(
        "uq_group_playlist_active",
        "group_id",
        "platform",
        unique=True,
        sqlite_where=text("state = 'active'"),
        postgresql_where=text("state = 'active'"),
    ),
    Index(None, "owner_user_id"),
)

# Rounds ----------------------------------------------------------------------

song_table = Table(
    "song",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("title", String(500), nullable=False),
    Column("artist", String(500), nullable=False),
    Column("album", String(500), nullable=True),
    Column("duration_seconds", Integer, nullable=True),
    Column("platform_ids", PlatformIdMapType(), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

daily_round_table = Table(
    "daily_round",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("group_id", UUIDColumnType, ForeignKey("group.id", ondelete="CASCADE"), nullable=False),
    Column("date", Date, nullable=False),
    Column("deadline_at", UTCDateTime(), nullable=False),
    Column("status", _enum_column_type(RoundStatus, 16), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("group_id", "date"),
    Index(None, "date", "status"),
)

submission_table = Table(
    "submission",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "round_id",
        UUIDColumnType,
        ForeignKey("daily_round.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("user_id", UUIDColumnType, ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
    Column("song_id", UUIDColumnType, ForeignKey("song.id"), nullable=False),
    Column("comment", Text, nullable=True),
    Column("submitted_at", UTCDateTime(), nullable=False),
    UniqueConstraint("round_id", "user_id"),
    Index(None, "user_id"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(User, user_table)
    mapper_registry.map_imperatively(UserMusicAccount, user_music_account_table)
    mapper_registry.map_imperatively(UserMusicPreferences, user_music_preferences_table)
    mapper_registry.map_imperatively(UserEmailAlias, user_email_alias_table)
    mapper_registry.map_imperatively(Group, group_table)
    mapper_registry.map_imperatively(GroupMember, group_member_table)
    mapper_registry.map_imperatively(GroupPlaylist, group_playlist_table)
    mapper_registry.map_imperatively(Song, song_table)
    mapper_registry.map_imperatively(DailyRound, daily_round_table)
    mapper_registry.map_imperatively(Submission, submission_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata (tests and throwaway databases)."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
