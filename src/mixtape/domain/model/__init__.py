"""Public domain model surface."""

from __future__ import annotations

from mixtape.domain.model.entity import Entity, new_id, utcnow
from mixtape.domain.model.enums import Platform, PlaylistState, RoundStatus
from mixtape.domain.model.group import (
    DEFAULT_MAX_MEMBERS,
    Group,
    GroupMember,
    GroupPlaylist,
    generate_invite_code,
    playlist_name_for,
)
from mixtape.domain.model.round import DailyRound, Submission
from mixtape.domain.model.song import Song
from mixtape.domain.model.user import (
    User,
    UserEmailAlias,
    UserMusicAccount,
    UserMusicPreferences,
)

__all__ = [
    "DEFAULT_MAX_MEMBERS",
    "DailyRound",
    "Entity",
    "Group",
    "GroupMember",
    "GroupPlaylist",
    "Platform",
    "PlaylistState",
    "RoundStatus",
    "Song",
    "Submission",
    "User",
    "UserEmailAlias",
    "UserMusicAccount",
    "UserMusicPreferences",
    "generate_invite_code",
    "new_id",
    "playlist_name_for",
    "utcnow",
]
