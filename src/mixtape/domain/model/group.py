"""Groups, their members and the playlists provisioned for them."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from mixtape.domain.model.entity import Entity, utcnow
from mixtape.domain.model.enums import PlaylistState

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from mixtape.domain.model.enums import Platform

INVITE_CODE_LENGTH: Final[int] = 8
INVITE_CODE_ALPHABET: Final[str] = string.ascii_uppercase + string.digits
DEFAULT_MAX_MEMBERS: Final[int] = 8


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


@dataclass(eq=False, kw_only=True)
class Group(Entity):
    name: str
    admin_user_id: UUID
    invite_code: str = field(default_factory=generate_invite_code)
    max_members: int = DEFAULT_MAX_MEMBERS
    is_public: bool = False
    created_at: datetime = field(default_factory=utcnow)

    @property
    def playlist_name(self) -> str:
        return playlist_name_for(self.name)


def playlist_name_for(group_name: str) -> str:
    return f"{group_name.lower()} mixtape"


@dataclass(eq=False, kw_only=True)
class GroupMember(Entity):
    group_id: UUID
    user_id: UUID
    joined_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class GroupPlaylist(Entity):
    """A provisioned upstream playlist for one (group, platform) pair.

    Replacing a playlist never rewrites ``platform_playlist_id``: the old row is
    superseded and a new active row is inserted.
    """

    group_id: UUID
    platform: Platform
    platform_playlist_id: str
    playlist_url: str | None = None
    playlist_name: str
    owner_user_id: UUID
    state: PlaylistState = PlaylistState.ACTIVE
    last_updated: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.state == PlaylistState.ACTIVE

    def supersede(self) -> None:
        self.state = PlaylistState.SUPERSEDED
