"""Users and the streaming accounts they connect."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mixtape.domain.model.entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from mixtape.domain.model.enums import Platform


@dataclass(eq=False, kw_only=True)
class User(Entity):
    email: str
    display_name: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False, kw_only=True)
class UserMusicAccount(Entity):
    """OAuth credentials for one platform. At most one per (user, platform)."""

    user_id: UUID
    platform: Platform
    access_token: str = field(repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    expires_at: datetime | None = None
    updated_at: datetime = field(default_factory=utcnow)

    def is_expired(self, now: datetime) -> bool:
        # no recorded expiry means the platform issued a non-expiring token
        return self.expires_at is not None and self.expires_at <= now

    def store_grant(
        self,
        *,
        access_token: str,
        refresh_token: str | None,
        expires_at: datetime | None,
        now: datetime,
    ) -> None:
        """Overwrite credentials, keeping the old refresh token when none was rotated in."""

        self.access_token = access_token
        if refresh_token:
            self.refresh_token = refresh_token
        self.expires_at = expires_at
        self.updated_at = now


@dataclass(eq=False, kw_only=True)
class UserMusicPreferences(Entity):
    user_id: UUID
    preferred_platform: Platform | None = None


@dataclass(eq=False, kw_only=True)
class UserEmailAlias(Entity):
    """An additional identity email that resolves to ``user_id`` after a merge."""

    alias_email: str
    user_id: UUID
    platform: Platform | None = None
    created_at: datetime = field(default_factory=utcnow)
