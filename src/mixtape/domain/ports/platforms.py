"""Ports for the streaming platforms playlists are published to."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from mixtape.domain.errors import UnsupportedPlatformError
from mixtape.domain.model import Platform

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime


class WriteOutcome(StrEnum):
    """Whether a platform actually applied a playlist mutation."""

    APPLIED = "applied"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class TokenGrant:
    access_token: str = field(repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    expires_at: datetime | None = None

    @classmethod
    def expiring_in(
        cls,
        *,
        access_token: str,
        refresh_token: str | None,
        expires_in_seconds: int | None,
        now: datetime,
    ) -> TokenGrant:
        expires_at = None if expires_in_seconds is None else now + timedelta(
            seconds=expires_in_seconds
        )
        return cls(access_token=access_token, refresh_token=refresh_token, expires_at=expires_at)


@dataclass(frozen=True, slots=True)
class PlatformProfile:
    platform: Platform
    platform_user_id: str
    email: str | None = None
    display_name: str | None = None


@dataclass(frozen=True, slots=True)
class CreatedPlaylist:
    playlist_id: str
    name: str
    url: str | None = None


@dataclass(frozen=True, slots=True)
class CatalogTrack:
    track_id: str
    title: str
    artist: str
    album: str | None = None
    duration_seconds: int | None = None


@runtime_checkable
class PlaylistPlatform(Protocol):
    """Playlist operations on one platform, authenticated with a user's token.

    Mutations a platform cannot perform return ``WriteOutcome.UNSUPPORTED``
    instead of raising. Transport failures raise ``PlatformError`` subclasses.
    """

    @property
    def platform(self) -> Platform: ...

    def create_playlist(
        self, access_token: str, *, name: str, description: str
    ) -> CreatedPlaylist: ...

    def playlist_exists(self, access_token: str, playlist_id: str) -> bool: ...

    def replace_tracks(
        self, access_token: str, playlist_id: str, track_ids: Sequence[str]
    ) -> WriteOutcome: ...

    def rename_playlist(self, access_token: str, playlist_id: str, name: str) -> WriteOutcome: ...

    def delete_playlist(self, access_token: str, playlist_id: str) -> WriteOutcome: ...

    def search_catalog(
        self,
        *,
        title: str,
        artist: str,
        album: str | None = None,
        limit: int = 10,
    ) -> list[CatalogTrack]: ...


@runtime_checkable
class PlatformAuthenticator(Protocol):
    @property
    def platform(self) -> Platform: ...

    @property
    def supports_refresh(self) -> bool: ...

    def refresh(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token. Raises ``TokenRefreshError`` when rejected."""
        ...

    def validate(self, access_token: str) -> bool:
        """Check a token the platform never refreshes (no expiry recorded)."""
        ...


@dataclass(slots=True)
class PlatformRegistry:
    """Closed lookup of platform variants; unknown platforms are rejected."""

    playlists: Mapping[Platform, PlaylistPlatform]
    authenticators: Mapping[Platform, PlatformAuthenticator]

    def playlist_client(self, platform: Platform | str) -> PlaylistPlatform:
        client = self.playlists.get(_coerce(platform))
        if client is None:
            raise UnsupportedPlatformError(str(platform))
        return client

    def authenticator(self, platform: Platform | str) -> PlatformAuthenticator:
        authenticator = self.authenticators.get(_coerce(platform))
        if authenticator is None:
            raise UnsupportedPlatformError(str(platform))
        return authenticator

    @property
    def platforms(self) -> tuple[Platform, ...]:
        return tuple(platform for platform in Platform if platform in self.playlists)


def _coerce(platform: Platform | str) -> Platform:
    try:
        return Platform(platform)
    except ValueError as exc:
        raise UnsupportedPlatformError(str(platform)) from exc
