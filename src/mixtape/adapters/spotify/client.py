"""Spotipy-based playlist and authentication adapters for the Spotify Web API."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, Final

import requests
import spotipy
from pydantic import ValidationError
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOAuth, SpotifyOauthError

from mixtape.domain.errors import (
    PlatformAuthError,
    PlatformError,
    PlatformRateLimitError,
    PlaylistNotFoundError,
    TokenRefreshError,
)
from mixtape.domain.model import Platform, utcnow
from mixtape.domain.ports import CatalogTrack, CreatedPlaylist, TokenGrant, WriteOutcome

from .schema import (
    SpotifyPlaylist,
    SpotifySearchResponse,
    SpotifyTokenInfo,
    SpotifyUserProfile,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from mixtape.config import SpotifyConfig

log = getLogger(__name__)

TRACK_URI_PREFIX: Final[str] = "spotify:track:"
# Spotify accepts at most 100 items per playlist write
PLAYLIST_WRITE_BATCH: Final[int] = 100

type SpotifyClientFactory = Callable[[str], spotipy.Spotify]


def track_uri(track_id: str) -> str:
    return f"{TRACK_URI_PREFIX}{strip_track_uri(track_id)}"


def strip_track_uri(value: str) -> str:
    return value.strip().removeprefix(TRACK_URI_PREFIX).strip()


def translate_spotify_error(exc: spotipy.SpotifyException) -> PlatformError:
    status = exc.http_status
    message = f"Spotify request failed ({status}): {exc.msg}"
    if status == 401:
        return PlatformAuthError(message, platform=Platform.SPOTIFY, status_code=status)
    if status == 404:
        return PlaylistNotFoundError(message, platform=Platform.SPOTIFY, status_code=status)
    if status == 429:
        headers = exc.headers or {}
        retry_after = headers.get("Retry-After")
        return PlatformRateLimitError(
            message,
            platform=Platform.SPOTIFY,
            retry_after=float(retry_after) if retry_after else None,
        )
    return PlatformError(message, platform=Platform.SPOTIFY, status_code=status)


@contextmanager
def _spotify_errors() -> Iterator[None]:
    try:
        yield
    except spotipy.SpotifyException as exc:
        raise translate_spotify_error(exc) from exc
    except requests.RequestException as exc:
        raise PlatformError(f"Spotify unreachable: {exc}", platform=Platform.SPOTIFY) from exc
    except ValidationError as exc:
        raise PlatformError(
            f"Spotify returned an unexpected payload: {exc}",
            platform=Platform.SPOTIFY,
            status_code=200,
        ) from exc


class SpotifyPlaylistClient:
    """Group playlist operations acting as a user, plus catalog search."""

    def __init__(
        self,
        *,
        config: SpotifyConfig,
        client_factory: SpotifyClientFactory | None = None,
        catalog_client: spotipy.Spotify | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or self._user_client
        self._catalog_client = catalog_client

    @property
    def platform(self) -> Platform:
        return Platform.SPOTIFY

    def _user_client(self, access_token: str) -> spotipy.Spotify:
        # writes are not idempotent (appending tracks); retries belong to the caller
        return spotipy.Spotify(
            auth=access_token,
            requests_timeout=self._config.request_timeout_seconds,
            retries=0,
            status_retries=0,
        )

    def _catalog(self) -> spotipy.Spotify:
        if self._catalog_client is None:
            credentials = SpotifyClientCredentials(
                client_id=self._config.client_id,
                client_secret=self._config.client_secret,
                cache_handler=MemoryCacheHandler(),
            )
            self._catalog_client = spotipy.Spotify(
                auth_manager=credentials,
                requests_timeout=self._config.request_timeout_seconds,
            )
        return self._catalog_client

    def create_playlist(self, access_token: str, *, name: str, description: str) -> CreatedPlaylist:
        client = self._client_factory(access_token)
        with _spotify_errors():
            me = SpotifyUserProfile.model_validate(client.me())
            raw = client.user_playlist_create(  # pyright: ignore[reportUnknownMemberType]
                me.id,
                name,
                public=False,
                collaborative=False,
                description=description,
            )
            playlist = SpotifyPlaylist.model_validate(raw)
        log.info("Created Spotify playlist %s (%s) for %s", playlist.id, playlist.name, me.id)
        return CreatedPlaylist(
            playlist_id=playlist.id,
            name=playlist.name,
            url=playlist.external_urls.get("spotify"),
        )

    def playlist_exists(self, access_token: str, playlist_id: str) -> bool:
        client = self._client_factory(access_token)
        try:
            with _spotify_errors():
                client.playlist(playlist_id, fields="id")  # pyright: ignore[reportUnknownMemberType]
        except PlaylistNotFoundError:
            return False
        return True

    def replace_tracks(
        self, access_token: str, playlist_id: str, track_ids: Sequence[str]
    ) -> WriteOutcome:
        """Full replace: the first batch overwrites, later batches append."""

        client = self._client_factory(access_token)
        uris = [track_uri(track_id) for track_id in track_ids]
        with _spotify_errors():
            client.playlist_replace_items(playlist_id, uris[:PLAYLIST_WRITE_BATCH])
            for batch in batched(uris[PLAYLIST_WRITE_BATCH:], PLAYLIST_WRITE_BATCH):
                client.playlist_add_items(playlist_id, list(batch))
        log.debug("Replaced Spotify playlist %s with %s tracks", playlist_id, len(uris))
        return WriteOutcome.APPLIED

    def rename_playlist(self, access_token: str, playlist_id: str, name: str) -> WriteOutcome:
        client = self._client_factory(access_token)
        with _spotify_errors():
            client.playlist_change_details(playlist_id, name=name)
        return WriteOutcome.APPLIED

    def delete_playlist(self, access_token: str, playlist_id: str) -> WriteOutcome:
        # Spotify has no delete; unfollowing removes it from the owner's library
        client = self._client_factory(access_token)
        with _spotify_errors():
            client.current_user_unfollow_playlist(playlist_id)
        return WriteOutcome.APPLIED

    def search_catalog(
        self,
        *,
        title: str,
        artist: str,
        album: str | None = None,
        limit: int = 10,
    ) -> list[CatalogTrack]:
        query = f"track:{title} artist:{artist}"
        if album:
            query = f"{query} album:{album}"
        with _spotify_errors():
            raw = self._catalog().search(q=query, type="track", limit=limit)  # pyright: ignore[reportUnknownMemberType]
            response = SpotifySearchResponse.model_validate(raw or {})
        return [
            CatalogTrack(
                track_id=track.id,
                title=track.name,
                artist=track.artist_names,
                album=track.album.name if track.album else None,
                duration_seconds=track.duration_ms // 1000 if track.duration_ms else None,
            )
            for track in response.tracks.items
            if track is not None
        ]


class SpotifyAuthenticator:
    """Refreshes Spotify user tokens through the OAuth token endpoint."""

    def __init__(
        self,
        *,
        config: SpotifyConfig,
        oauth: SpotifyOAuth | None = None,
        client_factory: SpotifyClientFactory | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config
        self._oauth = oauth
        self._client_factory = client_factory or self._user_client
        self._clock = clock

    @property
    def platform(self) -> Platform:
        return Platform.SPOTIFY

    @property
    def supports_refresh(self) -> bool:
        return True

    def _user_client(self, access_token: str) -> spotipy.Spotify:
        return spotipy.Spotify(
            auth=access_token, requests_timeout=self._config.request_timeout_seconds
        )

    def _oauth_manager(self) -> SpotifyOAuth:
        if self._oauth is None:
            self._oauth = SpotifyOAuth(
                client_id=self._config.client_id,
                client_secret=self._config.client_secret,
                redirect_uri=self._config.redirect_uri,
                scope=" ".join(self._config.scope),
                cache_handler=MemoryCacheHandler(),
                open_browser=False,
                requests_timeout=self._config.request_timeout_seconds,
            )
        return self._oauth

    def refresh(self, refresh_token: str) -> TokenGrant:
        try:
            raw = self._oauth_manager().refresh_access_token(refresh_token)
            info = SpotifyTokenInfo.model_validate(raw)
        except (
            SpotifyOauthError,
            spotipy.SpotifyException,
            requests.RequestException,
            ValidationError,
        ) as exc:
            raise TokenRefreshError(Platform.SPOTIFY, str(exc)) from exc
        return TokenGrant.expiring_in(
            access_token=info.access_token,
            refresh_token=info.refresh_token or refresh_token,
            expires_in_seconds=info.expires_in,
            now=self._clock(),
        )

    def validate(self, access_token: str) -> bool:
        try:
            with _spotify_errors():
                self._client_factory(access_token).me()
        except PlatformAuthError:
            return False
        return True
