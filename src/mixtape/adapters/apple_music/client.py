"""Apple Music playlist and authentication adapters over the resilient httpx client."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import BaseModel, ValidationError

from mixtape.adapters.http_resilience import ResilientClient
from mixtape.domain.errors import (
    PlatformAuthError,
    PlatformError,
    PlatformRateLimitError,
    PlaylistNotFoundError,
    TokenRefreshError,
)
from mixtape.domain.model import Platform
from mixtape.domain.ports import CatalogTrack, CreatedPlaylist, TokenGrant, WriteOutcome

from .auth import AppleMusicDeveloperTokens
from .schema import ErrorResponse, LibraryPlaylistResponse, SearchResponse

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mixtape.config import AppleMusicConfig, ResilienceConfig

log = getLogger(__name__)

PLAYLIST_URL_TEMPLATE: Final[str] = "https://music.apple.com/playlist/{playlist_id}"
STOREFRONT_CHECK_TIMEOUT_SECONDS: Final[float] = 10.0
# user tokens minted by the companion apps for demos; never sent to Apple
DEVELOPMENT_TOKEN_PREFIXES: Final[tuple[str, ...]] = (
    "demo_apple_music_",
    "server_apple_music_",
    "simulated_",
)

type ClientFactory = Callable[[ResilienceConfig], ResilientClient]


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _error_detail(response: httpx.Response) -> str:
    try:
        errors = ErrorResponse.model_validate(response.json()).errors
    except (ValueError, ValidationError):
        return response.reason_phrase
    if not errors:
        return response.reason_phrase
    first = errors[0]
    return first.detail or first.title or first.code or response.reason_phrase


def decode_payload[M: BaseModel](response: httpx.Response, model: type[M]) -> M:
    """Parse a successful response body, treating malformed payloads as platform errors."""

    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise PlatformError(
            f"Apple Music returned an unreadable {model.__name__}: {exc}",
            platform=Platform.APPLE_MUSIC,
            status_code=response.status_code,
        ) from exc


def raise_for_status(response: httpx.Response) -> None:
    """Translate an unsuccessful Apple Music response into a platform error."""

    status = response.status_code
    if status < 400:
        return
    message = f"Apple Music request failed ({status}): {_error_detail(response)}"
    if status in {401, 403}:
        raise PlatformAuthError(message, platform=Platform.APPLE_MUSIC, status_code=status)
    if status == 404:
        raise PlaylistNotFoundError(message, platform=Platform.APPLE_MUSIC, status_code=status)
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        raise PlatformRateLimitError(
            message,
            platform=Platform.APPLE_MUSIC,
            retry_after=float(retry_after) if retry_after else None,
        )
    raise PlatformError(message, platform=Platform.APPLE_MUSIC, status_code=status)


class _AppleMusicApi:
    def __init__(
        self,
        config: AppleMusicConfig,
        *,
        developer_tokens: AppleMusicDeveloperTokens | None,
        client_factory: ClientFactory | None,
    ) -> None:
        self._config = config
        self._developer_tokens = developer_tokens or AppleMusicDeveloperTokens(config)
        self._client_factory = client_factory or _default_client_factory

    def _headers(self, user_token: str | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._developer_tokens.token()}"}
        if user_token is not None:
            headers["Music-User-Token"] = user_token
        return headers

    async def _request(
        self,
        resilience: ResilienceConfig,
        method: str,
        path: str,
        *,
        headers: dict[str, str],
        params: dict[str, str | int] | None = None,
        json: object = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        try:
            async with self._client_factory(resilience) as client:
                if timeout is None:
                    response = await client.request(
                        method, path, headers=headers, params=params, json=json
                    )
                else:
                    response = await client.request(
                        method, path, headers=headers, params=params, json=json, timeout=timeout
                    )
        except httpx.HTTPError as exc:
            raise PlatformError(
                f"Apple Music unreachable: {exc}", platform=Platform.APPLE_MUSIC
            ) from exc
        raise_for_status(response)
        return response


class AppleMusicPlaylistClient(_AppleMusicApi):
    """Library playlists act as the user (Music-User-Token); search uses the catalog."""

    def __init__(
        self,
        config: AppleMusicConfig,
        *,
        developer_tokens: AppleMusicDeveloperTokens | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(config, developer_tokens=developer_tokens, client_factory=client_factory)
        self._library = config.resilience
        self._catalog = replace(config.resilience, cache=config.catalog_cache)

    @property
    def platform(self) -> Platform:
        return Platform.APPLE_MUSIC

    def create_playlist(self, access_token: str, *, name: str, description: str) -> CreatedPlaylist:
        return asyncio.run(self._create_playlist_async(access_token, name, description))

    async def _create_playlist_async(
        self, access_token: str, name: str, description: str
    ) -> CreatedPlaylist:
        response = await self._request(
            self._library,
            "POST",
            "/v1/me/library/playlists",
            headers=self._headers(access_token),
            json={"attributes": {"name": name, "description": description}},
        )
        payload = decode_payload(response, LibraryPlaylistResponse)
        if not payload.data:
            raise PlatformError(
                "Apple Music returned no playlist after creation",
                platform=Platform.APPLE_MUSIC,
                status_code=response.status_code,
            )
        playlist_id = payload.data[0].id
        log.info("Created Apple Music playlist %s (%s)", playlist_id, name)
        return CreatedPlaylist(
            playlist_id=playlist_id,
            name=name,
            url=PLAYLIST_URL_TEMPLATE.format(playlist_id=playlist_id),
        )

    def playlist_exists(self, access_token: str, playlist_id: str) -> bool:
        try:
            asyncio.run(
                self._request(
                    self._library,
                    "GET",
                    f"/v1/me/library/playlists/{playlist_id}",
                    headers=self._headers(access_token),
                )
            )
        except PlaylistNotFoundError:
            return False
        return True

    def replace_tracks(
        self, access_token: str, playlist_id: str, track_ids: Sequence[str]
    ) -> WriteOutcome:
        _ = access_token
        log.warning(
            "Apple Music cannot replace library playlist contents; "
            "skipping %s tracks for playlist %s",
            len(track_ids),
            playlist_id,
        )
        return WriteOutcome.UNSUPPORTED

    def rename_playlist(self, access_token: str, playlist_id: str, name: str) -> WriteOutcome:
        _ = access_token
        log.warning("Apple Music cannot rename playlist %s to %r", playlist_id, name)
        return WriteOutcome.UNSUPPORTED

    def delete_playlist(self, access_token: str, playlist_id: str) -> WriteOutcome:
        _ = access_token
        log.warning(
            "Apple Music cannot delete playlist %s; remove it in the Music app", playlist_id
        )
        return WriteOutcome.UNSUPPORTED

    def search_catalog(
        self,
        *,
        title: str,
        artist: str,
        album: str | None = None,
        limit: int = 10,
    ) -> list[CatalogTrack]:
        term = " ".join(part for part in (title, artist, album) if part)
        return asyncio.run(self._search_async(term, limit))

    async def _search_async(self, term: str, limit: int) -> list[CatalogTrack]:
        response = await self._request(
            self._catalog,
            "GET",
            f"/v1/catalog/{self._config.storefront}/search",
            headers=self._headers(),
            params={"term": term, "types": "songs", "limit": limit},
        )
        payload = decode_payload(response, SearchResponse)
        songs = payload.results.songs.data if payload.results.songs else []
        return [
            CatalogTrack(
                track_id=song.id,
                title=song.attributes.name,
                artist=song.attributes.artist_name,
                album=song.attributes.album_name,
                duration_seconds=(
                    song.attributes.duration_in_millis // 1000
                    if song.attributes.duration_in_millis
                    else None
                ),
            )
            for song in songs
        ]


class AppleMusicAuthenticator(_AppleMusicApi):
    """Music user tokens have no refresh flow; they are validated against the catalog instead."""

    def __init__(
        self,
        config: AppleMusicConfig,
        *,
        developer_tokens: AppleMusicDeveloperTokens | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(config, developer_tokens=developer_tokens, client_factory=client_factory)

    @property
    def platform(self) -> Platform:
        return Platform.APPLE_MUSIC

    @property
    def supports_refresh(self) -> bool:
        return False

    def refresh(self, refresh_token: str) -> TokenGrant:
        _ = refresh_token
        raise TokenRefreshError(Platform.APPLE_MUSIC, "music user tokens cannot be refreshed")

    def validate(self, access_token: str) -> bool:
        if access_token.startswith(DEVELOPMENT_TOKEN_PREFIXES):
            log.debug("Accepting development Apple Music token")
            return True
        try:
            asyncio.run(
                self._request(
                    self._config.resilience,
                    "GET",
                    "/v1/me/storefront",
                    headers=self._headers(access_token),
                    timeout=STOREFRONT_CHECK_TIMEOUT_SECONDS,
                )
            )
        except PlatformError as exc:
            log.warning("Apple Music user token rejected: %s", exc)
            return False
        return True
