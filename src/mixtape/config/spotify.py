"""Spotify configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_int, require_env_vars

SPOTIFY_PROFILE_SCOPES = (
    "user-read-email",
    "user-read-private",
)
SPOTIFY_PLAYLIST_SCOPES = (
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-public",
    "playlist-modify-private",
)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 10


def merge_spotify_scopes(*scopes: tuple[str, ...]) -> tuple[str, ...]:
    merged: list[str] = []
    for scope_list in scopes:
        for scope in scope_list:
            if scope not in merged:
                merged.append(scope)
    return tuple(merged)


DEFAULT_SPOTIFY_SCOPES = merge_spotify_scopes(SPOTIFY_PROFILE_SCOPES, SPOTIFY_PLAYLIST_SCOPES)


@dataclass(frozen=True)
class SpotifyConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    scope: tuple[str, ...] = field(default_factory=lambda: DEFAULT_SPOTIFY_SCOPES)
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS


def get_spotify_config(*, scope: tuple[str, ...] | None = None) -> SpotifyConfig:
    values = require_env_vars(
        (
            "SPOTIFY_CLIENT_ID",
            "SPOTIFY_CLIENT_SECRET",
            "SPOTIFY_REDIRECT_URI",
        )
    )
    return SpotifyConfig(
        client_id=values["SPOTIFY_CLIENT_ID"],
        client_secret=values["SPOTIFY_CLIENT_SECRET"],
        redirect_uri=values["SPOTIFY_REDIRECT_URI"],
        scope=scope or DEFAULT_SPOTIFY_SCOPES,
        request_timeout_seconds=env_int(
            "SPOTIFY_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS, minimum=1
        ),
    )
