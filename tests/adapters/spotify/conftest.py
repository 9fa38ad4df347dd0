"""Shared fixtures for Spotify adapter tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import cast

import pytest
import spotipy

from mixtape.adapters.spotify import SpotifyPlaylistClient
from mixtape.config import SpotifyConfig

SpotifyPayload = dict[str, object]


@dataclass
class FakeSpotipyClient:
    """Records the spotipy calls made by the playlist adapter."""

    user_id: str = "spotify-user"
    playlists: set[str] = field(default_factory=lambda: {"known-playlist"})
    search_payload: SpotifyPayload = field(default_factory=dict)
    error: Exception | None = None
    calls: list[tuple[str, tuple[object, ...], dict[str, object]]] = field(default_factory=list)
    tokens: list[str] = field(default_factory=list)

    def _record(self, name: str, /, *args: object, **kwargs: object) -> None:
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error

    def me(self) -> SpotifyPayload:
        self._record("me")
        return {"id": self.user_id, "display_name": "Ada", "email": "ada@example.com"}

    def user_playlist_create(self, user: str, name: str, **kwargs: object) -> SpotifyPayload:
        self._record("user_playlist_create", user, name, **kwargs)
        return {
            "id": "new-playlist",
            "name": name,
            "external_urls": {"spotify": "https://open.spotify.com/playlist/new-playlist"},
        }

    def playlist(self, playlist_id: str, **kwargs: object) -> SpotifyPayload:
        self._record("playlist", playlist_id, **kwargs)
        if playlist_id not in self.playlists:
            raise _not_found()
        return {"id": playlist_id}

    def playlist_replace_items(self, playlist_id: str, items: list[str]) -> SpotifyPayload:
        self._record("playlist_replace_items", playlist_id, items)
        return {"snapshot_id": "s1"}

    def playlist_add_items(self, playlist_id: str, items: list[str]) -> SpotifyPayload:
        self._record("playlist_add_items", playlist_id, items)
        return {"snapshot_id": "s2"}

    def playlist_change_details(self, playlist_id: str, **kwargs: object) -> None:
        self._record("playlist_change_details", playlist_id, **kwargs)

    def current_user_unfollow_playlist(self, playlist_id: str) -> None:
        self._record("current_user_unfollow_playlist", playlist_id)

    def search(self, **kwargs: object) -> SpotifyPayload:
        self._record("search", **kwargs)
        return self.search_payload

    def named(self, name: str) -> list[tuple[tuple[object, ...], dict[str, object]]]:
        return [(args, kwargs) for call, args, kwargs in self.calls if call == name]


def _not_found() -> Exception:
    return spotipy.SpotifyException(404, -1, "Not found.")


@pytest.fixture
def spotify_config() -> SpotifyConfig:
    return SpotifyConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://127.0.0.1:8080/callback",
    )


@pytest.fixture
def fake_spotipy() -> FakeSpotipyClient:
    return FakeSpotipyClient()


@pytest.fixture
def spotify_playlists(
    spotify_config: SpotifyConfig, fake_spotipy: FakeSpotipyClient
) -> SpotifyPlaylistClient:
    def factory(access_token: str) -> spotipy.Spotify:
        fake_spotipy.tokens.append(access_token)
        return cast("spotipy.Spotify", fake_spotipy)

    return SpotifyPlaylistClient(
        config=spotify_config,
        client_factory=factory,
        catalog_client=cast("spotipy.Spotify", fake_spotipy),
    )
