"""Spotify adapter package."""

from __future__ import annotations

from .client import (
    SpotifyAuthenticator,
    SpotifyPlaylistClient,
    strip_track_uri,
    track_uri,
    translate_spotify_error,
)
from .schema import SpotifyPlaylist, SpotifySearchResponse, SpotifyTrack, SpotifyUserProfile

__all__ = [
    "SpotifyAuthenticator",
    "SpotifyPlaylist",
    "SpotifyPlaylistClient",
    "SpotifySearchResponse",
    "SpotifyTrack",
    "SpotifyUserProfile",
    "strip_track_uri",
    "track_uri",
    "translate_spotify_error",
]
