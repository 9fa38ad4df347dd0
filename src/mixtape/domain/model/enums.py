"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Platform(StrEnum):
    """Streaming platforms a group playlist can live on."""

    SPOTIFY = "spotify"
    APPLE_MUSIC = "apple-music"


class RoundStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class PlaylistState(StrEnum):
    ACTIVE = "active"
    SUPERSEDED = "superseded"
