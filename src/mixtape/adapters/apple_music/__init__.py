"""Apple Music adapter package."""

from __future__ import annotations

from .auth import AppleMusicDeveloperTokens, DeveloperTokenCache
from .client import (
    AppleMusicAuthenticator,
    AppleMusicPlaylistClient,
    decode_payload,
    raise_for_status,
)

__all__ = [
    "AppleMusicAuthenticator",
    "AppleMusicDeveloperTokens",
    "AppleMusicPlaylistClient",
    "DeveloperTokenCache",
    "decode_payload",
    "raise_for_status",
]
