"""Minimal Pydantic models for the Spotify Web API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SpotifyBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SpotifyArtist(SpotifyBaseModel):
    id: str | None = None
    name: str


class SpotifyAlbum(SpotifyBaseModel):
    id: str | None = None
    name: str


class SpotifyTrack(SpotifyBaseModel):
    id: str
    name: str
    duration_ms: int | None = None
    album: SpotifyAlbum | None = None
    artists: list[SpotifyArtist] = Field(default_factory=list["SpotifyArtist"])

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)


class SpotifyPage(SpotifyBaseModel):
    href: str | None = None
    limit: int | None = None
    next: str | None = None
    offset: int | None = None
    previous: str | None = None
    total: int | None = None


class SpotifyTrackPage(SpotifyPage):
    # search results may contain null entries for unavailable tracks
    items: list[SpotifyTrack | None] = Field(default_factory=list["SpotifyTrack | None"])


class SpotifySearchResponse(SpotifyBaseModel):
    tracks: SpotifyTrackPage = Field(default_factory=SpotifyTrackPage)


class SpotifyPlaylist(SpotifyBaseModel):
    id: str
    name: str
    external_urls: dict[str, str] = Field(default_factory=dict)


class SpotifyUserProfile(SpotifyBaseModel):
    id: str
    email: str | None = None
    display_name: str | None = None


class SpotifyTokenInfo(SpotifyBaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None
