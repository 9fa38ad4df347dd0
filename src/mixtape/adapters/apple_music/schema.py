"""Minimal Pydantic models for the Apple Music API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AppleMusicBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SongAttributes(AppleMusicBaseModel):
    name: str
    artist_name: str = Field(alias="artistName")
    album_name: str | None = Field(default=None, alias="albumName")
    duration_in_millis: int | None = Field(default=None, alias="durationInMillis")


class CatalogSong(AppleMusicBaseModel):
    id: str
    attributes: SongAttributes


class SongResults(AppleMusicBaseModel):
    data: list[CatalogSong] = Field(default_factory=list["CatalogSong"])


class SearchResults(AppleMusicBaseModel):
    songs: SongResults | None = None


class SearchResponse(AppleMusicBaseModel):
    results: SearchResults = Field(default_factory=SearchResults)


class LibraryPlaylistAttributes(AppleMusicBaseModel):
    name: str | None = None
    description: dict[str, str] | str | None = None


class LibraryPlaylist(AppleMusicBaseModel):
    id: str
    attributes: LibraryPlaylistAttributes | None = None


class LibraryPlaylistResponse(AppleMusicBaseModel):
    data: list[LibraryPlaylist] = Field(default_factory=list["LibraryPlaylist"])


class ErrorDetail(AppleMusicBaseModel):
    status: str | None = None
    code: str | None = None
    title: str | None = None
    detail: str | None = None


class ErrorResponse(AppleMusicBaseModel):
    errors: list[ErrorDetail] = Field(default_factory=list["ErrorDetail"])
