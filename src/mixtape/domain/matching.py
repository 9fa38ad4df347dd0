"""Cross-platform song matching via catalog search and fuzzy scoring.

Candidates are scored on normalised title, artist and album similarity:

* title: ``fuzz.ratio`` weighted 0.5
* artist: ``fuzz.token_sort_ratio`` (credit order varies between catalogs) weighted 0.35
* album: ``fuzz.ratio`` weighted 0.15, only when both sides know the album

When the album is unknown the remaining weights are rescaled so confidence
always lies in [0, 1].
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from rapidfuzz import fuzz


if TYPE_CHECKING:
    from collections.abc import Sequence

    from mixtape.domain.model import Platform, Song
    from mixtape.domain.ports import CatalogTrack, PlatformRegistry

log = getLogger(__name__)

RECONCILIATION_MATCH_THRESHOLD: Final[float] = 0.6
INITIAL_PLAYLIST_MATCH_THRESHOLD: Final[float] = 0.7
DEFAULT_SEARCH_LIMIT: Final[int] = 10

TITLE_WEIGHT: Final[float] = 0.5
ARTIST_WEIGHT: Final[float] = 0.35
ALBUM_WEIGHT: Final[float] = 0.15

_BRACKETED = re.compile(r"\s*[\(\[\{].*?[\)\]\}]\s*")
_VERSION_SUFFIX = re.compile(
    r"\s+-\s+.*\b(remaster(ed)?|live|version|edit|mix|mono|stereo|acoustic)\b.*$"
)
_FEATURING = re.compile(r"\s+\b(feat|ft|featuring)\b\.?.*$")
_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Fold case and accents and drop qualifiers that differ between catalogs."""

    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(char for char in decomposed if not unicodedata.combining(char)).lower()
    folded = _BRACKETED.sub(" ", folded)
    folded = _VERSION_SUFFIX.sub("", folded)
    folded = _FEATURING.sub("", folded)
    folded = folded.replace("&", " and ")
    folded = _PUNCTUATION.sub("", folded)
    return _WHITESPACE.sub(" ", folded).strip()


@dataclass(frozen=True, slots=True)
class SongQuery:
    title: str
    artist: str
    album: str | None = None

    @classmethod
    def from_song(cls, song: Song) -> SongQuery:
        return cls(title=song.title, artist=song.artist, album=song.album)


@dataclass(frozen=True, slots=True)
class MatchResult:
    query: SongQuery
    best_match: CatalogTrack | None
    confidence: float
    error: str | None = None

    def is_accepted(self, threshold: float) -> bool:
        return self.best_match is not None and self.confidence > threshold


def score_candidate(query: SongQuery, candidate: CatalogTrack) -> float:
    title_score = fuzz.ratio(normalize_text(query.title), normalize_text(candidate.title))
    artist_score = fuzz.token_sort_ratio(
        normalize_text(query.artist), normalize_text(candidate.artist)
    )

    if query.album and candidate.album:
        album_score = fuzz.ratio(normalize_text(query.album), normalize_text(candidate.album))
        weighted = (
            title_score * TITLE_WEIGHT + artist_score * ARTIST_WEIGHT + album_score * ALBUM_WEIGHT
        )
        total_weight = TITLE_WEIGHT + ARTIST_WEIGHT + ALBUM_WEIGHT
    else:
        weighted = title_score * TITLE_WEIGHT + artist_score * ARTIST_WEIGHT
        total_weight = TITLE_WEIGHT + ARTIST_WEIGHT

    return round(weighted / total_weight / 100.0, 4)


class CrossPlatformMatcher:
    """Finds a song's counterpart in another platform's catalog."""

    def __init__(
        self, platforms: PlatformRegistry, *, search_limit: int = DEFAULT_SEARCH_LIMIT
    ) -> None:
        self._platforms = platforms
        self._search_limit = search_limit

    def match_song_across_platforms(
        self,
        songs: Sequence[SongQuery],
        target_platform: Platform,
    ) -> list[MatchResult]:
        """Return one result per query, in order. Failures never raise."""

        return [self.match_song(song, target_platform) for song in songs]

    def match_song(self, query: SongQuery, target_platform: Platform) -> MatchResult:
        try:
            client = self._platforms.playlist_client(target_platform)
            candidates = client.search_catalog(
                title=query.title,
                artist=query.artist,
                album=query.album,
                limit=self._search_limit,
            )
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "Catalog search on %s failed for %r by %r: %s",
                target_platform,
                query.title,
                query.artist,
                exc,
            )
            return MatchResult(
                query=query, best_match=None, confidence=0.0, error=str(exc) or type(exc).__name__
            )

        if not candidates:
            return MatchResult(
                query=query, best_match=None, confidence=0.0, error="no catalog results"
            )

        scored = [(score_candidate(query, candidate), candidate) for candidate in candidates]
        confidence, best = max(scored, key=lambda item: item[0])
        log.debug(
            "Best %s match for %r by %r: %s (%.2f)",
            target_platform,
            query.title,
            query.artist,
            best.track_id,
            confidence,
        )
        return MatchResult(query=query, best_match=best, confidence=confidence)
