from __future__ import annotations

import pytest

from mixtape.domain.errors import PlatformError
from mixtape.domain.matching import (
    INITIAL_PLAYLIST_MATCH_THRESHOLD,
    RECONCILIATION_MATCH_THRESHOLD,
    CrossPlatformMatcher,
    SongQuery,
    normalize_text,
    score_candidate,
)
from mixtape.domain.model import Platform
from mixtape.domain.ports import CatalogTrack
from tests.helpers.fakes import FakePlaylistPlatform, make_registry

HEY_JUDE = SongQuery(title="Hey Jude", artist="The Beatles", album="Hey Jude")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Hey Jude - Remastered 2015", "hey jude"),
        ("Blinding Lights (feat. Someone)", "blinding lights"),
        ("Beyoncé", "beyonce"),
        ("Simon & Garfunkel", "simon and garfunkel"),
        ("Song ft. Guest", "song"),
        ("  Spaced    Out  ", "spaced out"),
    ],
)
def test_normalize_text(raw: str, expected: str) -> None:
    assert normalize_text(raw) == expected


def test_exact_match_scores_one() -> None:
    candidate = CatalogTrack(track_id="1", title="Hey Jude", artist="The Beatles", album="Hey Jude")

    assert score_candidate(HEY_JUDE, candidate) == 1.0


def test_remaster_suffix_does_not_hurt_score() -> None:
    candidate = CatalogTrack(
        track_id="1", title="Hey Jude - Remastered 2015", artist="The Beatles", album="Hey Jude"
    )

    assert score_candidate(HEY_JUDE, candidate) == 1.0


def test_missing_album_rescales_weights() -> None:
    query = SongQuery(title="Hey Jude", artist="The Beatles")
    candidate = CatalogTrack(track_id="1", title="Hey Jude", artist="The Beatles", album="1")

    assert score_candidate(query, candidate) == 1.0


def test_unrelated_song_scores_low() -> None:
    candidate = CatalogTrack(track_id="2", title="Bohemian Rhapsody", artist="Queen")

    assert score_candidate(HEY_JUDE, candidate) < RECONCILIATION_MATCH_THRESHOLD


def test_matcher_picks_best_candidate() -> None:
    platform = FakePlaylistPlatform(
        platform=Platform.APPLE_MUSIC,
        catalog=[
            CatalogTrack(track_id="cover", title="Hey Jude", artist="Tribute Band"),
            CatalogTrack(track_id="orig", title="Hey Jude", artist="The Beatles", album="Hey Jude"),
        ],
    )
    matcher = CrossPlatformMatcher(make_registry(platform))

    result = matcher.match_song(HEY_JUDE, Platform.APPLE_MUSIC)

    assert result.best_match is not None
    assert result.best_match.track_id == "orig"
    assert result.is_accepted(INITIAL_PLAYLIST_MATCH_THRESHOLD)
    assert platform.searches == [("Hey Jude", "The Beatles", "Hey Jude")]


def test_matcher_reports_empty_catalog() -> None:
    matcher = CrossPlatformMatcher(make_registry(FakePlaylistPlatform(platform=Platform.SPOTIFY)))

    result = matcher.match_song(HEY_JUDE, Platform.SPOTIFY)

    assert result.best_match is None
    assert result.confidence == 0.0
    assert result.error == "no catalog results"
    assert not result.is_accepted(RECONCILIATION_MATCH_THRESHOLD)


def test_matcher_never_raises_on_search_failure() -> None:
    platform = FakePlaylistPlatform(
        platform=Platform.SPOTIFY, search_error=PlatformError("rate limited", status_code=429)
    )
    matcher = CrossPlatformMatcher(make_registry(platform))

    results = matcher.match_song_across_platforms([HEY_JUDE, HEY_JUDE], Platform.SPOTIFY)

    assert len(results) == 2
    assert all(result.best_match is None for result in results)
    assert results[0].error == "rate limited"


def test_matcher_survives_unexpected_search_errors() -> None:
    platform = FakePlaylistPlatform(
        platform=Platform.APPLE_MUSIC,
        search_error=ValueError("Expecting value: line 1 column 1 (char 0)"),
    )
    matcher = CrossPlatformMatcher(make_registry(platform))

    result = matcher.match_song(HEY_JUDE, Platform.APPLE_MUSIC)

    assert result.best_match is None
    assert result.confidence == 0.0
    assert result.error == "Expecting value: line 1 column 1 (char 0)"


def test_matcher_handles_unregistered_platform() -> None:
    matcher = CrossPlatformMatcher(make_registry(FakePlaylistPlatform(platform=Platform.SPOTIFY)))

    result = matcher.match_song(HEY_JUDE, Platform.APPLE_MUSIC)

    assert result.best_match is None
    assert result.error is not None


def test_matcher_respects_search_limit() -> None:
    platform = FakePlaylistPlatform(
        platform=Platform.SPOTIFY,
        catalog=[
            CatalogTrack(track_id=str(index), title="Hey Jude", artist="The Beatles")
            for index in range(5)
        ],
    )
    matcher = CrossPlatformMatcher(make_registry(platform), search_limit=2)

    result = matcher.match_song(HEY_JUDE, Platform.SPOTIFY)

    assert result.best_match is not None
    assert result.best_match.track_id in {"0", "1"}
