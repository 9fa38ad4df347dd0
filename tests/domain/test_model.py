from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from uuid import uuid4

import pytest

from mixtape.domain.errors import RoundTransitionError, UnsupportedPlatformError
from mixtape.domain.model import (
    DailyRound,
    Group,
    GroupPlaylist,
    Platform,
    PlaylistState,
    RoundStatus,
    Song,
    UserMusicAccount,
    generate_invite_code,
    playlist_name_for,
)
from mixtape.domain.ports import PlatformRegistry, TokenGrant
from tests.helpers.fakes import FakePlaylistPlatform, make_registry

NOW = datetime(2025, 3, 14, 9, 0, tzinfo=UTC)


def _round() -> DailyRound:
    return DailyRound(group_id=uuid4(), date=date(2025, 3, 14), deadline_at=NOW)


def test_playlist_name_is_lowercased_group_name() -> None:
    group = Group(name="Night Owls", admin_user_id=uuid4())

    assert group.playlist_name == "night owls mixtape"
    assert playlist_name_for("JAZZ Club") == "jazz club mixtape"


def test_invite_codes_are_upper_alphanumeric() -> None:
    code = generate_invite_code()

    assert len(code) == 8
    assert code.isalnum()
    assert code.upper() == code


def test_entities_get_identity_before_persistence() -> None:
    first = Group(name="A", admin_user_id=uuid4())
    second = Group(name="A", admin_user_id=first.admin_user_id)

    assert first.id != second.id
    assert first != second


def test_round_concludes_once() -> None:
    daily_round = _round()

    daily_round.conclude(RoundStatus.PARTIAL)

    assert daily_round.status is RoundStatus.PARTIAL
    with pytest.raises(RoundTransitionError):
        daily_round.conclude(RoundStatus.COMPLETED)


def test_round_cannot_conclude_back_to_active() -> None:
    with pytest.raises(RoundTransitionError):
        _round().conclude(RoundStatus.ACTIVE)


def test_superseding_a_playlist_keeps_its_upstream_id() -> None:
    playlist = GroupPlaylist(
        group_id=uuid4(),
        platform=Platform.SPOTIFY,
        platform_playlist_id="abc",
        playlist_name="x mixtape",
        owner_user_id=uuid4(),
    )

    playlist.supersede()

    assert playlist.state is PlaylistState.SUPERSEDED
    assert not playlist.is_active
    assert playlist.platform_playlist_id == "abc"


def test_record_platform_id_replaces_mapping() -> None:
    song = Song(title="Hey Jude", artist="The Beatles")
    original = song.platform_ids

    song.record_platform_id(Platform.SPOTIFY, "track-1")

    assert song.platform_id(Platform.SPOTIFY) == "track-1"
    assert song.platform_id(Platform.APPLE_MUSIC) is None
    assert original == {}
    assert song.platform_ids is not original


def test_account_without_expiry_never_expires() -> None:
    account = UserMusicAccount(
        user_id=uuid4(), platform=Platform.APPLE_MUSIC, access_token="t", expires_at=None
    )

    assert not account.is_expired(NOW + timedelta(days=3650))


def test_store_grant_keeps_refresh_token_when_not_rotated() -> None:
    account = UserMusicAccount(
        user_id=uuid4(),
        platform=Platform.SPOTIFY,
        access_token="old",
        refresh_token="keep-me",
        expires_at=NOW,
    )

    account.store_grant(
        access_token="new", refresh_token=None, expires_at=NOW + timedelta(hours=1), now=NOW
    )

    assert account.access_token == "new"
    assert account.refresh_token == "keep-me"
    assert account.is_expired(NOW) is False
    assert account.updated_at == NOW


def test_token_grant_expiring_in() -> None:
    grant = TokenGrant.expiring_in(
        access_token="a", refresh_token=None, expires_in_seconds=3600, now=NOW
    )
    forever = TokenGrant.expiring_in(
        access_token="a", refresh_token=None, expires_in_seconds=None, now=NOW
    )

    assert grant.expires_at == NOW + timedelta(hours=1)
    assert forever.expires_at is None


def test_registry_rejects_unknown_platforms() -> None:
    registry = make_registry(FakePlaylistPlatform(platform=Platform.SPOTIFY))

    assert registry.playlist_client("spotify").platform is Platform.SPOTIFY
    assert registry.platforms == (Platform.SPOTIFY,)
    with pytest.raises(UnsupportedPlatformError):
        registry.playlist_client(Platform.APPLE_MUSIC)
    with pytest.raises(UnsupportedPlatformError):
        registry.authenticator("tidal")


def test_empty_registry_has_no_platforms() -> None:
    assert PlatformRegistry(playlists={}, authenticators={}).platforms == ()
