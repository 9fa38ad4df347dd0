"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from mixtape.adapters.apple_music import AppleMusicAuthenticator, AppleMusicPlaylistClient
from mixtape.adapters.spotify import SpotifyAuthenticator, SpotifyPlaylistClient
from mixtape.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from mixtape.config import (
    MissingConfigurationError,
    get_apple_music_config,
    get_schedule_config,
    get_spotify_config,
)
from mixtape.domain.errors import TokenUnavailableError
from mixtape.domain.group_playlists import GroupPlaylistManager
from mixtape.domain.identity import IdentityMergeCoordinator
from mixtape.domain.matching import CrossPlatformMatcher
from mixtape.domain.model import Platform, utcnow
from mixtape.domain.ports import PlatformRegistry, TokenGrant
from mixtape.domain.rounds import RoundScheduler
from mixtape.domain.tokens import TokenProvider

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from mixtape.config import ScheduleConfig
    from mixtape.domain.group_playlists import EnsuredPlaylist, PlaylistUpdateReport
    from mixtape.domain.model import User
    from mixtape.domain.ports import (
        PlatformAuthenticator,
        PlaylistPlatform,
        UnitOfWorkFactory,
    )
    from mixtape.domain.rounds import CleanupResult, RoundCreationResult, RoundProcessingResult
    from mixtape.domain.tokens import TokenSweepResult

log = getLogger(__name__)


@dataclass(slots=True)
class MixtapeServices:
    """The wired domain services sharing one registry and unit-of-work factory."""

    platforms: PlatformRegistry
    tokens: TokenProvider
    matcher: CrossPlatformMatcher
    playlists: GroupPlaylistManager
    rounds: RoundScheduler
    identity: IdentityMergeCoordinator
    unit_of_work_factory: UnitOfWorkFactory


def build_platform_registry() -> PlatformRegistry:
    """Register every platform whose credentials are configured."""

    playlists: dict[Platform, PlaylistPlatform] = {}
    authenticators: dict[Platform, PlatformAuthenticator] = {}

    try:
        spotify = get_spotify_config()
    except MissingConfigurationError as exc:
        log.warning("Spotify disabled: %s", exc)
    else:
        playlists[Platform.SPOTIFY] = SpotifyPlaylistClient(config=spotify)
        authenticators[Platform.SPOTIFY] = SpotifyAuthenticator(config=spotify)

    try:
        apple_music = get_apple_music_config()
    except MissingConfigurationError as exc:
        log.warning("Apple Music disabled: %s", exc)
    else:
        playlists[Platform.APPLE_MUSIC] = AppleMusicPlaylistClient(apple_music)
        authenticators[Platform.APPLE_MUSIC] = AppleMusicAuthenticator(apple_music)

    return PlatformRegistry(playlists=playlists, authenticators=authenticators)


def build_services(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    platforms: PlatformRegistry | None = None,
    schedule: ScheduleConfig | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> MixtapeServices:
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyUnitOfWork
    registry = platforms if platforms is not None else build_platform_registry()
    timing = schedule or get_schedule_config()

    tokens = TokenProvider(
        unit_of_work_factory=unit_of_work_factory, platforms=registry, clock=clock
    )
    matcher = CrossPlatformMatcher(registry)
    playlists = GroupPlaylistManager(
        unit_of_work_factory=unit_of_work_factory,
        platforms=registry,
        tokens=tokens,
        matcher=matcher,
        clock=clock,
    )
    rounds = RoundScheduler(
        unit_of_work_factory=unit_of_work_factory,
        playlists=playlists,
        tokens=tokens,
        clock=clock,
        deadline_hour=timing.deadline_hour,
        retention_days=timing.cleanup_retention_days,
        token_refresh_window=timedelta(hours=timing.token_refresh_window_hours),
    )
    identity = IdentityMergeCoordinator(unit_of_work_factory=unit_of_work_factory, clock=clock)
    log.debug("Services built for platforms: %s", ", ".join(registry.platforms) or "none")
    return MixtapeServices(
        platforms=registry,
        tokens=tokens,
        matcher=matcher,
        playlists=playlists,
        rounds=rounds,
        identity=identity,
        unit_of_work_factory=unit_of_work_factory,
    )


def create_daily_rounds(*, services: MixtapeServices | None = None) -> RoundCreationResult:
    return (services or build_services()).rounds.create_daily_rounds()


def process_completed_rounds(
    *, services: MixtapeServices | None = None
) -> RoundProcessingResult:
    return (services or build_services()).rounds.process_completed_rounds()


def refresh_expired_tokens(*, services: MixtapeServices | None = None) -> TokenSweepResult:
    result = (services or build_services()).rounds.refresh_expired_tokens()
    log.info("Token refresh: refreshed=%s, failed=%s", len(result.refreshed), len(result.failed))
    return result


def cleanup_old_data(*, services: MixtapeServices | None = None) -> CleanupResult:
    return (services or build_services()).rounds.cleanup_old_data()


def ensure_group_playlists(
    group_id: UUID,
    *,
    requesting_user_id: UUID | None = None,
    services: MixtapeServices | None = None,
) -> list[EnsuredPlaylist]:
    ensured = (services or build_services()).playlists.ensure_group_playlists(
        group_id, requesting_user_id=requesting_user_id
    )
    log.info("Group %s has playlists on: %s", group_id, ", ".join(p.platform for p in ensured))
    return ensured


def update_group_playlists(
    round_id: UUID, *, services: MixtapeServices | None = None
) -> PlaylistUpdateReport:
    report = (services or build_services()).playlists.update_group_playlists_for_round(round_id)
    log.info(
        "Round %s: %s submissions pushed, failed platforms: %s",
        round_id,
        report.submission_count,
        ", ".join(report.failed_platforms) or "none",
    )
    return report


def merge_users(
    primary_id: UUID,
    secondary_id: UUID,
    platform: Platform,
    *,
    services: MixtapeServices | None = None,
) -> User:
    """Merge two users, keeping the credentials of the account being linked.

    The grant is taken from the secondary's account on ``platform`` (the
    account whose link triggered the merge), falling back to the primary's.
    """

    wired = services or build_services()
    with wired.unit_of_work_factory() as uow:
        accounts = uow.repositories.music_accounts
        account = accounts.get(secondary_id, platform) or accounts.get(primary_id, platform)
        if account is None:
            raise TokenUnavailableError(secondary_id, platform, "neither user has an account")
        grant = TokenGrant(
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            expires_at=account.expires_at,
        )
    return wired.identity.perform_chosen_merge(primary_id, secondary_id, platform, grant)
