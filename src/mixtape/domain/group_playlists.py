"""Provisioning and synchronising one persistent playlist per platform per group."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from mixtape.domain.errors import (
    DuplicateEntityError,
    GroupNotFoundError,
    MixtapeError,
    NoEligibleUserError,
    PlatformError,
    PlaylistRenameError,
    RoundNotFoundError,
    TokenUnavailableError,
)
from mixtape.domain.matching import (
    INITIAL_PLAYLIST_MATCH_THRESHOLD,
    RECONCILIATION_MATCH_THRESHOLD,
    SongQuery,
)
from mixtape.domain.model import GroupPlaylist, Platform, playlist_name_for, utcnow
from mixtape.domain.ports import WriteOutcome
from mixtape.domain.retry import PLAYLIST_PUSH_POLICY, BackoffPolicy, is_auth_failure

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from datetime import datetime
    from uuid import UUID

    from mixtape.domain.matching import CrossPlatformMatcher
    from mixtape.domain.model import Song
    from mixtape.domain.ports import PlatformRegistry, PlaylistPlatform, UnitOfWorkFactory
    from mixtape.domain.retry import Sleep
    from mixtape.domain.tokens import TokenProvider

log = getLogger(__name__)

PLAYLIST_DESCRIPTION: Final[str] = (
    "Automatically updated every morning at 8:30am with fresh submissions from your group"
)


@dataclass(frozen=True, slots=True)
class EnsuredPlaylist:
    platform: Platform
    playlist_id: str
    playlist_url: str | None

    @classmethod
    def of(cls, playlist: GroupPlaylist) -> EnsuredPlaylist:
        return cls(
            platform=playlist.platform,
            playlist_id=playlist.platform_playlist_id,
            playlist_url=playlist.playlist_url,
        )


@dataclass(slots=True)
class PlatformUpdateResult:
    platform: Platform
    playlist_id: str
    track_count: int = 0
    unmatched_song_ids: list[UUID] = field(default_factory=list)
    outcome: WriteOutcome | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class PlaylistUpdateReport:
    round_id: UUID
    submission_count: int
    results: list[PlatformUpdateResult] = field(default_factory=list)

    @property
    def failed_platforms(self) -> list[Platform]:
        return [result.platform for result in self.results if not result.succeeded]


@dataclass(frozen=True, slots=True)
class GroupSnapshot:
    """Read-only view of a group used to pick creators and managers."""

    group_id: UUID
    name: str
    admin_user_id: UUID
    member_ids: tuple[UUID, ...]
    accounts: dict[UUID, frozenset[Platform]]
    preferences: dict[UUID, Platform | None]

    def has_account(self, user_id: UUID, platform: Platform) -> bool:
        return platform in self.accounts.get(user_id, frozenset())

    def is_member(self, user_id: UUID) -> bool:
        return user_id in self.member_ids


def _unique(user_ids: Iterable[UUID | None]) -> list[UUID]:
    ordered: list[UUID] = []
    for user_id in user_ids:
        if user_id is not None and user_id not in ordered:
            ordered.append(user_id)
    return ordered


class GroupPlaylistManager:
    """Keeps each group's platform playlists in line with its daily submissions.

    Platforms are processed one after another; a failure on one platform is
    logged and never prevents work on the others.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        platforms: PlatformRegistry,
        tokens: TokenProvider,
        matcher: CrossPlatformMatcher,
        clock: Callable[[], datetime] = utcnow,
        push_policy: BackoffPolicy = PLAYLIST_PUSH_POLICY,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._platforms = platforms
        self._tokens = tokens
        self._matcher = matcher
        self._clock = clock
        self._push_policy = push_policy
        self._sleep = sleep

    # Provisioning ---------------------------------------------------------------

    def ensure_group_playlists(
        self,
        group_id: UUID,
        *,
        requesting_user_id: UUID | None = None,
    ) -> list[EnsuredPlaylist]:
        """Make sure every platform the group uses has an active playlist.

        Idempotent: existing playlists are returned as they are. Platforms that
        fail are logged and left out of the result.
        """

        snapshot = self.load_group(group_id)
        ensured: list[EnsuredPlaylist] = []
        for platform in self.platforms_used_by_group(snapshot):
            try:
                ensured.append(self._ensure(snapshot, platform, requesting_user_id))
            except Exception as exc:  # noqa: BLE001
                log.warning(
                    "Could not ensure %s playlist for group %s: %s",
                    platform,
                    group_id,
                    exc,
                    exc_info=not isinstance(exc, MixtapeError),
                )
        return ensured

    def ensure_platform_playlist(
        self,
        group_id: UUID,
        platform: Platform,
        *,
        requesting_user_id: UUID | None = None,
    ) -> EnsuredPlaylist:
        """Like ``ensure_group_playlists`` for one platform, but failures are raised."""

        snapshot = self.load_group(group_id)
        return self._ensure(snapshot, platform, requesting_user_id)

    def platforms_used_by_group(self, snapshot: GroupSnapshot) -> list[Platform]:
        """Each member contributes their preferred platform, or every platform they hold."""

        used: set[Platform] = set()
        for member_id in snapshot.member_ids:
            held = snapshot.accounts.get(member_id, frozenset())
            preferred = snapshot.preferences.get(member_id)
            if preferred is not None and preferred in held:
                used.add(preferred)
            else:
                used.update(held)
        return [platform for platform in Platform if platform in used]

    def load_group(self, group_id: UUID) -> GroupSnapshot:
        with self._uow_factory() as uow:
            repos = uow.repositories
            group = repos.groups.get(group_id)
            if group is None:
                raise GroupNotFoundError(group_id)
            memberships = repos.memberships.list_for_group(group_id)
            member_ids = tuple(member.user_id for member in memberships)
            account_holders = _unique([*member_ids, group.admin_user_id])
            accounts: dict[UUID, set[Platform]] = {}
            for account in repos.music_accounts.list_for_users(account_holders):
                accounts.setdefault(account.user_id, set()).add(account.platform)
            preferences = {
                preference.user_id: preference.preferred_platform
                for preference in repos.preferences.list_for_users(member_ids)
            }
            return GroupSnapshot(
                group_id=group.id,
                name=group.name,
                admin_user_id=group.admin_user_id,
                member_ids=member_ids,
                accounts={user_id: frozenset(held) for user_id, held in accounts.items()},
                preferences=preferences,
            )

    def _ensure(
        self,
        snapshot: GroupSnapshot,
        platform: Platform,
        requesting_user_id: UUID | None,
    ) -> EnsuredPlaylist:
        client = self._platforms.playlist_client(platform)

        with self._uow_factory() as uow:
            existing = uow.repositories.playlists.get_active(snapshot.group_id, platform)

        if existing is not None:
            if self._still_exists(snapshot, existing, client):
                return EnsuredPlaylist.of(existing)
            self._supersede(existing.id)
            log.info(
                "%s playlist %s for group %s disappeared upstream; recreating",
                platform,
                existing.platform_playlist_id,
                snapshot.group_id,
            )

        creator_id, token = self._pick_creator(snapshot, platform, requesting_user_id)
        created = client.create_playlist(
            token,
            name=playlist_name_for(snapshot.name),
            description=PLAYLIST_DESCRIPTION,
        )
        playlist = GroupPlaylist(
            group_id=snapshot.group_id,
            platform=platform,
            platform_playlist_id=created.playlist_id,
            playlist_url=created.url,
            playlist_name=created.name,
            owner_user_id=creator_id,
            created_at=self._clock(),
        )

        try:
            with self._uow_factory() as uow:
                uow.repositories.playlists.add(playlist)
                uow.commit()
        except DuplicateEntityError:
            with self._uow_factory() as uow:
                winner = uow.repositories.playlists.get_active(snapshot.group_id, platform)
            if winner is None:
                raise
            log.info(
                "Another job created the %s playlist for group %s first; discarding %s",
                platform,
                snapshot.group_id,
                created.playlist_id,
            )
            self._discard_orphan(client, token, created.playlist_id)
            return EnsuredPlaylist.of(winner)

        log.info(
            "Created %s playlist %s for group %s (owner %s)",
            platform,
            created.playlist_id,
            snapshot.group_id,
            creator_id,
        )
        return EnsuredPlaylist.of(playlist)

    def _still_exists(
        self,
        snapshot: GroupSnapshot,
        playlist: GroupPlaylist,
        client: PlaylistPlatform,
    ) -> bool:
        candidates = self._manager_candidates(snapshot, playlist)
        holder = self._first_valid_token(candidates, playlist.platform)
        if holder is None:
            # without a token the playlist cannot be checked; keep it
            log.debug("No token to verify %s playlist %s", playlist.platform, playlist.id)
            return True
        _, token = holder
        try:
            return client.playlist_exists(token, playlist.platform_playlist_id)
        except PlatformError as exc:
            log.warning(
                "Could not verify %s playlist %s, assuming it exists: %s",
                playlist.platform,
                playlist.platform_playlist_id,
                exc,
            )
            return True

    def _supersede(self, playlist_id: UUID) -> None:
        with self._uow_factory() as uow:
            playlist = uow.repositories.playlists.get(playlist_id)
            if playlist is not None and playlist.is_active:
                playlist.supersede()
                uow.commit()

    def _pick_creator(
        self,
        snapshot: GroupSnapshot,
        platform: Platform,
        requesting_user_id: UUID | None,
    ) -> tuple[UUID, str]:
        requester = (
            requesting_user_id
            if requesting_user_id is not None and snapshot.is_member(requesting_user_id)
            else None
        )
        candidates = [
            user_id
            for user_id in _unique([requester, snapshot.admin_user_id, *snapshot.member_ids])
            if snapshot.has_account(user_id, platform)
        ]
        if not candidates:
            raise NoEligibleUserError(snapshot.group_id, platform)
        holder = self._first_valid_token(candidates, platform)
        if holder is None:
            raise TokenUnavailableError(candidates[0], platform, "no candidate creator is usable")
        return holder

    def _discard_orphan(self, client: PlaylistPlatform, token: str, playlist_id: str) -> None:
        try:
            outcome = client.delete_playlist(token, playlist_id)
        except PlatformError as exc:
            log.warning("Could not remove orphaned playlist %s: %s", playlist_id, exc)
            return
        if outcome is WriteOutcome.UNSUPPORTED:
            log.warning(
                "Orphaned %s playlist %s must be removed manually", client.platform, playlist_id
            )

    # Track updates --------------------------------------------------------------

    def update_group_playlists_for_round(self, round_id: UUID) -> PlaylistUpdateReport:
        """Replace every active playlist's tracks with the round's submissions.

        A round without submissions clears the playlists. Songs without a known
        id on a platform are matched through catalog search, with a stricter
        threshold while a playlist has never been filled; songs that cannot be
        matched are left out and reported.
        """

        with self._uow_factory() as uow:
            repos = uow.repositories
            daily_round = repos.rounds.get(round_id)
            if daily_round is None:
                raise RoundNotFoundError(round_id)
            group_id = daily_round.group_id
            submissions = list(repos.submissions.list_for_round(round_id))
            songs_by_id = repos.songs.get_many(submission.song_id for submission in submissions)
            songs = [
                songs_by_id[submission.song_id]
                for submission in submissions
                if submission.song_id in songs_by_id
            ]
            playlists = list(repos.playlists.list_active(group_id))

        snapshot = self.load_group(group_id)
        report = PlaylistUpdateReport(round_id=round_id, submission_count=len(submissions))
        for playlist in playlists:
            result = PlatformUpdateResult(
                platform=playlist.platform, playlist_id=playlist.platform_playlist_id
            )
            try:
                self._update_playlist(snapshot, playlist, songs, result)
            except Exception as exc:  # noqa: BLE001
                result.error = str(exc) or type(exc).__name__
                log.error(
                    "Updating %s playlist %s for round %s failed: %s",
                    playlist.platform,
                    playlist.platform_playlist_id,
                    round_id,
                    exc,
                    exc_info=not isinstance(exc, MixtapeError),
                )
            report.results.append(result)

        log.info(
            "Round %s: %s submissions pushed to %s playlists (%s failed)",
            round_id,
            report.submission_count,
            len(report.results),
            len(report.failed_platforms),
        )
        return report

    def _update_playlist(
        self,
        snapshot: GroupSnapshot,
        playlist: GroupPlaylist,
        songs: Sequence[Song],
        result: PlatformUpdateResult,
    ) -> None:
        platform = playlist.platform
        client = self._platforms.playlist_client(platform)
        managers = self._manager_candidates(snapshot, playlist)
        if not managers:
            raise NoEligibleUserError(snapshot.group_id, platform)
        manager_id = managers[0]
        token = self._tokens.acquire_token(manager_id, platform)

        # a playlist that was never filled only takes confident matches
        threshold = (
            INITIAL_PLAYLIST_MATCH_THRESHOLD
            if playlist.last_updated is None
            else RECONCILIATION_MATCH_THRESHOLD
        )
        track_ids, unmatched = self._resolve_tracks(songs, platform, threshold)
        result.track_count = len(track_ids)
        result.unmatched_song_ids = unmatched

        def push(_: int) -> WriteOutcome:
            return client.replace_tracks(token, playlist.platform_playlist_id, track_ids)

        def refresh_on_auth_failure(_: int, error: BaseException) -> None:
            nonlocal token
            if not is_auth_failure(error):
                return
            try:
                token = self._tokens.refresh_user_token(manager_id, platform)
            except MixtapeError as exc:
                log.warning("Inline refresh for user %s failed: %s", manager_id, exc)

        result.outcome = self._push_policy.run(
            push, sleep=self._sleep, on_retry=refresh_on_auth_failure
        )
        if result.outcome is WriteOutcome.APPLIED:
            self._mark_updated(playlist.id)

    def _resolve_tracks(
        self, songs: Sequence[Song], platform: Platform, threshold: float
    ) -> tuple[list[str], list[UUID]]:
        track_ids: list[str] = []
        unmatched: list[UUID] = []
        for song in songs:
            known = song.platform_id(platform)
            if known:
                track_ids.append(known)
                continue
            match = self._matcher.match_song(SongQuery.from_song(song), platform)
            if match.best_match is not None and match.is_accepted(threshold):
                track_ids.append(match.best_match.track_id)
                self._remember_platform_id(song.id, platform, match.best_match.track_id)
            else:
                log.info(
                    "No %s match for %r by %r (confidence %.2f)",
                    platform,
                    song.title,
                    song.artist,
                    match.confidence,
                )
                unmatched.append(song.id)
        return track_ids, unmatched

    def _remember_platform_id(self, song_id: UUID, platform: Platform, track_id: str) -> None:
        try:
            with self._uow_factory() as uow:
                song = uow.repositories.songs.get(song_id)
                if song is None:
                    return
                song.record_platform_id(platform, track_id)
                uow.commit()
        except Exception:  # noqa: BLE001
            # the playlist push does not depend on the cache write
            log.warning("Could not cache %s id for song %s", platform, song_id, exc_info=True)

    def _mark_updated(self, playlist_id: UUID) -> None:
        with self._uow_factory() as uow:
            playlist = uow.repositories.playlists.get(playlist_id)
            if playlist is not None:
                playlist.last_updated = self._clock()
                uow.commit()

    # Renaming and teardown ------------------------------------------------------

    def update_all_playlist_names(self, group_id: UUID, new_group_name: str) -> list[Platform]:
        """Rename every active playlist after the group was renamed.

        Returns the platforms that applied the rename. Raises ``PlaylistRenameError``
        when the group has playlists and none of them could be renamed.
        """

        snapshot = self.load_group(group_id)
        with self._uow_factory() as uow:
            playlists = list(uow.repositories.playlists.list_active(group_id))
        if not playlists:
            return []

        new_name = playlist_name_for(new_group_name)
        renamed: list[Platform] = []
        for playlist in playlists:
            try:
                outcome = self._with_manager_token(
                    snapshot,
                    playlist,
                    lambda client, token, playlist=playlist: client.rename_playlist(
                        token, playlist.platform_playlist_id, new_name
                    ),
                )
            except Exception as exc:  # noqa: BLE001
                log.warning(
                    "Renaming %s playlist failed: %s",
                    playlist.platform,
                    exc,
                    exc_info=not isinstance(exc, MixtapeError),
                )
                continue
            if outcome is WriteOutcome.APPLIED:
                renamed.append(playlist.platform)
            else:
                log.warning("%s does not support renaming playlists", playlist.platform)

        if not renamed:
            raise PlaylistRenameError(f"No playlist of group {group_id} could be renamed")

        with self._uow_factory() as uow:
            for playlist in uow.repositories.playlists.list_active(group_id):
                playlist.playlist_name = new_name
            uow.commit()
        return renamed

    def delete_all_group_playlists(self, group_id: UUID) -> int:
        """Remove the group's playlists upstream (best effort) and retire their rows."""

        snapshot = self.load_group(group_id)
        with self._uow_factory() as uow:
            playlists = list(uow.repositories.playlists.list_active(group_id))

        for playlist in playlists:
            try:
                outcome = self._with_manager_token(
                    snapshot,
                    playlist,
                    lambda client, token, playlist=playlist: client.delete_playlist(
                        token, playlist.platform_playlist_id
                    ),
                )
            except Exception as exc:  # noqa: BLE001
                log.warning(
                    "Could not delete %s playlist %s: %s",
                    playlist.platform,
                    playlist.platform_playlist_id,
                    exc,
                    exc_info=not isinstance(exc, MixtapeError),
                )
                continue
            if outcome is WriteOutcome.UNSUPPORTED:
                log.warning(
                    "%s playlist %s must be removed manually",
                    playlist.platform,
                    playlist.platform_playlist_id,
                )

        with self._uow_factory() as uow:
            for playlist in uow.repositories.playlists.list_active(group_id):
                playlist.supersede()
            uow.commit()
        log.info("Retired %s playlists of group %s", len(playlists), group_id)
        return len(playlists)

    # Managers -------------------------------------------------------------------

    def find_playlist_manager(self, group_id: UUID, platform: Platform) -> UUID | None:
        snapshot = self.load_group(group_id)
        with self._uow_factory() as uow:
            playlist = uow.repositories.playlists.get_active(group_id, platform)
        if playlist is None:
            return None
        candidates = self._manager_candidates(snapshot, playlist)
        return candidates[0] if candidates else None

    def _manager_candidates(self, snapshot: GroupSnapshot, playlist: GroupPlaylist) -> list[UUID]:
        """Owner while still a member, then the admin, then members in join order."""

        owner = playlist.owner_user_id if snapshot.is_member(playlist.owner_user_id) else None
        return [
            user_id
            for user_id in _unique([owner, snapshot.admin_user_id, *snapshot.member_ids])
            if snapshot.has_account(user_id, playlist.platform)
        ]

    def _first_valid_token(
        self, candidates: Iterable[UUID], platform: Platform
    ) -> tuple[UUID, str] | None:
        for user_id in candidates:
            token = self._tokens.get_valid_user_token(user_id, platform)
            if token is not None:
                return user_id, token
        return None

    def _with_manager_token(
        self,
        snapshot: GroupSnapshot,
        playlist: GroupPlaylist,
        action: Callable[[PlaylistPlatform, str], WriteOutcome],
    ) -> WriteOutcome:
        client = self._platforms.playlist_client(playlist.platform)
        candidates = self._manager_candidates(snapshot, playlist)
        holder = self._first_valid_token(candidates, playlist.platform)
        if holder is None:
            if not candidates:
                raise NoEligibleUserError(snapshot.group_id, playlist.platform)
            raise TokenUnavailableError(candidates[0], playlist.platform, "no manager is usable")
        _, token = holder
        return action(client, token)
