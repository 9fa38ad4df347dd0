"""Daily round lifecycle: open, evaluate, conclude and expire rounds."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, time, timedelta
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from mixtape.domain.errors import DuplicateEntityError, RoundNotFoundError
from mixtape.domain.model import DailyRound, RoundStatus, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date
    from uuid import UUID

    from mixtape.domain.group_playlists import GroupPlaylistManager
    from mixtape.domain.ports import UnitOfWorkFactory
    from mixtape.domain.tokens import TokenProvider, TokenSweepResult

log = getLogger(__name__)


class ParticipationLevel(StrEnum):
    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


class OperationOutcome(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RoundOutcome:
    """How many members took part, kept apart from whether the playlist work succeeded."""

    participation: ParticipationLevel
    operation: OperationOutcome

    @classmethod
    def evaluate(cls, *, submissions: int, members: int, succeeded: bool) -> RoundOutcome:
        if submissions == 0:
            participation = ParticipationLevel.NONE
        elif submissions >= members:
            participation = ParticipationLevel.FULL
        else:
            participation = ParticipationLevel.PARTIAL
        operation = OperationOutcome.SUCCEEDED if succeeded else OperationOutcome.FAILED
        return cls(participation=participation, operation=operation)

    @property
    def status(self) -> RoundStatus:
        if self.operation is OperationOutcome.FAILED:
            return RoundStatus.FAILED
        if self.participation is ParticipationLevel.FULL:
            return RoundStatus.COMPLETED
        return RoundStatus.PARTIAL


@dataclass(slots=True)
class RoundCreationResult:
    created: list[UUID] = field(default_factory=list)
    skipped: int = 0


@dataclass(slots=True)
class RoundProcessingResult:
    statuses: dict[UUID, RoundStatus] = field(default_factory=dict)

    def count(self, status: RoundStatus) -> int:
        return sum(1 for value in self.statuses.values() if value == status)


@dataclass(slots=True)
class CleanupResult:
    rounds_deleted: int = 0
    submissions_deleted: int = 0


class RoundScheduler:
    """The work behind each scheduled job.

    Every operation is idempotent so overlapping or repeated runs are harmless:
    round creation relies on the (group, date) unique constraint and concluded
    rounds are never revisited.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        playlists: GroupPlaylistManager,
        tokens: TokenProvider,
        clock: Callable[[], datetime] = utcnow,
        deadline_hour: int = 23,
        retention_days: int = 30,
        token_refresh_window: timedelta = timedelta(hours=1),
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._playlists = playlists
        self._tokens = tokens
        self._clock = clock
        self._deadline = time(hour=deadline_hour, tzinfo=UTC)
        self._retention = timedelta(days=retention_days)
        self._token_refresh_window = token_refresh_window

    def create_daily_rounds(self, today: date | None = None) -> RoundCreationResult:
        """Open today's round for every group that does not have one yet."""

        day = today or self._clock().date()
        with self._uow_factory() as uow:
            group_ids = [group.id for group in uow.repositories.groups.list_all()]

        result = RoundCreationResult()
        for group_id in group_ids:
            try:
                created = self.open_round(group_id, day)
            except DuplicateEntityError:
                created = None
            if created is None:
                result.skipped += 1
            else:
                result.created.append(created.id)

        log.info(
            "Daily rounds for %s: created=%s, skipped=%s", day, len(result.created), result.skipped
        )
        return result

    def open_round(self, group_id: UUID, day: date) -> DailyRound | None:
        """Create the group's round for ``day``; ``None`` if it already exists."""

        with self._uow_factory() as uow:
            rounds = uow.repositories.rounds
            if rounds.get_for_date(group_id, day) is not None:
                return None
            daily_round = DailyRound(
                group_id=group_id,
                date=day,
                deadline_at=datetime.combine(day, self._deadline),
                created_at=self._clock(),
            )
            rounds.add(daily_round)
            uow.commit()
        log.debug("Opened round %s for group %s on %s", daily_round.id, group_id, day)
        return daily_round

    def process_completed_rounds(self, today: date | None = None) -> RoundProcessingResult:
        """Publish and conclude every round from yesterday that is still active."""

        day = (today or self._clock().date()) - timedelta(days=1)
        with self._uow_factory() as uow:
            round_ids = [item.id for item in uow.repositories.rounds.list_active_on(day)]

        result = RoundProcessingResult()
        for round_id in round_ids:
            result.statuses[round_id] = self.process_round(round_id)

        log.info(
            "Processed %s rounds from %s: completed=%s, partial=%s, failed=%s",
            len(round_ids),
            day,
            result.count(RoundStatus.COMPLETED),
            result.count(RoundStatus.PARTIAL),
            result.count(RoundStatus.FAILED),
        )
        return result

    def process_round(self, round_id: UUID) -> RoundStatus:
        """Ensure playlists, push the round's songs and record the terminal status.

        Nothing raised while working on the round escapes; it ends as ``failed``.
        """

        submissions = 0
        members = 0
        try:
            with self._uow_factory() as uow:
                repos = uow.repositories
                daily_round = repos.rounds.get(round_id)
                if daily_round is None:
                    raise RoundNotFoundError(round_id)
                group_id = daily_round.group_id
                members = repos.memberships.count_for_group(group_id)
                submissions = repos.submissions.count_for_round(round_id)

            self._playlists.ensure_group_playlists(group_id)
            self._playlists.update_group_playlists_for_round(round_id)
            outcome = RoundOutcome.evaluate(
                submissions=submissions, members=members, succeeded=True
            )
        except Exception:  # noqa: BLE001
            log.exception("Processing round %s failed", round_id)
            outcome = RoundOutcome.evaluate(
                submissions=submissions, members=members, succeeded=False
            )

        try:
            self._conclude(round_id, outcome.status)
        except Exception:  # noqa: BLE001
            log.exception("Could not record status %s for round %s", outcome.status, round_id)
        return outcome.status

    def _conclude(self, round_id: UUID, status: RoundStatus) -> None:
        with self._uow_factory() as uow:
            daily_round = uow.repositories.rounds.get(round_id)
            if daily_round is None or not daily_round.is_active:
                return
            daily_round.conclude(status)
            uow.commit()
        log.info("Round %s concluded as %s", round_id, status)

    def refresh_expired_tokens(self) -> TokenSweepResult:
        return self._tokens.refresh_expiring_tokens(within=self._token_refresh_window)

    def cleanup_old_data(self, today: date | None = None) -> CleanupResult:
        """Delete rounds, with their submissions, dated before the retention window."""

        cutoff = (today or self._clock().date()) - self._retention
        result = CleanupResult()
        with self._uow_factory() as uow:
            repos = uow.repositories
            stale_rounds = list(repos.rounds.list_dated_before(cutoff))
            for daily_round in stale_rounds:
                for submission in repos.submissions.list_for_round(daily_round.id):
                    repos.submissions.delete(submission)
                    result.submissions_deleted += 1
            uow.flush()
            for daily_round in stale_rounds:
                repos.rounds.delete(daily_round)
                result.rounds_deleted += 1
            uow.commit()

        log.info(
            "Removed %s rounds and %s submissions older than %s",
            result.rounds_deleted,
            result.submissions_deleted,
            cutoff,
        )
        return result
