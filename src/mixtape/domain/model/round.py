"""Daily rounds and the song submissions made during them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mixtape.domain.errors import RoundTransitionError
from mixtape.domain.model.entity import Entity, utcnow
from mixtape.domain.model.enums import RoundStatus

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class DailyRound(Entity):
    """One submission window for a group; unique per (group_id, date)."""

    group_id: UUID
    date: date
    deadline_at: datetime
    status: RoundStatus = RoundStatus.ACTIVE
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == RoundStatus.ACTIVE

    def conclude(self, status: RoundStatus) -> None:
        """Move the round to a terminal status. Terminal statuses never change again."""

        if status == RoundStatus.ACTIVE:
            raise RoundTransitionError(self.id, self.status, status)
        if not self.is_active:
            raise RoundTransitionError(self.id, self.status, status)
        self.status = status


@dataclass(eq=False, kw_only=True)
class Submission(Entity):
    round_id: UUID
    user_id: UUID
    song_id: UUID
    comment: str | None = None
    submitted_at: datetime = field(default_factory=utcnow)
