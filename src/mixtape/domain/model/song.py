"""Songs and their per-platform catalog identifiers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mixtape.domain.model.entity import Entity, utcnow

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from mixtape.domain.model.enums import Platform


@dataclass(eq=False, kw_only=True)
class Song(Entity):
    """A submitted song.

    ``platform_ids`` is treated as immutable: replace the whole mapping through
    ``record_platform_id`` so the ORM sees the attribute change.
    """

    title: str
    artist: str
    album: str | None = None
    duration_seconds: int | None = None
    platform_ids: Mapping[Platform, str] = field(default_factory=dict["Platform", str])
    created_at: datetime = field(default_factory=utcnow)

    def platform_id(self, platform: Platform) -> str | None:
        return self.platform_ids.get(platform)

    def record_platform_id(self, platform: Platform, track_id: str) -> None:
        self.platform_ids = {**self.platform_ids, platform: track_id}
