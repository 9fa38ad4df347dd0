"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    DailyRoundRepository,
    EmailAliasRepository,
    GroupPlaylistRepository,
    GroupRepository,
    MembershipRepository,
    MusicAccountRepository,
    PreferencesRepository,
    Repository,
    SongRepository,
    SubmissionRepository,
    UserRepository,
)
from .platforms import (
    CatalogTrack,
    CreatedPlaylist,
    PlatformAuthenticator,
    PlatformProfile,
    PlatformRegistry,
    PlaylistPlatform,
    TokenGrant,
    WriteOutcome,
)
from .unit_of_work import (
    MixtapeRepositories,
    MixtapeUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "CatalogTrack",
    "CreatedPlaylist",
    "DailyRoundRepository",
    "EmailAliasRepository",
    "GroupPlaylistRepository",
    "GroupRepository",
    "MembershipRepository",
    "MixtapeRepositories",
    "MixtapeUnitOfWork",
    "MusicAccountRepository",
    "PlatformAuthenticator",
    "PlatformProfile",
    "PlatformRegistry",
    "PlaylistPlatform",
    "PreferencesRepository",
    "Repository",
    "RepositoryCollection",
    "SongRepository",
    "SubmissionRepository",
    "TokenGrant",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "UserRepository",
    "WriteOutcome",
]
