"""Domain exception hierarchy.

Adapters translate transport failures into these types so services can decide
between retrying, refreshing credentials, skipping a unit of work or giving up.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from mixtape.domain.model.enums import Platform, RoundStatus
    from mixtape.domain.model.user import User
    from mixtape.domain.ports.platforms import TokenGrant


class MixtapeError(Exception):
    """Base class for expected domain failures."""


class NotFoundError(MixtapeError):
    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class GroupNotFoundError(NotFoundError):
    def __init__(self, group_id: UUID) -> None:
        super().__init__("Group", group_id)


class RoundNotFoundError(NotFoundError):
    def __init__(self, round_id: UUID) -> None:
        super().__init__("Daily round", round_id)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: UUID) -> None:
        super().__init__("User", user_id)


class DuplicateEntityError(MixtapeError):
    """A unique constraint rejected a write, usually because a concurrent job won the race."""


class PlatformError(MixtapeError):
    """An upstream platform call failed."""

    def __init__(
        self,
        message: str,
        *,
        platform: Platform | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.platform = platform
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class PlatformAuthError(PlatformError):
    """The platform rejected the access token (HTTP 401)."""

    @property
    def is_transient(self) -> bool:
        return False


class PlaylistNotFoundError(PlatformError):
    """The platform reports that the playlist no longer exists (HTTP 404)."""

    @property
    def is_transient(self) -> bool:
        return False


class PlatformRateLimitError(PlatformError):
    def __init__(
        self,
        message: str,
        *,
        platform: Platform | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, platform=platform, status_code=429)
        self.retry_after = retry_after


class UnsupportedPlatformError(PlatformError):
    def __init__(self, platform: str) -> None:
        super().__init__(f"Unsupported platform: {platform}")
        self.platform_name = platform


class TokenUnavailableError(MixtapeError):
    """No usable access token could be obtained for a user on a platform."""

    def __init__(self, user_id: UUID, platform: Platform, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"No valid {platform} token for user {user_id}{detail}")
        self.user_id = user_id
        self.platform = platform


class TokenRefreshError(MixtapeError):
    """Refreshing credentials failed; the user must re-authenticate."""

    def __init__(self, platform: Platform, reason: str) -> None:
        super().__init__(f"Failed to refresh {platform} token: {reason}")
        self.platform = platform
        self.reason = reason


class NoEligibleUserError(MixtapeError):
    """No group member holds a usable account on the platform."""

    def __init__(self, group_id: UUID, platform: Platform) -> None:
        super().__init__(f"No member of group {group_id} can act on {platform}")
        self.group_id = group_id
        self.platform = platform


class RetryExhaustedError(MixtapeError):
    def __init__(self, policy_name: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{policy_name} gave up after {attempts} attempts: {last_error}")
        self.policy_name = policy_name
        self.attempts = attempts
        self.last_error = last_error


class PlaylistRenameError(MixtapeError):
    """Every platform refused to rename the group's playlists."""


class RoundTransitionError(MixtapeError):
    def __init__(self, round_id: UUID, current: RoundStatus, requested: RoundStatus) -> None:
        super().__init__(f"Round {round_id} cannot move from {current} to {requested}")
        self.round_id = round_id
        self.current = current
        self.requested = requested


class InvalidMergeTargetError(MixtapeError):
    """The requested merge names the same user twice or a user that does not exist."""


class InvalidPlatformProfileError(MixtapeError):
    """A platform profile lacks the identifier needed to derive an identity email."""


class MergeRequiredError(MixtapeError):
    """A platform account already belongs to another user.

    Carries both users and the pending grant so the caller can ask which identity
    to keep and then call ``perform_chosen_merge``.
    """

    def __init__(
        self,
        *,
        current_user: User,
        existing_user: User,
        platform: Platform,
        grant: TokenGrant,
    ) -> None:
        super().__init__(
            f"{platform} account is already linked to user {existing_user.id}; "
            f"merge with user {current_user.id} required"
        )
        self.current_user = current_user
        self.existing_user = existing_user
        self.platform = platform
        self.grant = grant
