"""Access-token lifecycle for users' connected streaming accounts."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from mixtape.domain.errors import (
    MixtapeError,
    TokenRefreshError,
    TokenUnavailableError,
)
from mixtape.domain.model import utcnow
from mixtape.domain.retry import TOKEN_ACQUISITION_POLICY, BackoffPolicy

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from mixtape.domain.model import Platform, UserMusicAccount
    from mixtape.domain.ports import PlatformRegistry, UnitOfWorkFactory
    from mixtape.domain.retry import Sleep

log = getLogger(__name__)


@dataclass(slots=True)
class TokenSweepResult:
    refreshed: list[tuple[UUID, Platform]] = field(default_factory=list)
    failed: list[tuple[UUID, Platform]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _AccountSnapshot:
    access_token: str
    refresh_token: str | None
    expires_at: datetime | None

    @classmethod
    def of(cls, account: UserMusicAccount) -> _AccountSnapshot:
        return cls(
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            expires_at=account.expires_at,
        )


class TokenProvider:
    """Hands out usable access tokens, refreshing expired ones where the platform allows.

    Platforms whose authenticator cannot refresh (Apple Music) are validated on
    every request instead.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        platforms: PlatformRegistry,
        clock: Callable[[], datetime] = utcnow,
        acquisition_policy: BackoffPolicy = TOKEN_ACQUISITION_POLICY,
        sleep: Sleep = time.sleep,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._platforms = platforms
        self._clock = clock
        self._acquisition_policy = acquisition_policy
        self._sleep = sleep

    def ensure_valid_token(self, user_id: UUID, platform: Platform) -> bool:
        """Make sure the stored token is usable, refreshing it when it has expired."""

        return self.get_valid_user_token(user_id, platform) is not None

    def get_valid_user_token(self, user_id: UUID, platform: Platform) -> str | None:
        """Return a usable access token, or ``None`` when the user must re-authenticate."""

        try:
            return self._require_token(user_id, platform)
        except TokenRefreshError as exc:
            log.warning("Could not refresh %s token for user %s: %s", platform, user_id, exc)
        except MixtapeError as exc:
            log.info("%s", exc)
        return None

    def _require_token(self, user_id: UUID, platform: Platform) -> str:
        authenticator = self._platforms.authenticator(platform)
        snapshot = self._load(user_id, platform)
        if snapshot is None:
            raise TokenUnavailableError(user_id, platform, "no connected account")

        if not authenticator.supports_refresh:
            if authenticator.validate(snapshot.access_token):
                return snapshot.access_token
            raise TokenUnavailableError(user_id, platform, "stored token failed validation")

        if snapshot.expires_at is None or snapshot.expires_at > self._clock():
            return snapshot.access_token
        return self.refresh_user_token(user_id, platform)

    def refresh_user_token(self, user_id: UUID, platform: Platform) -> str:
        """Exchange the stored refresh token and persist the new credentials.

        Raises ``TokenRefreshError`` when no refresh token is stored or the platform
        rejects it; the user has to connect the account again in that case.
        """

        authenticator = self._platforms.authenticator(platform)
        if not authenticator.supports_refresh:
            raise TokenRefreshError(platform, "platform tokens cannot be refreshed")

        snapshot = self._load(user_id, platform)
        if snapshot is None:
            raise TokenUnavailableError(user_id, platform, "no connected account")
        if not snapshot.refresh_token:
            raise TokenRefreshError(platform, "no refresh token stored")

        grant = authenticator.refresh(snapshot.refresh_token)

        with self._uow_factory() as uow:
            account = uow.repositories.music_accounts.get(user_id, platform)
            if account is None:
                raise TokenUnavailableError(user_id, platform, "account removed during refresh")
            account.store_grant(
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                expires_at=grant.expires_at,
                now=self._clock(),
            )
            uow.commit()

        log.info("Refreshed %s token for user %s", platform, user_id)
        return grant.access_token

    def acquire_token(self, user_id: UUID, platform: Platform) -> str:
        """Obtain a token under the acquisition retry policy.

        A rejected refresh token raises ``TokenRefreshError`` at once; other
        failures are retried and end in ``RetryExhaustedError``.
        """

        return self._acquisition_policy.run(
            lambda _: self._require_token(user_id, platform), sleep=self._sleep
        )

    def refresh_expiring_tokens(
        self, *, within: timedelta = timedelta(hours=1)
    ) -> TokenSweepResult:
        """Refresh every refreshable account that expires within ``within`` from now."""

        horizon = self._clock() + within
        with self._uow_factory() as uow:
            candidates = [
                (account.user_id, account.platform)
                for account in uow.repositories.music_accounts.list_refreshable_expiring_before(
                    horizon
                )
            ]

        result = TokenSweepResult()
        for user_id, platform in candidates:
            try:
                authenticator = self._platforms.authenticator(platform)
                if not authenticator.supports_refresh:
                    continue
                self.refresh_user_token(user_id, platform)
            except MixtapeError as exc:
                log.warning("Token sweep failed for user %s on %s: %s", user_id, platform, exc)
                result.failed.append((user_id, platform))
            else:
                result.refreshed.append((user_id, platform))

        log.info(
            "Token sweep finished: refreshed=%s, failed=%s",
            len(result.refreshed),
            len(result.failed),
        )
        return result

    def _load(self, user_id: UUID, platform: Platform) -> _AccountSnapshot | None:
        with self._uow_factory() as uow:
            account = uow.repositories.music_accounts.get(user_id, platform)
            return None if account is None else _AccountSnapshot.of(account)
