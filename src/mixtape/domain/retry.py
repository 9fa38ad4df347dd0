"""Linear backoff retry policies for platform calls."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import Final

from mixtape.domain.errors import (
    MixtapeError,
    PlatformAuthError,
    PlatformError,
    RetryExhaustedError,
    TokenRefreshError,
)

log = getLogger(__name__)

type Sleep = Callable[[float], None]
type RetryPredicate = Callable[[BaseException], bool]


def is_auth_failure(error: BaseException) -> bool:
    """Whether an error looks like a rejected or expired access token."""

    if isinstance(error, PlatformAuthError):
        return True
    if isinstance(error, PlatformError) and error.status_code == 401:
        return True
    message = str(error).lower()
    return "unauthorized" in message or "token" in message


def _retry_token_acquisition(error: BaseException) -> bool:
    # a rejected refresh token will not start working on the next attempt
    return isinstance(error, MixtapeError) and not isinstance(error, TokenRefreshError)


def _retry_playlist_push(error: BaseException) -> bool:
    if not isinstance(error, PlatformError):
        return False
    return error.is_transient or is_auth_failure(error)


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Retry an operation up to ``max_attempts`` times, sleeping ``base * attempt`` between."""

    name: str
    max_attempts: int
    base_delay_seconds: float
    retry_on: RetryPredicate

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_seconds * attempt

    def run[T](
        self,
        operation: Callable[[int], T],
        *,
        sleep: Sleep = time.sleep,
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> T:
        """Call ``operation(attempt)`` until it succeeds.

        Errors rejected by ``retry_on`` propagate unchanged. When every attempt
        fails, ``RetryExhaustedError`` wraps the last error.
        """

        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation(attempt)
            except Exception as exc:
                if not self.retry_on(exc):
                    raise
                last_error = exc
                if attempt == self.max_attempts:
                    break
                delay = self.delay_for(attempt)
                log.warning(
                    "%s attempt %s/%s failed (%s); retrying in %.1fs",
                    self.name,
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                if on_retry is not None:
                    on_retry(attempt, exc)
                sleep(delay)

        assert last_error is not None
        raise RetryExhaustedError(self.name, self.max_attempts, last_error) from last_error


TOKEN_ACQUISITION_POLICY: Final = BackoffPolicy(
    name="token-acquisition",
    max_attempts=3,
    base_delay_seconds=1.0,
    retry_on=_retry_token_acquisition,
)

PLAYLIST_PUSH_POLICY: Final = BackoffPolicy(
    name="playlist-push",
    max_attempts=3,
    base_delay_seconds=2.0,
    retry_on=_retry_playlist_push,
)
