"""Apple Music developer tokens (ES256 JWTs signed with the team's MusicKit key)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Final

import jwt

from mixtape.config.errors import ConfigurationError
from mixtape.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from mixtape.config import AppleMusicConfig

log = getLogger(__name__)

DEVELOPER_TOKEN_AUDIENCE: Final[str] = "appstoreconnect-v1"
DEVELOPER_TOKEN_ALGORITHM: Final[str] = "ES256"
DEVELOPER_TOKEN_LIFETIME: Final[timedelta] = timedelta(days=180)
# tokens are reissued this long before they lapse
DEVELOPER_TOKEN_RENEWAL_MARGIN: Final[timedelta] = timedelta(minutes=5)


@dataclass(slots=True)
class DeveloperTokenCache:
    token: str | None = None
    expires_at: datetime | None = None

    def get(self, now: datetime) -> str | None:
        if self.token is None or self.expires_at is None:
            return None
        if self.expires_at - DEVELOPER_TOKEN_RENEWAL_MARGIN <= now:
            return None
        return self.token

    def store(self, token: str, expires_at: datetime) -> None:
        self.token = token
        self.expires_at = expires_at

    def clear(self) -> None:
        self.token = None
        self.expires_at = None


class AppleMusicDeveloperTokens:
    """Issues and caches the developer token sent as ``Authorization: Bearer``."""

    def __init__(
        self,
        config: AppleMusicConfig,
        *,
        cache: DeveloperTokenCache | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config
        self._cache = cache if cache is not None else DeveloperTokenCache()
        self._clock = clock

    def token(self) -> str:
        now = self._clock()
        cached = self._cache.get(now)
        if cached is not None:
            return cached

        expires_at = now + DEVELOPER_TOKEN_LIFETIME
        payload = {
            "iss": self._config.team_id,
            "aud": DEVELOPER_TOKEN_AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        try:
            token = jwt.encode(
                payload,
                self._config.private_key,
                algorithm=DEVELOPER_TOKEN_ALGORITHM,
                headers={"kid": self._config.key_id},
            )
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise ConfigurationError(
                f"Cannot sign Apple Music developer token with key {self._config.key_id}: {exc}"
            ) from exc

        self._cache.store(token, expires_at)
        log.info("Issued Apple Music developer token valid until %s", expires_at.isoformat())
        return token

    def invalidate(self) -> None:
        self._cache.clear()
