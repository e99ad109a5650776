"""Per-client request rate limiting for sensitive endpoints.

Counts requests per client IP in a moving window using the ``limits``
library. Limits are kept in process memory, so each worker counts on its
own.
"""

import math
import time

from fastapi import Request
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from clientportal.core.config import Settings, get_settings
from clientportal.core.exceptions import RateLimitedError
from clientportal.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Moving-window limiter keyed by endpoint scope and client address."""

    def __init__(self, limit: str, enabled: bool = True) -> None:
        self.item: RateLimitItem = parse(limit)
        self.enabled = enabled
        self._limiter = MovingWindowRateLimiter(MemoryStorage())

    @classmethod
    def for_login(cls, settings: Settings | None = None) -> "RateLimiter":
        settings = settings or get_settings()
        return cls(settings.login_rate_limit, enabled=settings.rate_limit_enabled)

    def hit(self, scope: str, key: str) -> None:
        """Count one request.

        Raises:
            RateLimitedError: If the client already used up the window.
        """
        if not self.enabled:
            return
        if self._limiter.hit(self.item, scope, key):
            return

        reset_at = self._limiter.get_window_stats(self.item, scope, key).reset_time
        retry_after = max(1, math.ceil(reset_at - time.time()))
        logger.warning("Rate limit exceeded", scope=scope, key=key, retry_after=retry_after)
        raise RateLimitedError(retry_after)


def _client_key(request: Request) -> str:
    return f"ip:{request.client.host}" if request.client else "ip:unknown"


async def limit_login(request: Request) -> None:
    """Dependency applying the login limit to the calling client."""
    if not hasattr(request.app.state, "login_rate_limiter"):
        request.app.state.login_rate_limiter = RateLimiter.for_login()
    request.app.state.login_rate_limiter.hit("login", _client_key(request))
