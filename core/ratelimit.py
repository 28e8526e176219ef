"""Rate limiting implementation."""

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.dates import ensure_utc, utcnow
from core.logging import get_logger
from domain.user.models import RateLimit

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    limited: bool
    remaining: int
    retry_after_ms: int = 0


class RateLimiter:
    """Database-backed fixed window rate limiter.

    One row per ``(identifier, scope)`` holds the count for the current
    window; the window restarts on the first request after it elapses.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get(self, identifier: str, scope: str):
        result = await self.session.execute(
            select(RateLimit)
            .where(RateLimit.identifier == identifier, RateLimit.scope == scope)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def hit(
        self,
        identifier: str,
        scope: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitResult:
        """
        Record a request and report whether it exceeded the limit.

        Returns:
            RateLimitResult; ``retry_after_ms`` is set only when limited
        """
        now = utcnow()
        window = timedelta(seconds=window_seconds)
        entry = await self._get(identifier, scope)

        if entry is None:
            self.session.add(
                RateLimit(
                    identifier=identifier,
                    scope=scope,
                    request_count=1,
                    window_started_at=now,
                    last_request_at=now,
                )
            )
            await self.session.flush()
            return RateLimitResult(limited=False, remaining=max(0, limit - 1))

        window_end = ensure_utc(entry.window_started_at) + window
        if window_end <= now:
            entry.request_count = 1
            entry.window_started_at = now
            entry.last_request_at = now
            await self.session.flush()
            return RateLimitResult(limited=False, remaining=max(0, limit - 1))

        if entry.request_count >= limit:
            retry_after_ms = int((window_end - now).total_seconds() * 1000)
            logger.warning(
                "rate_limit_exceeded", scope=scope, retry_after_ms=retry_after_ms
            )
            return RateLimitResult(
                limited=True, remaining=0, retry_after_ms=max(1, retry_after_ms)
            )

        entry.request_count += 1
        entry.last_request_at = now
        await self.session.flush()
        return RateLimitResult(
            limited=False, remaining=max(0, limit - entry.request_count)
        )


async def check_rate_limit(
    session: AsyncSession,
    identifier: str,
    scope: str,
    limit: int,
    window_seconds: int,
) -> RateLimitResult:
    return await RateLimiter(session).hit(identifier, scope, limit, window_seconds)
