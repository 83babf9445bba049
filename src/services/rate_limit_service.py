"""
Rate Limit Service - admission control and usage accounting

Windows are rolling: the trailing 60 minutes and the trailing 24 hours,
counted from the usage records of admitted requests.

Admission and recording are two separate calls against the shared store.
Two concurrent requests can both observe the last free slot and both be
admitted; that bounded over-admission is accepted rather than serialised
with a lock.
"""

import logging
import math
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request
from starlette.responses import Response

from src.db.usage_repository import UsageRepository, get_usage_repository
from src.models.api_key_model import APIKey
from src.utils.exceptions import RateLimitExceededError
from src.utils.network import get_client_ip

logger = logging.getLogger(__name__)

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)


@dataclass(frozen=True)
class RateLimitStatus:
    hourly_limit: int
    hourly_remaining: int
    daily_limit: int
    daily_remaining: int
    retry_after: int = 0

    @property
    def allowed(self) -> bool:
        return self.hourly_remaining > 0 and self.daily_remaining > 0

    def as_dict(self) -> dict:
        return asdict(self)


class RateLimitService:
    """Per-key quota checks backed by usage records"""

    async def get_status(
        self, db: AsyncSession, api_key: APIKey, now: Optional[datetime] = None
    ) -> RateLimitStatus:
        """Current window usage of a key; never raises on exhaustion"""
        now = now or datetime.now(timezone.utc)
        usage = get_usage_repository(db)

        hour_start = now - HOUR
        day_start = now - DAY

        hourly_count = await usage.count_admitted_since(api_key.id, hour_start)
        daily_count = await usage.count_admitted_since(api_key.id, day_start)

        hourly_remaining = max(0, api_key.rate_limit_per_hour - hourly_count)
        daily_remaining = max(0, api_key.rate_limit_per_day - daily_count)

        retry_after = 0
        if hourly_remaining == 0:
            retry_after = await self._seconds_until_free(
                usage, api_key.id, hour_start, HOUR, now
            )
        if daily_remaining == 0:
            retry_after = max(
                retry_after,
                await self._seconds_until_free(usage, api_key.id, day_start, DAY, now),
            )

        return RateLimitStatus(
            hourly_limit=api_key.rate_limit_per_hour,
            hourly_remaining=hourly_remaining,
            daily_limit=api_key.rate_limit_per_day,
            daily_remaining=daily_remaining,
            retry_after=retry_after,
        )

    async def check_admission(
        self, db: AsyncSession, api_key: APIKey, now: Optional[datetime] = None
    ) -> RateLimitStatus:
        """
        Admit or reject one request for api_key

        Raises:
            RateLimitExceededError: If the hourly or daily window is full
        """
        status = await self.get_status(db, api_key, now=now)

        if not status.allowed:
            logger.warning(
                f"Rate limit exceeded for API key {api_key.id} "
                f"(hour {status.hourly_remaining}/{status.hourly_limit}, "
                f"day {status.daily_remaining}/{status.daily_limit})"
            )
            raise RateLimitExceededError(retry_after=status.retry_after, status=status)

        return status

    async def record_usage(
        self,
        db: AsyncSession,
        key_id: str,
        request: Request,
        status_code: int,
        start_time: float,
        admitted: bool = False,
    ) -> None:
        """
        Append a usage record for one finished request attempt

        ``start_time`` is a ``time.monotonic()`` reading taken when the
        request arrived. Failures are logged and swallowed so accounting
        problems never change the response the client receives.
        """
        now = datetime.now(timezone.utc)
        latency_ms = max(0, int((time.monotonic() - start_time) * 1000))

        try:
            await get_usage_repository(db).append(
                api_key_id=key_id[:64],
                method=request.method,
                route=request.url.path,
                http_status=status_code,
                latency_ms=latency_ms,
                ip_address=get_client_ip(request),
                admitted=admitted,
                created_at=now,
            )

            if admitted:
                await db.execute(
                    update(APIKey).where(APIKey.id == key_id).values(last_used_at=now)
                )

            await db.commit()
        except Exception as e:
            logger.error(
                f"Failed to record usage for API key {key_id}: {str(e)}", exc_info=True
            )
            try:
                await db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback after usage failure failed: {rollback_error}")

    async def add_rate_limit_headers(
        self,
        response: Response,
        db: AsyncSession,
        api_key: APIKey,
        status: Optional[RateLimitStatus] = None,
    ) -> Response:
        """Decorate a response with remaining-quota headers"""
        try:
            if status is None:
                status = await self.get_status(db, api_key)

            response.headers["X-RateLimit-Limit-Hour"] = str(status.hourly_limit)
            response.headers["X-RateLimit-Remaining-Hour"] = str(status.hourly_remaining)
            response.headers["X-RateLimit-Limit-Day"] = str(status.daily_limit)
            response.headers["X-RateLimit-Remaining-Day"] = str(status.daily_remaining)

            if status.retry_after:
                response.headers["Retry-After"] = str(status.retry_after)
        except Exception as e:
            logger.error(
                f"Failed to add rate limit headers for API key {api_key.id}: {str(e)}",
                exc_info=True,
            )

        return response

    async def _seconds_until_free(
        self,
        usage: UsageRepository,
        key_id: str,
        window_start: datetime,
        window: timedelta,
        now: datetime,
    ) -> int:
        """Seconds until the oldest counted request slides out of the window"""
        oldest = await usage.oldest_admitted_since(key_id, window_start)
        if oldest is None:
            return 1

        if oldest.tzinfo is None:
            oldest = oldest.replace(tzinfo=timezone.utc)

        return max(1, math.ceil((oldest + window - now).total_seconds()))


rate_limit_service = RateLimitService()
