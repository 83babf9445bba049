"""
Usage Record Store

Append-only. Window counts are computed from the records themselves, so
there is no separate counter table to keep in sync.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.usage_model import APIUsage


class UsageRepository:
    """Repository for API usage records"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, **kwargs) -> APIUsage:
        record = APIUsage(**kwargs)
        self.db.add(record)
        await self.db.flush()
        return record

    async def count_admitted_since(self, api_key_id: str, since: datetime) -> int:
        """Admitted requests for a key at or after ``since``"""
        result = await self.db.execute(
            select(func.count(APIUsage.id)).where(
                APIUsage.api_key_id == api_key_id,
                APIUsage.admitted.is_(True),
                APIUsage.created_at >= since,
            )
        )
        return result.scalar() or 0

    async def oldest_admitted_since(
        self, api_key_id: str, since: datetime
    ) -> Optional[datetime]:
        """Timestamp of the oldest admitted request still inside a window"""
        result = await self.db.execute(
            select(func.min(APIUsage.created_at)).where(
                APIUsage.api_key_id == api_key_id,
                APIUsage.admitted.is_(True),
                APIUsage.created_at >= since,
            )
        )
        return result.scalar()

    async def count(self, api_key_id: str, since: Optional[datetime] = None) -> int:
        """All recorded attempts for a key, optionally since a point in time"""
        query = select(func.count(APIUsage.id)).where(APIUsage.api_key_id == api_key_id)
        if since is not None:
            query = query.where(APIUsage.created_at >= since)

        result = await self.db.execute(query)
        return result.scalar() or 0

    async def latency_and_status_since(
        self, api_key_id: str, since: datetime, limit: int = 1000
    ) -> List[Tuple[int, int]]:
        result = await self.db.execute(
            select(APIUsage.latency_ms, APIUsage.http_status)
            .where(APIUsage.api_key_id == api_key_id, APIUsage.created_at >= since)
            .order_by(APIUsage.created_at.desc())
            .limit(limit)
        )
        return [tuple(row) for row in result.all()]

    async def recent(self, api_key_id: str, limit: int = 100) -> List[APIUsage]:
        result = await self.db.execute(
            select(APIUsage)
            .where(APIUsage.api_key_id == api_key_id)
            .order_by(APIUsage.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


def get_usage_repository(db: AsyncSession) -> UsageRepository:
    """Get UsageRepository instance"""
    return UsageRepository(db)
