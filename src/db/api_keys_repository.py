"""
API Key Store
"""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.base_repository import BaseRepository
from src.models.api_key_model import APIKey


class APIKeyRepository(BaseRepository[APIKey]):
    """Repository for API Key operations"""

    async def count_active_keys(self, user_id: str) -> int:
        """Count non-revoked, non-expired API keys for user"""
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            select(func.count(APIKey.id)).where(
                and_(
                    APIKey.user_id == user_id,
                    APIKey.is_revoked.is_(False),
                    or_(APIKey.expires_at.is_(None), APIKey.expires_at > now),
                )
            )
        )
        return result.scalar() or 0

    async def get_user_keys(self, user_id: str) -> List[APIKey]:
        """Get all API keys for user, revoked and expired included"""
        result = await self.db.execute(
            select(APIKey)
            .where(APIKey.user_id == user_id)
            .order_by(APIKey.created_at.desc())
        )
        return list(result.scalars().all())


def get_api_key_repository(db: AsyncSession) -> APIKeyRepository:
    """Get APIKeyRepository instance"""
    return APIKeyRepository(APIKey, db)
