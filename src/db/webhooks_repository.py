"""
Repository Pattern for Webhook Subscriptions
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.base_repository import BaseRepository
from src.models.webhook_model import WebhookSubscription


class WebhookRepository(BaseRepository[WebhookSubscription]):
    """Repository for WebhookSubscription operations"""

    async def active_for_event(self, user_id: str, event: str) -> List[WebhookSubscription]:
        """Active subscriptions of a user that listen to ``event``"""
        result = await self.db.execute(
            select(WebhookSubscription).where(
                WebhookSubscription.user_id == user_id,
                WebhookSubscription.is_active.is_(True),
            )
        )
        return [sub for sub in result.scalars().all() if event in (sub.events or [])]


def get_webhook_repository(db: AsyncSession) -> WebhookRepository:
    """Get WebhookRepository instance"""
    return WebhookRepository(WebhookSubscription, db)
