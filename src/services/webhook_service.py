"""
Webhook Service - outbound event subscriptions and signed delivery
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_session_factory
from src.db.webhooks_repository import get_webhook_repository
from src.models.webhook_model import WebhookSubscription
from src.schemas.webhook_schemas import WebhookCreated, WebhookInfo
from src.utils import config
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.security import generate_webhook_secret, sign_webhook_payload

logger = logging.getLogger(__name__)

BOOKMARK_CREATED = "bookmark.created"
BOOKMARK_UPDATED = "bookmark.updated"
BOOKMARK_DELETED = "bookmark.deleted"
COLLECTION_CREATED = "collection.created"
COLLECTION_UPDATED = "collection.updated"
COLLECTION_DELETED = "collection.deleted"

WEBHOOK_EVENTS = {
    BOOKMARK_CREATED,
    BOOKMARK_UPDATED,
    BOOKMARK_DELETED,
    COLLECTION_CREATED,
    COLLECTION_UPDATED,
    COLLECTION_DELETED,
}

USER_AGENT = "HitTags-Webhooks/1.0"


def is_valid_webhook_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class WebhookService:
    """Service for webhook subscriptions and deliveries"""

    async def create_subscription(
        self,
        db: AsyncSession,
        user_id: str,
        url: str,
        events: List[str],
        description: Optional[str] = None,
        api_key_id: Optional[str] = None,
    ) -> WebhookCreated:
        """
        Subscribe a URL to events of the user's resources

        Raises:
            ValidationError: If the URL or any event name is invalid
        """
        if not is_valid_webhook_url(url):
            raise ValidationError("Invalid webhook URL")

        if not events:
            raise ValidationError("At least one event is required")

        invalid = [event for event in events if event not in WEBHOOK_EVENTS]
        if invalid:
            raise ValidationError(f"Invalid webhook event(s): {', '.join(invalid)}")

        subscription = await get_webhook_repository(db).create(
            user_id=user_id,
            api_key_id=api_key_id,
            url=url,
            events=list(dict.fromkeys(events)),
            secret=generate_webhook_secret(),
            description=description,
            is_active=True,
            failed_attempts=0,
            created_at=datetime.now(timezone.utc),
        )
        await db.commit()

        logger.info(f"Webhook {subscription.id} created for user {user_id}")

        info = WebhookInfo.model_validate(subscription)
        return WebhookCreated(**info.model_dump(), secret=subscription.secret)

    async def list_subscriptions(self, db: AsyncSession, user_id: str) -> List[WebhookInfo]:
        subscriptions = await get_webhook_repository(db).list_owned(user_id, limit=1000)
        return [WebhookInfo.model_validate(sub) for sub in subscriptions]

    async def delete_subscription(
        self, db: AsyncSession, user_id: str, subscription_id: str
    ) -> None:
        """
        Raises:
            NotFoundError: If the subscription does not exist or is not owned
        """
        repo = get_webhook_repository(db)
        subscription = await repo.get_owned(subscription_id, user_id)

        if not subscription:
            raise NotFoundError("Webhook subscription not found")

        await repo.delete(subscription)
        await db.commit()

        logger.info(f"Webhook {subscription_id} deleted by user {user_id}")

    async def deliver(
        self,
        client: httpx.AsyncClient,
        subscription: WebhookSubscription,
        event: str,
        data: Dict[str, Any],
    ) -> bool:
        """
        POST one signed event to a subscriber

        Returns:
            True on a 2xx answer, False on any other outcome
        """
        body = json.dumps(
            {
                "event": event,
                "data": data,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            default=str,
        ).encode("utf-8")

        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": sign_webhook_payload(body, subscription.secret),
            "X-Webhook-Event": event,
            "X-Webhook-ID": subscription.id,
            "User-Agent": USER_AGENT,
        }

        try:
            response = await client.post(subscription.url, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Webhook {subscription.id} delivery failed: {str(e)}")
            return False

        if response.is_success:
            logger.info(f"Webhook {subscription.id} delivered {event}")
            return True

        logger.warning(
            f"Webhook {subscription.id} answered {response.status_code} for {event}"
        )
        return False

    async def dispatch_event(
        self,
        user_id: str,
        event: str,
        data: Dict[str, Any],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> int:
        """
        Deliver an event to every active subscription of the user

        Runs as a background task after the response, so it opens its own
        session and never raises into the request that triggered it.

        Returns:
            Number of successful deliveries
        """
        delivered = 0

        try:
            async with get_session_factory()() as db:
                subscriptions = await get_webhook_repository(db).active_for_event(
                    user_id, event
                )
                if not subscriptions:
                    return 0

                async with httpx.AsyncClient(
                    timeout=config.WEBHOOK_TIMEOUT_SECONDS, transport=transport
                ) as client:
                    for subscription in subscriptions:
                        now = datetime.now(timezone.utc)
                        if await self.deliver(client, subscription, event, data):
                            subscription.failed_attempts = 0
                            subscription.last_success_at = now
                            delivered += 1
                        else:
                            subscription.failed_attempts += 1
                            subscription.last_failure_at = now

                await db.commit()
        except Exception as e:
            logger.error(
                f"Webhook dispatch of {event} for user {user_id} failed: {str(e)}",
                exc_info=True,
            )

        return delivered


# Singleton instance
webhook_service = WebhookService()
