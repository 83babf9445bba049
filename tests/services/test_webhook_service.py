import json

import httpx
import pytest
from sqlalchemy import select

from src.models.webhook_model import WebhookSubscription
from src.services.webhook_service import (
    BOOKMARK_CREATED,
    COLLECTION_DELETED,
    USER_AGENT,
    WebhookService,
)
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.security import verify_webhook_signature


class TestWebhookSubscriptions:
    """Subscription management - validation and ownership"""

    @pytest.fixture
    def webhook_service(self):
        return WebhookService()

    @pytest.mark.asyncio
    async def test_create_subscription_returns_secret(self, webhook_service, db, user):
        created = await webhook_service.create_subscription(
            db, user.id, url="https://hooks.example.com/in", events=[BOOKMARK_CREATED]
        )

        assert created.events == [BOOKMARK_CREATED]
        assert created.is_active is True
        assert len(created.secret) == 64

        listed = await webhook_service.list_subscriptions(db, user.id)
        assert [w.id for w in listed] == [created.id]
        assert "secret" not in listed[0].model_dump()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url,events,message",
        [
            ("ftp://example.com/hook", [BOOKMARK_CREATED], "Invalid webhook URL"),
            ("not a url", [BOOKMARK_CREATED], "Invalid webhook URL"),
            ("https://example.com/hook", [], "At least one event is required"),
            ("https://example.com/hook", ["bookmark.exploded"], "bookmark.exploded"),
        ],
    )
    async def test_create_subscription_validation(
        self, webhook_service, mock_db_session, url, events, message
    ):
        with pytest.raises(ValidationError, match=message):
            await webhook_service.create_subscription(
                mock_db_session, "user123", url=url, events=events
            )

        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_subscription_of_other_user(
        self, webhook_service, db, user, other_user
    ):
        created = await webhook_service.create_subscription(
            db, user.id, url="https://hooks.example.com/in", events=[BOOKMARK_CREATED]
        )

        with pytest.raises(NotFoundError, match="Webhook subscription not found"):
            await webhook_service.delete_subscription(db, other_user.id, created.id)

        await webhook_service.delete_subscription(db, user.id, created.id)
        assert await webhook_service.list_subscriptions(db, user.id) == []


class TestWebhookDelivery:
    """Signed delivery and failure bookkeeping"""

    @pytest.fixture
    def webhook_service(self):
        return WebhookService()

    @pytest.mark.asyncio
    async def test_dispatch_event_signs_payload(self, webhook_service, db, user):
        created = await webhook_service.create_subscription(
            db, user.id, url="https://hooks.example.com/in", events=[BOOKMARK_CREATED]
        )
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(200, json={"ok": True})

        delivered = await webhook_service.dispatch_event(
            user.id,
            BOOKMARK_CREATED,
            {"id": "bm_1", "url": "https://example.com"},
            transport=httpx.MockTransport(handler),
        )

        assert delivered == 1
        assert len(received) == 1

        request = received[0]
        body = request.content
        assert request.headers["X-Webhook-Event"] == BOOKMARK_CREATED
        assert request.headers["X-Webhook-ID"] == created.id
        assert request.headers["User-Agent"] == USER_AGENT
        assert verify_webhook_signature(
            body, request.headers["X-Webhook-Signature"], created.secret
        )

        payload = json.loads(body)
        assert payload["event"] == BOOKMARK_CREATED
        assert payload["data"]["id"] == "bm_1"
        assert "timestamp" in payload

    @pytest.mark.asyncio
    async def test_dispatch_event_skips_unsubscribed_events(self, webhook_service, db, user):
        await webhook_service.create_subscription(
            db, user.id, url="https://hooks.example.com/in", events=[BOOKMARK_CREATED]
        )

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no delivery expected")

        delivered = await webhook_service.dispatch_event(
            user.id, COLLECTION_DELETED, {"id": "col_1"}, transport=httpx.MockTransport(handler)
        )

        assert delivered == 0

    @pytest.mark.asyncio
    async def test_failed_delivery_is_counted(self, webhook_service, db, user):
        created = await webhook_service.create_subscription(
            db, user.id, url="https://hooks.example.com/in", events=[BOOKMARK_CREATED]
        )

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        assert (
            await webhook_service.dispatch_event(
                user.id, BOOKMARK_CREATED, {}, transport=httpx.MockTransport(handler)
            )
            == 0
        )
        assert (
            await webhook_service.dispatch_event(
                user.id, BOOKMARK_CREATED, {}, transport=httpx.MockTransport(unreachable)
            )
            == 0
        )

        db.expire_all()
        result = await db.execute(
            select(WebhookSubscription).where(WebhookSubscription.id == created.id)
        )
        subscription = result.scalar_one()
        assert subscription.failed_attempts == 2
        assert subscription.last_failure_at is not None
        assert subscription.last_success_at is None
