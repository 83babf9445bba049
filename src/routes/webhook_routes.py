"""
Webhook Subscription Management Routes (dashboard session required)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_db
from src.models.user_model import User
from src.schemas.webhook_schemas import WebhookCreate
from src.services.webhook_service import WEBHOOK_EVENTS, webhook_service
from src.utils.auth import get_current_user
from src.utils.exceptions import NotFoundError, ValidationError
from src.utils.responses import error_response, exception_response, success_response

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def list_webhooks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's webhook subscriptions and the events they can subscribe to"""
    try:
        webhooks = await webhook_service.list_subscriptions(db, current_user.id)
        return success_response(
            status_code=status.HTTP_200_OK,
            message="Webhooks retrieved successfully",
            data={
                "webhooks": webhooks,
                "count": len(webhooks),
                "available_events": sorted(WEBHOOK_EVENTS),
            },
        )
    except Exception as e:
        logger.error(
            f"Failed to list webhooks for user {current_user.id}: {str(e)}",
            exc_info=True,
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to retrieve webhooks",
        )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_webhook(
    request: WebhookCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Subscribe a URL to resource events

    Deliveries are POSTed as JSON and signed with HMAC-SHA256 in the
    `X-Webhook-Signature` header; the signing secret is only shown here.
    """
    try:
        result = await webhook_service.create_subscription(
            db,
            current_user.id,
            url=request.url,
            events=request.events,
            description=request.description,
        )
        return success_response(
            status_code=status.HTTP_201_CREATED,
            message="Webhook created successfully",
            data=result,
        )
    except ValidationError as e:
        logger.warning(f"Webhook creation rejected for user {current_user.id}: {e.message}")
        return exception_response(e)
    except Exception as e:
        logger.error(
            f"Failed to create webhook for user {current_user.id}: {str(e)}",
            exc_info=True,
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to create webhook. Please try again",
        )


@router.delete("/{webhook_id}")
async def delete_webhook(
    webhook_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await webhook_service.delete_subscription(db, current_user.id, webhook_id)
        return success_response(
            status_code=status.HTTP_200_OK,
            message="Webhook deleted successfully",
            data={"id": webhook_id},
        )
    except NotFoundError as e:
        return exception_response(e)
    except Exception as e:
        logger.error(
            f"Failed to delete webhook {webhook_id}: {str(e)}", exc_info=True
        )
        return error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Failed to delete webhook",
        )
