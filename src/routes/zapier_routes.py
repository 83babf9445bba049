"""
Zapier integration - polling trigger, REST hook subscriptions and actions
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_db
from src.routes.docs.public_api_docs import guarded_responses
from src.schemas.bookmark_schemas import BookmarkCreate, BookmarkOut
from src.schemas.webhook_schemas import ZapierHookSubscribe
from src.services import webhook_service as webhooks
from src.services.bookmark_service import bookmark_service
from src.services.webhook_service import webhook_service
from src.utils import scopes
from src.utils.auth import AuthContext, scope_required
from src.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)
router = APIRouter(responses=guarded_responses)


def _zapier_bookmark(bookmark) -> dict:
    # Zapier deduplicates polled items on "id"
    data = BookmarkOut.model_validate(bookmark).model_dump(mode="json")
    data["tags_text"] = ", ".join(data["tags"])
    return data


@router.get("/triggers/new-bookmark")
async def poll_new_bookmarks(
    since: Optional[datetime] = None,
    limit: int = Query(100, ge=1),
    context: AuthContext = Depends(scope_required(scopes.READ_BOOKMARKS)),
    db: AsyncSession = Depends(get_db),
):
    """
    Polling trigger: bookmarks created since ``since`` (default: the last
    24 hours), newest first, as a bare JSON array
    """
    bookmarks = await bookmark_service.bookmarks_since(
        db, context.user_id, since=since, limit=limit
    )
    return [_zapier_bookmark(b) for b in bookmarks]


@router.post("/triggers/new-bookmark", status_code=status.HTTP_201_CREATED)
async def subscribe_new_bookmark(
    request: ZapierHookSubscribe,
    context: AuthContext = Depends(scope_required(scopes.ADMIN_WEBHOOKS)),
    db: AsyncSession = Depends(get_db),
):
    """REST hook subscribe: Zapier posts its target_url here"""
    if not request.target_url:
        raise ValidationError("target_url is required")

    created = await webhook_service.create_subscription(
        db,
        context.user_id,
        url=request.target_url,
        events=[webhooks.BOOKMARK_CREATED],
        description="Zapier: New Bookmark",
        api_key_id=context.api_key.id,
    )

    logger.info(f"Zapier hook {created.id} subscribed by key {context.api_key.id}")
    return {"id": created.id, "message": "Webhook subscribed successfully"}


@router.delete("/triggers/new-bookmark", status_code=status.HTTP_204_NO_CONTENT)
async def unsubscribe_new_bookmark(
    id: Optional[str] = None,
    context: AuthContext = Depends(scope_required(scopes.ADMIN_WEBHOOKS)),
    db: AsyncSession = Depends(get_db),
):
    """REST hook unsubscribe: Zapier passes the id returned on subscribe"""
    if not id:
        raise ValidationError("Webhook id is required")

    await webhook_service.delete_subscription(db, context.user_id, id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/actions/create-bookmark", status_code=status.HTTP_201_CREATED)
async def action_create_bookmark(
    request: BookmarkCreate,
    background_tasks: BackgroundTasks,
    context: AuthContext = Depends(scope_required(scopes.WRITE_BOOKMARKS)),
    db: AsyncSession = Depends(get_db),
):
    """Action: create a bookmark from a Zap step"""
    bookmark = await bookmark_service.create_bookmark(db, context.user_id, request)
    data = _zapier_bookmark(bookmark)

    background_tasks.add_task(
        webhook_service.dispatch_event,
        context.user_id,
        webhooks.BOOKMARK_CREATED,
        BookmarkOut.model_validate(bookmark).model_dump(mode="json"),
    )
    return data
