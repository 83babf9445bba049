"""
Public API v1 - bookmarks, collections, tags and user profile

Every route here sits behind the API key gateway; handlers only declare
the scope they need and trust the AuthContext it produced.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.session import get_db
from src.db.users_repository import get_user_repository
from src.routes.docs.public_api_docs import guarded_responses
from src.schemas.bookmark_schemas import (
    BookmarkCreate,
    BookmarkOut,
    BookmarkUpdate,
    CollectionCreate,
    CollectionOut,
    CollectionUpdate,
    Pagination,
)
from src.services import webhook_service as webhooks
from src.services.bookmark_service import bookmark_service
from src.services.webhook_service import webhook_service
from src.utils import scopes
from src.utils.auth import AuthContext, scope_required
from src.utils.config import DEFAULT_RATE_LIMIT_PER_DAY, DEFAULT_RATE_LIMIT_PER_HOUR
from src.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

info_router = APIRouter()
router = APIRouter(responses=guarded_responses)


def _page(limit: int, offset: int, total: int) -> dict:
    return Pagination(
        limit=limit, offset=offset, total=total, has_more=total > offset + limit
    ).model_dump()


@info_router.get("")
@info_router.get("/", include_in_schema=False)
async def api_info():
    """Public description of the v1 API; no key required"""
    return {
        "name": "HitTags API",
        "version": "1.0.0",
        "description": "RESTful API for bookmark management",
        "endpoints": {
            "bookmarks": {
                "list": "GET /api/v1/bookmarks",
                "get": "GET /api/v1/bookmarks/:id",
                "create": "POST /api/v1/bookmarks",
                "update": "PUT /api/v1/bookmarks/:id",
                "delete": "DELETE /api/v1/bookmarks/:id",
            },
            "collections": {
                "list": "GET /api/v1/collections",
                "get": "GET /api/v1/collections/:id",
                "create": "POST /api/v1/collections",
                "update": "PUT /api/v1/collections/:id",
                "delete": "DELETE /api/v1/collections/:id",
            },
            "tags": {"list": "GET /api/v1/tags"},
            "user": {"profile": "GET /api/v1/user"},
        },
        "authentication": {
            "method": "API Key + Secret",
            "header": "Authorization: Bearer {api_key_id}:{secret}",
            "alternative_headers": {"api_key": "X-API-Key", "secret": "X-API-Secret"},
        },
        "rate_limits": {
            "window": "rolling",
            "default_hourly": DEFAULT_RATE_LIMIT_PER_HOUR,
            "default_daily": DEFAULT_RATE_LIMIT_PER_DAY,
            "headers": {
                "hourly_limit": "X-RateLimit-Limit-Hour",
                "hourly_remaining": "X-RateLimit-Remaining-Hour",
                "daily_limit": "X-RateLimit-Limit-Day",
                "daily_remaining": "X-RateLimit-Remaining-Day",
                "retry_after": "Retry-After",
            },
        },
        "scopes": scopes.API_SCOPES,
    }


# ── Bookmarks ───────────────────────────────────────────────


@router.get("/bookmarks")
async def list_bookmarks(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    collection_id: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
    context: AuthContext = Depends(scope_required(scopes.READ_BOOKMARKS)),
    db: AsyncSession = Depends(get_db),
):
    limit = bookmark_service.clamp_limit(limit)
    bookmarks, total = await bookmark_service.list_bookmarks(
        db,
        context.user_id,
        limit=limit,
        offset=offset,
        collection_id=collection_id,
        tag=tag,
        search=search,
    )
    return {
        "data": [BookmarkOut.model_validate(b) for b in bookmarks],
        "pagination": _page(limit, offset, total),
    }


@router.post("/bookmarks", status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    request: BookmarkCreate,
    background_tasks: BackgroundTasks,
    context: AuthContext = Depends(scope_required(scopes.WRITE_BOOKMARKS)),
    db: AsyncSession = Depends(get_db),
):
    bookmark = await bookmark_service.create_bookmark(db, context.user_id, request)
    payload = BookmarkOut.model_validate(bookmark)

    background_tasks.add_task(
        webhook_service.dispatch_event,
        context.user_id,
        webhooks.BOOKMARK_CREATED,
        payload.model_dump(mode="json"),
    )
    return {"data": payload}


@router.get("/bookmarks/{bookmark_id}")
async def get_bookmark(
    bookmark_id: str,
    context: AuthContext = Depends(scope_required(scopes.READ_BOOKMARKS)),
    db: AsyncSession = Depends(get_db),
):
    bookmark = await bookmark_service.get_bookmark(db, context.user_id, bookmark_id)
    return {"data": BookmarkOut.model_validate(bookmark)}


@router.put("/bookmarks/{bookmark_id}")
async def update_bookmark(
    bookmark_id: str,
    request: BookmarkUpdate,
    background_tasks: BackgroundTasks,
    context: AuthContext = Depends(scope_required(scopes.WRITE_BOOKMARKS)),
    db: AsyncSession = Depends(get_db),
):
    bookmark = await bookmark_service.update_bookmark(
        db, context.user_id, bookmark_id, request
    )
    payload = BookmarkOut.model_validate(bookmark)

    background_tasks.add_task(
        webhook_service.dispatch_event,
        context.user_id,
        webhooks.BOOKMARK_UPDATED,
        payload.model_dump(mode="json"),
    )
    return {"data": payload}


@router.delete("/bookmarks/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: str,
    background_tasks: BackgroundTasks,
    context: AuthContext = Depends(scope_required(scopes.DELETE_BOOKMARKS)),
    db: AsyncSession = Depends(get_db),
):
    await bookmark_service.delete_bookmark(db, context.user_id, bookmark_id)

    background_tasks.add_task(
        webhook_service.dispatch_event,
        context.user_id,
        webhooks.BOOKMARK_DELETED,
        {"id": bookmark_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Collections ─────────────────────────────────────────────


@router.get("/collections")
async def list_collections(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    context: AuthContext = Depends(scope_required(scopes.READ_COLLECTIONS)),
    db: AsyncSession = Depends(get_db),
):
    limit = bookmark_service.clamp_limit(limit)
    collections, total = await bookmark_service.list_collections(
        db, context.user_id, limit=limit, offset=offset
    )
    return {
        "data": [CollectionOut.model_validate(c) for c in collections],
        "pagination": _page(limit, offset, total),
    }


@router.post("/collections", status_code=status.HTTP_201_CREATED)
async def create_collection(
    request: CollectionCreate,
    background_tasks: BackgroundTasks,
    context: AuthContext = Depends(scope_required(scopes.WRITE_COLLECTIONS)),
    db: AsyncSession = Depends(get_db),
):
    collection = await bookmark_service.create_collection(db, context.user_id, request)
    payload = CollectionOut.model_validate(collection)

    background_tasks.add_task(
        webhook_service.dispatch_event,
        context.user_id,
        webhooks.COLLECTION_CREATED,
        payload.model_dump(mode="json"),
    )
    return {"data": payload}


@router.get("/collections/{collection_id}")
async def get_collection(
    collection_id: str,
    context: AuthContext = Depends(scope_required(scopes.READ_COLLECTIONS)),
    db: AsyncSession = Depends(get_db),
):
    collection = await bookmark_service.get_collection(db, context.user_id, collection_id)
    return {"data": CollectionOut.model_validate(collection)}


@router.put("/collections/{collection_id}")
async def update_collection(
    collection_id: str,
    request: CollectionUpdate,
    background_tasks: BackgroundTasks,
    context: AuthContext = Depends(scope_required(scopes.WRITE_COLLECTIONS)),
    db: AsyncSession = Depends(get_db),
):
    collection = await bookmark_service.update_collection(
        db, context.user_id, collection_id, request
    )
    payload = CollectionOut.model_validate(collection)

    background_tasks.add_task(
        webhook_service.dispatch_event,
        context.user_id,
        webhooks.COLLECTION_UPDATED,
        payload.model_dump(mode="json"),
    )
    return {"data": payload}


@router.delete("/collections/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(
    collection_id: str,
    background_tasks: BackgroundTasks,
    context: AuthContext = Depends(scope_required(scopes.DELETE_COLLECTIONS)),
    db: AsyncSession = Depends(get_db),
):
    await bookmark_service.delete_collection(db, context.user_id, collection_id)

    background_tasks.add_task(
        webhook_service.dispatch_event,
        context.user_id,
        webhooks.COLLECTION_DELETED,
        {"id": collection_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Tags & user ─────────────────────────────────────────────


@router.get("/tags")
async def list_tags(
    context: AuthContext = Depends(scope_required(scopes.READ_TAGS)),
    db: AsyncSession = Depends(get_db),
):
    tags = await bookmark_service.list_tags(db, context.user_id)
    return {"data": tags}


@router.get("/user")
async def get_user_profile(
    context: AuthContext = Depends(scope_required(scopes.READ_USER)),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_repository(db).get_by_id(context.user_id)
    if not user:
        raise NotFoundError("User not found")

    return {
        "data": {
            "id": user.id,
            "email": user.email,
            "username": user.username,
            "name": user.name,
            "created_at": user.created_at,
        }
    }
