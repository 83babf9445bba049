"""
Bookmark Service - Business Logic for Bookmarks, Collections and Tags

Every query is filtered by the owning user id taken from the request's
AuthContext.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.bookmarks_repository import (
    get_bookmark_repository,
    get_collection_repository,
)
from src.models.bookmark_model import Bookmark, Collection
from src.schemas.bookmark_schemas import (
    BookmarkCreate,
    BookmarkUpdate,
    CollectionCreate,
    CollectionUpdate,
)
from src.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class BookmarkService:
    """Service for bookmark and collection operations"""

    MAX_PAGE_SIZE = 100

    def clamp_limit(self, limit: int) -> int:
        return max(1, min(limit, self.MAX_PAGE_SIZE))

    async def list_bookmarks(
        self,
        db: AsyncSession,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        collection_id: Optional[str] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Bookmark], int]:
        return await get_bookmark_repository(db).search(
            user_id,
            limit=self.clamp_limit(limit),
            offset=max(0, offset),
            collection_id=collection_id,
            tag=tag,
            search=search,
        )

    async def get_bookmark(self, db: AsyncSession, user_id: str, bookmark_id: str) -> Bookmark:
        bookmark = await get_bookmark_repository(db).get_owned(bookmark_id, user_id)
        if not bookmark:
            raise NotFoundError("Bookmark not found")
        return bookmark

    async def create_bookmark(
        self, db: AsyncSession, user_id: str, data: BookmarkCreate
    ) -> Bookmark:
        """
        Raises:
            NotFoundError: If collection_id is not one of the user's collections
        """
        if data.collection_id:
            await self.get_collection(db, user_id, data.collection_id)

        now = datetime.now(timezone.utc)
        bookmark = await get_bookmark_repository(db).create(
            user_id=user_id,
            url=data.url,
            title=data.title,
            description=data.description,
            tags=list(dict.fromkeys(data.tags)),
            collection_id=data.collection_id,
            is_public=data.is_public,
            created_at=now,
            updated_at=now,
        )
        await db.commit()

        logger.info(f"Bookmark {bookmark.id} created for user {user_id}")
        return bookmark

    async def update_bookmark(
        self, db: AsyncSession, user_id: str, bookmark_id: str, data: BookmarkUpdate
    ) -> Bookmark:
        bookmark = await self.get_bookmark(db, user_id, bookmark_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("collection_id"):
            await self.get_collection(db, user_id, changes["collection_id"])

        if "tags" in changes and changes["tags"] is not None:
            changes["tags"] = list(dict.fromkeys(changes["tags"]))

        changes["updated_at"] = datetime.now(timezone.utc)
        await get_bookmark_repository(db).update(bookmark, **changes)
        await db.commit()

        return bookmark

    async def delete_bookmark(self, db: AsyncSession, user_id: str, bookmark_id: str) -> None:
        bookmark = await self.get_bookmark(db, user_id, bookmark_id)
        await get_bookmark_repository(db).delete(bookmark)
        await db.commit()

        logger.info(f"Bookmark {bookmark_id} deleted by user {user_id}")

    async def bookmarks_since(
        self,
        db: AsyncSession,
        user_id: str,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[Bookmark]:
        """Newest bookmarks created after ``since`` (default: last 24 hours)"""
        if since is None:
            since = datetime.now(timezone.utc) - timedelta(hours=24)
        elif since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        return await get_bookmark_repository(db).created_since(
            user_id, since, limit=self.clamp_limit(limit)
        )

    async def list_tags(self, db: AsyncSession, user_id: str) -> List[Dict[str, object]]:
        counts = await get_bookmark_repository(db).tag_counts(user_id)
        return [{"name": name, "count": count} for name, count in counts]

    async def list_collections(
        self, db: AsyncSession, user_id: str, limit: int = 50, offset: int = 0
    ) -> Tuple[List[Collection], int]:
        repo = get_collection_repository(db)
        collections = await repo.list_owned(
            user_id, limit=self.clamp_limit(limit), offset=max(0, offset)
        )
        total = await repo.count_owned(user_id)
        return collections, total

    async def get_collection(
        self, db: AsyncSession, user_id: str, collection_id: str
    ) -> Collection:
        collection = await get_collection_repository(db).get_owned(collection_id, user_id)
        if not collection:
            raise NotFoundError("Collection not found")
        return collection

    async def create_collection(
        self, db: AsyncSession, user_id: str, data: CollectionCreate
    ) -> Collection:
        now = datetime.now(timezone.utc)
        collection = await get_collection_repository(db).create(
            user_id=user_id,
            name=data.name,
            description=data.description,
            is_public=data.is_public,
            created_at=now,
            updated_at=now,
        )
        await db.commit()
        return collection

    async def update_collection(
        self, db: AsyncSession, user_id: str, collection_id: str, data: CollectionUpdate
    ) -> Collection:
        collection = await self.get_collection(db, user_id, collection_id)
        changes = data.model_dump(exclude_unset=True)
        changes["updated_at"] = datetime.now(timezone.utc)

        await get_collection_repository(db).update(collection, **changes)
        await db.commit()
        return collection

    async def delete_collection(
        self, db: AsyncSession, user_id: str, collection_id: str
    ) -> None:
        """Bookmarks in the collection are kept and detached from it"""
        collection = await self.get_collection(db, user_id, collection_id)

        detached = await get_bookmark_repository(db).detach_collection(collection_id)
        await get_collection_repository(db).delete(collection)
        await db.commit()

        logger.info(
            f"Collection {collection_id} deleted by user {user_id}, "
            f"{detached} bookmark(s) detached"
        )


bookmark_service = BookmarkService()
