"""
Repository Pattern for Bookmarks and Collections
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.base_repository import BaseRepository
from src.models.bookmark_model import Bookmark, Collection


class BookmarkRepository(BaseRepository[Bookmark]):
    """Repository for Bookmark operations"""

    async def search(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        collection_id: Optional[str] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Bookmark], int]:
        """Filtered page of a user's bookmarks and the total match count"""
        query = select(Bookmark).where(Bookmark.user_id == user_id)

        if collection_id:
            query = query.where(Bookmark.collection_id == collection_id)

        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Bookmark.title.ilike(pattern), Bookmark.description.ilike(pattern))
            )

        query = query.order_by(Bookmark.created_at.desc())

        if tag:
            # JSON containment differs per backend; filter tags in Python
            result = await self.db.execute(query)
            matches = [b for b in result.scalars().all() if tag in (b.tags or [])]
            return matches[offset : offset + limit], len(matches)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all()), total

    async def detach_collection(self, collection_id: str) -> int:
        """Clear collection_id on every bookmark filed under the collection"""
        result = await self.db.execute(
            update(Bookmark)
            .where(Bookmark.collection_id == collection_id)
            .values(collection_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def created_since(
        self, user_id: str, since: datetime, limit: int = 100
    ) -> List[Bookmark]:
        result = await self.db.execute(
            select(Bookmark)
            .where(Bookmark.user_id == user_id, Bookmark.created_at >= since)
            .order_by(Bookmark.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def tag_counts(self, user_id: str) -> List[Tuple[str, int]]:
        """Distinct tags across a user's bookmarks, most used first"""
        result = await self.db.execute(
            select(Bookmark.tags).where(Bookmark.user_id == user_id)
        )

        counts = {}
        for tags in result.scalars().all():
            for tag in tags or []:
                counts[tag] = counts.get(tag, 0) + 1

        return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


class CollectionRepository(BaseRepository[Collection]):
    """Repository for Collection operations"""


def get_bookmark_repository(db: AsyncSession) -> BookmarkRepository:
    """Get BookmarkRepository instance"""
    return BookmarkRepository(Bookmark, db)


def get_collection_repository(db: AsyncSession) -> CollectionRepository:
    """Get CollectionRepository instance"""
    return CollectionRepository(Collection, db)
