"""
Repository Pattern for Database Operations
Provides clean data access layer
"""

from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository with common CRUD operations"""

    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    async def get_by_id(self, id: str) -> Optional[T]:
        """Get record by ID"""
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_owned(self, id: str, user_id: str) -> Optional[T]:
        """Get record by ID, only if it belongs to user_id"""
        result = await self.db.execute(
            select(self.model).where(
                self.model.id == id, self.model.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def list_owned(
        self, user_id: str, limit: int = 100, offset: int = 0
    ) -> List[T]:
        """Records owned by user_id, newest first"""
        result = await self.db.execute(
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def count_owned(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(self.model.id)).where(self.model.user_id == user_id)
        )
        return result.scalar() or 0

    async def create(self, **kwargs) -> T:
        """Create new record"""
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.flush()
        return instance

    async def update(self, instance: T, **kwargs) -> T:
        """Update existing record"""
        for key, value in kwargs.items():
            setattr(instance, key, value)
        await self.db.flush()
        return instance

    async def delete(self, instance: T) -> None:
        """Delete record"""
        await self.db.delete(instance)
        await self.db.flush()
