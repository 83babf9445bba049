"""
Repository Pattern for Database Operations
Provides clean data access layer
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.base_repository import BaseRepository
from src.models.user_model import User


class UserRepository(BaseRepository[User]):
    """Repository for User operations"""


def get_user_repository(db: AsyncSession) -> UserRepository:
    """Get UserRepository instance"""
    return UserRepository(User, db)
