"""
User repository for database operations.
"""

from typing import Optional, List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from trainerhub.db.repositories.base_repository import BaseRepository
from trainerhub.models.user import User


class UserRepository(BaseRepository[User]):
    """Repository for user operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_in_workspace(self, user_id: UUID, workspace_id: UUID) -> Optional[User]:
        """Get a user only if it belongs to the workspace."""
        result = await self.session.execute(
            select(User).where(User.id == user_id, User.workspace_id == workspace_id)
        )
        return result.scalar_one_or_none()

    async def list_by_ids(self, user_ids: List[UUID]) -> List[User]:
        """Fetch several users at once."""
        if not user_ids:
            return []
        result = await self.session.execute(
            select(User).where(User.id.in_(user_ids)).order_by(User.full_name)
        )
        return list(result.scalars().all())
