"""
Trainer settings repository for database operations.
"""

from typing import Optional, List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from trainerhub.db.repositories.base_repository import BaseRepository
from trainerhub.models.trainer_settings import TrainerSettings


class TrainerSettingsRepository(BaseRepository[TrainerSettings]):
    """Repository for trainer settings operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(TrainerSettings, session)

    async def get_by_trainer_id(self, trainer_id: UUID) -> Optional[TrainerSettings]:
        """Get settings for a trainer."""
        result = await self.session.execute(
            select(TrainerSettings).where(TrainerSettings.trainer_id == trainer_id)
        )
        return result.scalar_one_or_none()

    async def list_auto_invoicing(self) -> List[TrainerSettings]:
        """All trainers with automatic invoicing switched on."""
        result = await self.session.execute(
            select(TrainerSettings).where(TrainerSettings.auto_invoicing_enabled == True)
        )
        return list(result.scalars().all())
