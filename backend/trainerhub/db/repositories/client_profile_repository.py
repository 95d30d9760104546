"""
Client profile repository for database operations.
"""

from typing import Optional, List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from trainerhub.db.repositories.base_repository import BaseRepository
from trainerhub.models.client_profile import ClientProfile, BillingMode


class ClientProfileRepository(BaseRepository[ClientProfile]):
    """Repository for client profile operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ClientProfile, session)

    async def get_by_user_id(self, user_id: UUID) -> Optional[ClientProfile]:
        """Get the billing profile of a client user."""
        result = await self.session.execute(
            select(ClientProfile).where(ClientProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_by_billing_mode(
        self,
        workspace_id: UUID,
        billing_mode: BillingMode,
        auto_invoice_only: bool = False,
    ) -> List[ClientProfile]:
        """List profiles in a workspace on the given billing mode."""
        query = select(ClientProfile).where(
            ClientProfile.workspace_id == workspace_id,
            ClientProfile.billing_mode == billing_mode,
        )
        if auto_invoice_only:
            query = query.where(ClientProfile.auto_invoice_enabled == True)
        result = await self.session.execute(query)
        return list(result.scalars().all())
