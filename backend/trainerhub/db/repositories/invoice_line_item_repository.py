"""
Invoice line item repository for database operations.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from trainerhub.db.repositories.base_repository import BaseRepository
from trainerhub.models.invoice import InvoiceLineItem


class InvoiceLineItemRepository(BaseRepository[InvoiceLineItem]):
    """Repository for invoice line item operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(InvoiceLineItem, session)

    async def get_by_appointment(self, appointment_id: UUID) -> Optional[InvoiceLineItem]:
        """Line item that already bills an appointment, on any invoice."""
        result = await self.session.execute(
            select(InvoiceLineItem).where(InvoiceLineItem.appointment_id == appointment_id)
        )
        return result.scalar_one_or_none()
