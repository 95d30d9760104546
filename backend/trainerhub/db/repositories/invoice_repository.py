"""
Invoice repository for database operations.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from trainerhub.db.repositories.base_repository import BaseRepository
from trainerhub.models.invoice import Invoice, InvoiceStatus

OUTSTANDING_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)
PENDING_STATUSES = (InvoiceStatus.DRAFT, InvoiceStatus.SENT)


class InvoiceRepository(BaseRepository[Invoice]):
    """Repository for invoice operations. Line items load with the invoice."""

    def __init__(self, session: AsyncSession):
        super().__init__(Invoice, session)

    def _filtered_query(self, query, workspace_id: UUID, trainer_id: Optional[UUID], client_id: Optional[UUID], status: Optional[InvoiceStatus]):
        query = query.where(Invoice.workspace_id == workspace_id)
        if trainer_id:
            query = query.where(Invoice.trainer_id == trainer_id)
        if client_id:
            query = query.where(Invoice.client_id == client_id)
        if status:
            query = query.where(Invoice.status == status)
        return query

    async def list_for_workspace(
        self,
        workspace_id: UUID,
        trainer_id: Optional[UUID] = None,
        client_id: Optional[UUID] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """List invoices with filters, newest first."""
        query = self._filtered_query(select(Invoice), workspace_id, trainer_id, client_id, status)
        query = query.order_by(Invoice.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_for_workspace(
        self,
        workspace_id: UUID,
        trainer_id: Optional[UUID] = None,
        client_id: Optional[UUID] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> int:
        """Count invoices matching filters."""
        query = self._filtered_query(select(func.count(Invoice.id)), workspace_id, trainer_id, client_id, status)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_pending_top_up(self, client_id: UUID) -> Optional[Invoice]:
        """Unpaid (DRAFT or SENT) prepaid top-up invoice for a client."""
        result = await self.session.execute(
            select(Invoice)
            .where(
                Invoice.client_id == client_id,
                Invoice.is_prepaid_top_up == True,
                Invoice.status.in_(PENDING_STATUSES),
            )
            .order_by(Invoice.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def outstanding_total(self, client_id: UUID) -> Decimal:
        """Amount a client still owes; cancelled and paid invoices do not count."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Invoice.amount), 0))
            .where(
                Invoice.client_id == client_id,
                Invoice.status.in_(OUTSTANDING_STATUSES),
            )
        )
        return Decimal(str(result.scalar() or 0))

    async def list_past_due(self, today: date) -> List[Invoice]:
        """SENT invoices whose due date has passed."""
        result = await self.session.execute(
            select(Invoice).where(
                Invoice.status == InvoiceStatus.SENT,
                Invoice.due_date < today,
            )
        )
        return list(result.scalars().all())
