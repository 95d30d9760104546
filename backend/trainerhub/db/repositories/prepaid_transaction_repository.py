"""
Prepaid transaction repository.
Append-only: there is no update or delete path for ledger rows.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from trainerhub.db.repositories.base_repository import BaseRepository
from trainerhub.models.prepaid_transaction import PrepaidTransaction, PrepaidTransactionType


class PrepaidTransactionRepository(BaseRepository[PrepaidTransaction]):
    """Repository for prepaid ledger rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(PrepaidTransaction, session)

    async def list_by_profile(
        self,
        client_profile_id: UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> List[PrepaidTransaction]:
        """List a client's transactions, newest first."""
        query = (
            select(PrepaidTransaction)
            .where(PrepaidTransaction.client_profile_id == client_profile_id)
            .order_by(PrepaidTransaction.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_profile(self, client_profile_id: UUID) -> int:
        """Count a client's transactions."""
        result = await self.session.execute(
            select(func.count(PrepaidTransaction.id))
            .where(PrepaidTransaction.client_profile_id == client_profile_id)
        )
        return result.scalar() or 0

    async def get_latest(
        self,
        client_profile_id: UUID,
        type: Optional[PrepaidTransactionType] = None,
    ) -> Optional[PrepaidTransaction]:
        """Most recent transaction, optionally of one type."""
        query = select(PrepaidTransaction).where(
            PrepaidTransaction.client_profile_id == client_profile_id
        )
        if type is not None:
            query = query.where(PrepaidTransaction.type == type)
        query = query.order_by(PrepaidTransaction.created_at.desc()).limit(1)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def count_deductions_since(
        self,
        client_profile_id: UUID,
        since: Optional[datetime] = None,
    ) -> int:
        """Count deductions after a point in time (all deductions when since is None)."""
        query = select(func.count(PrepaidTransaction.id)).where(
            PrepaidTransaction.client_profile_id == client_profile_id,
            PrepaidTransaction.type == PrepaidTransactionType.DEDUCTION,
        )
        if since is not None:
            query = query.where(PrepaidTransaction.created_at > since)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def get_deduction_for_appointment(self, appointment_id: UUID) -> Optional[PrepaidTransaction]:
        """Session deduction already recorded for an appointment, if any."""
        result = await self.session.execute(
            select(PrepaidTransaction).where(
                PrepaidTransaction.appointment_id == appointment_id,
                PrepaidTransaction.type == PrepaidTransactionType.DEDUCTION,
            )
        )
        return result.scalar_one_or_none()

    async def totals_by_type(self, client_profile_id: UUID) -> Dict[PrepaidTransactionType, Decimal]:
        """Sum of amounts per transaction type."""
        result = await self.session.execute(
            select(PrepaidTransaction.type, func.sum(PrepaidTransaction.amount))
            .where(PrepaidTransaction.client_profile_id == client_profile_id)
            .group_by(PrepaidTransaction.type)
        )
        totals = {t: Decimal("0") for t in PrepaidTransactionType}
        for tx_type, total in result.all():
            totals[PrepaidTransactionType(tx_type)] = Decimal(str(total or 0))
        return totals
