"""
Appointment repository for database operations.
"""

from datetime import datetime
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from trainerhub.db.repositories.base_repository import BaseRepository
from trainerhub.models.appointment import Appointment, AppointmentStatus
from trainerhub.models.invoice import InvoiceLineItem


class AppointmentRepository(BaseRepository[Appointment]):
    """Repository for appointment operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Appointment, session)

    async def list_completed_uninvoiced(
        self,
        client_id: UUID,
        trainer_id: UUID,
        period_start: datetime,
        period_end: datetime,
    ) -> List[Appointment]:
        """
        Completed appointments in [period_start, period_end) that no invoice
        line item references yet, oldest first.
        """
        invoiced = select(InvoiceLineItem.appointment_id).where(
            InvoiceLineItem.appointment_id.is_not(None)
        )
        query = (
            select(Appointment)
            .where(
                Appointment.client_id == client_id,
                Appointment.trainer_id == trainer_id,
                Appointment.status == AppointmentStatus.COMPLETED,
                Appointment.start_time >= period_start,
                Appointment.start_time < period_end,
                Appointment.id.not_in(invoiced),
            )
            .order_by(Appointment.start_time)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_ended_open(self, now: datetime) -> List[Appointment]:
        """SCHEDULED or RESCHEDULED appointments whose end time has passed."""
        result = await self.session.execute(
            select(Appointment)
            .where(
                Appointment.status.in_((AppointmentStatus.SCHEDULED, AppointmentStatus.RESCHEDULED)),
                Appointment.end_time < now,
            )
            .order_by(Appointment.end_time)
        )
        return list(result.scalars().all())

    async def count_scheduled_between(
        self,
        client_id: UUID,
        trainer_id: UUID,
        start: datetime,
        end: datetime,
    ) -> int:
        """Count still-scheduled sessions starting in [start, end)."""
        result = await self.session.execute(
            select(func.count(Appointment.id)).where(
                Appointment.client_id == client_id,
                Appointment.trainer_id == trainer_id,
                Appointment.status == AppointmentStatus.SCHEDULED,
                Appointment.start_time >= start,
                Appointment.start_time < end,
            )
        )
        return result.scalar() or 0
