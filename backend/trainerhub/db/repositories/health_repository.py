"""
Health repository.
Database connectivity and scheduler backlog checks.
"""

from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, text
from sqlalchemy.exc import SQLAlchemyError

from trainerhub.models.appointment import Appointment, AppointmentStatus


class HealthRepository:
    """Repository for health check operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check_database(self) -> bool:
        """
        Check database connectivity.

        Returns:
            True if database is accessible, False otherwise
        """
        try:
            result = await self.session.execute(text("SELECT 1"))
            return result.scalar() == 1
        except SQLAlchemyError:
            return False

    async def count_unbilled_backlog(self, ended_before: datetime) -> int:
        """Open appointments that ended before the cutoff and were never completed by the scheduler."""
        result = await self.session.execute(
            select(func.count(Appointment.id)).where(
                Appointment.status.in_((AppointmentStatus.SCHEDULED, AppointmentStatus.RESCHEDULED)),
                Appointment.end_time < ended_before,
            )
        )
        return result.scalar() or 0
