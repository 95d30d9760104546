"""
Appointment service: completion events that feed the per-session invoicing policy.
"""

from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.core.context import BillingContext
from trainerhub.core.exceptions import AppointmentNotFound, InvalidAppointmentTransition, Unauthorized
from trainerhub.services.base_service import BaseService
from trainerhub.services.billing_results import BatchResult, InvoicingResult
from trainerhub.services.per_session_invoicing_service import PerSessionInvoicingService
from trainerhub.db.repositories.appointment_repository import AppointmentRepository
from trainerhub.models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

COMPLETABLE_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.RESCHEDULED)


class AppointmentService(BaseService):
    """Service for appointment completion."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.appointment_repo = AppointmentRepository(session)
        self.invoicing = PerSessionInvoicingService(session)

    async def _mark_completed(self, appointment_id: UUID) -> bool:
        """Flip an open appointment to COMPLETED. False when it was already completed."""
        async with self.unit_of_work():
            appointment = await self.appointment_repo.get_for_update(appointment_id)
            if not appointment:
                raise AppointmentNotFound("Appointment not found", details={"appointment_id": str(appointment_id)})
            if appointment.status == AppointmentStatus.COMPLETED:
                return False
            if appointment.status not in COMPLETABLE_STATUSES:
                raise InvalidAppointmentTransition(
                    f"Cannot complete a {appointment.status.value.lower()} appointment",
                    details={"appointment_id": str(appointment_id)},
                )
            appointment.status = AppointmentStatus.COMPLETED
        logger.info("Appointment completed", extra={"appointment_id": str(appointment_id)})
        return True

    async def complete_appointment(
        self,
        context: BillingContext,
        appointment_id: UUID,
    ) -> Tuple[Appointment, InvoicingResult]:
        """
        Mark an appointment completed and run per-session invoicing for it.
        Completing an already completed appointment re-runs the idempotent policy.
        """
        appointment = await self.appointment_repo.get(appointment_id)
        if not appointment or appointment.workspace_id != context.workspace_id:
            raise AppointmentNotFound("Appointment not found", details={"appointment_id": str(appointment_id)})
        if appointment.trainer_id != context.actor_id:
            raise Unauthorized(
                "Appointment does not belong to this trainer",
                details={"appointment_id": str(appointment_id)},
            )

        await self._mark_completed(appointment_id)
        result = await self.invoicing.invoice_completed_appointment(appointment_id)
        appointment = await self.appointment_repo.get(appointment_id)
        return appointment, result

    async def complete_past_appointments(self, now: Optional[datetime] = None) -> BatchResult:
        """Cron entry point: close appointments whose end time has passed, then bill each one."""
        now = now or datetime.now(timezone.utc)
        batch = BatchResult()
        appointment_ids = [a.id for a in await self.appointment_repo.list_ended_open(now)]

        for appointment_id in appointment_ids:
            try:
                await self._mark_completed(appointment_id)
                result = await self.invoicing.invoice_completed_appointment(appointment_id, today=now.date())
            except Exception as exc:
                await self.session.rollback()
                logger.exception(
                    "Failed to complete appointment",
                    extra={"appointment_id": str(appointment_id)},
                )
                batch.record_failure(appointment_id, exc)
                continue
            batch.record(result)

        logger.info(
            "Past appointments completed",
            extra={"processed": batch.processed, "invoices": len(batch.invoice_ids), "failures": len(batch.failures)},
        )
        return batch
