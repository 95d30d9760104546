"""
Appointment controller.
"""

from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.controllers.base_controller import BaseController
from trainerhub.core.context import BillingContext
from trainerhub.services.appointment_service import AppointmentService
from trainerhub.schemas.appointment import AppointmentCompletionResponse, AppointmentResponse


class AppointmentController(BaseController):
    """Controller for appointment completion."""

    def __init__(self, session: AsyncSession):
        self.appointment_service = AppointmentService(session)

    async def complete_appointment(self, context: BillingContext, appointment_id: UUID) -> AppointmentCompletionResponse:
        """Complete an appointment and report the billing outcome."""
        appointment, result = await self.appointment_service.complete_appointment(context, appointment_id)
        return AppointmentCompletionResponse(
            appointment=AppointmentResponse.model_validate(appointment),
            billing_outcome=result.outcome,
            invoice_id=result.invoice_id,
            new_balance=result.new_balance,
            top_up_invoice_id=result.top_up_invoice_id,
            reason=result.reason,
        )
