"""
Appointment API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from trainerhub.api.v1.middleware import require_authentication
from trainerhub.controllers.appointment_controller import AppointmentController
from trainerhub.core.context import BillingContext
from trainerhub.db.session import get_db
from trainerhub.schemas.appointment import AppointmentCompletionResponse

router = APIRouter()


@router.post("/{appointment_id}/complete", response_model=AppointmentCompletionResponse)
async def complete_appointment(
    appointment_id: UUID,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> AppointmentCompletionResponse:
    """Mark an appointment completed and bill it."""
    controller = AppointmentController(db)
    return await controller.complete_appointment(context, appointment_id)
