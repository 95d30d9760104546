"""
Appointment Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from trainerhub.models.appointment import AppointmentStatus
from trainerhub.services.billing_results import InvoicingOutcome


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""
    id: UUID
    trainer_id: UUID
    client_id: UUID
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    is_group_session: bool

    class Config:
        from_attributes = True


class AppointmentCompletionResponse(BaseModel):
    """Appointment marked completed and what billing did with it."""
    appointment: AppointmentResponse
    billing_outcome: InvoicingOutcome
    invoice_id: Optional[UUID] = None
    new_balance: Optional[Decimal] = None
    top_up_invoice_id: Optional[UUID] = None
    reason: Optional[str] = None
