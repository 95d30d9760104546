"""
Invoice Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from uuid import UUID
from decimal import Decimal

from trainerhub.models.invoice import InvoiceStatus
from trainerhub.models.client_profile import BillingMode


class InvoiceLineItemResponse(BaseModel):
    """Line item; credit lines carry a negative total."""
    id: UUID
    appointment_id: Optional[UUID] = None
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    row_order: int

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""
    id: UUID
    workspace_id: UUID
    trainer_id: UUID
    client_id: UUID
    amount: Decimal
    status: InvoiceStatus
    due_date: date
    paid_at: Optional[datetime] = None
    is_prepaid_top_up: bool = False
    notes: Optional[str] = None
    billing_period_start: Optional[date] = None
    billing_period_end: Optional[date] = None
    created_at: datetime
    line_items: List[InvoiceLineItemResponse] = []

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    """Schema for invoice list response."""
    items: List[InvoiceResponse]
    total: int


class InvoiceStatusUpdate(BaseModel):
    """Schema for changing an invoice's status."""
    status: InvoiceStatus


class VoidAndSwitchRequest(BaseModel):
    """Cancel an invoice and move the client to another billing mode."""
    new_billing_mode: BillingMode


class VoidAndSwitchResponse(BaseModel):
    success: bool
    invoice_id: UUID
    credit_amount: Decimal = Decimal("0.00")
    new_billing_mode: Optional[BillingMode] = None
    error: Optional[str] = None


class MonthlyPreviewItem(BaseModel):
    """Projected monthly invoice for one client."""
    client_id: UUID
    client_name: Optional[str] = None
    session_count: int
    subtotal: Decimal
    applicable_credit: Decimal
    projected_total: Decimal
    remaining_scheduled_sessions: int


class MonthlyPreviewResponse(BaseModel):
    period_start: date
    period_end: date
    items: List[MonthlyPreviewItem]
    total_projected: Decimal
