"""
Prepaid balance Pydantic schemas for request/response validation.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal
import enum

from trainerhub.models.client_profile import BillingMode
from trainerhub.models.prepaid_transaction import PrepaidTransactionType


class PrepaidBalanceStatus(str, enum.Enum):
    """Dashboard classification of a prepaid balance."""
    HEALTHY = "healthy"
    LOW = "low"
    EMPTY = "empty"


class PrepaidTransactionResponse(BaseModel):
    """Schema for a ledger row."""
    id: UUID
    type: PrepaidTransactionType
    amount: Decimal
    balance_after: Decimal
    description: str
    appointment_id: Optional[UUID] = None
    invoice_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PrepaidTransactionListResponse(BaseModel):
    items: List[PrepaidTransactionResponse]
    total: int


class PrepaidCreditCreate(BaseModel):
    """Schema for a trainer adding prepaid credit."""
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=500)


class PrepaidCreditResponse(BaseModel):
    client_id: UUID
    billing_mode: BillingMode
    new_balance: Decimal


class PrepaidClientSummary(BaseModel):
    """One row of the prepaid dashboard."""
    client_id: UUID
    client_name: Optional[str] = None
    balance: Decimal
    target_balance: Optional[Decimal] = None
    status: PrepaidBalanceStatus
    sessions_since_last_credit: int
    last_transaction_at: Optional[datetime] = None


class PrepaidSummaryResponse(BaseModel):
    clients: List[PrepaidClientSummary]
    client_count: int
    total_balance: Decimal
    low_balance_count: int
    empty_balance_count: int


class PrepaidDetailsResponse(BaseModel):
    """Prepaid position of a single client."""
    client_id: UUID
    client_name: Optional[str] = None
    billing_mode: BillingMode
    balance: Decimal
    target_balance: Optional[Decimal] = None
    status: PrepaidBalanceStatus
    outstanding_amount: Decimal
    sessions_since_last_credit: int
    last_transaction_at: Optional[datetime] = None
    pending_top_up_invoice_id: Optional[UUID] = None


class ReconciliationResponse(BaseModel):
    """Stored balance compared with the transaction log."""
    client_id: UUID
    stored_balance: Decimal
    last_balance_after: Optional[Decimal] = None
    replayed_balance: Decimal
    total_credits: Decimal
    total_deductions: Decimal
    transaction_count: int
    drift: Decimal
    is_consistent: bool
