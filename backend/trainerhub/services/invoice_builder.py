"""
Invoice builder.
Assembles session charges and prepaid credit into line items whose totals
sum to the invoice amount. No database access happens here.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from trainerhub.models.appointment import Appointment
from trainerhub.models.invoice import InvoiceLineItem
from trainerhub.utils.money import ZERO, to_money, sum_money, non_negative

CREDIT_LINE_DESCRIPTION = "Prepaid credit applied"


@dataclass
class LineItemDraft:
    """A line item before it is persisted."""
    description: str
    total: Decimal
    unit_price: Decimal
    quantity: int = 1
    appointment_id: Optional[UUID] = None

    @property
    def is_credit(self) -> bool:
        return self.total < ZERO


def session_description(appointment: Appointment) -> str:
    """e.g. "Group training session on Mar 5, 2025"."""
    session_type = "Group training session" if appointment.is_group_session else "Training session"
    start = appointment.start_time
    return f"{session_type} on {start:%b} {start.day}, {start.year}"


def build_session_line_item(appointment: Appointment, rate: Decimal) -> LineItemDraft:
    """One session billed at the given (individual or group) rate."""
    rate = to_money(rate)
    return LineItemDraft(
        description=session_description(appointment),
        total=rate,
        unit_price=rate,
        appointment_id=appointment.id,
    )


class InvoiceDraft:
    """Invoice in progress: charges first, then at most one credit line."""

    def __init__(self):
        self.line_items: List[LineItemDraft] = []

    @property
    def amount(self) -> Decimal:
        """Running amount: sum of every line so far."""
        return sum_money(item.total for item in self.line_items)

    @property
    def subtotal(self) -> Decimal:
        """Charges before any credit."""
        return sum_money(item.total for item in self.line_items if not item.is_credit)

    @property
    def credit_applied(self) -> Decimal:
        return -sum_money(item.total for item in self.line_items if item.is_credit)

    def add_line_item(self, item: LineItemDraft) -> "InvoiceDraft":
        if item.total < ZERO:
            raise ValueError("Charges must not be negative; use apply_credit for credit lines")
        self.line_items.append(item)
        return self

    def add_session(self, appointment: Appointment, rate: Decimal) -> "InvoiceDraft":
        return self.add_line_item(build_session_line_item(appointment, rate))

    def apply_credit(self, credit_amount: Decimal) -> "InvoiceDraft":
        """
        Append a negative credit line and reduce the running amount.
        Nothing is appended for a zero credit; credit above the running amount
        is rejected so the invoice never goes negative.
        """
        credit_amount = to_money(credit_amount)
        if credit_amount < ZERO:
            raise ValueError("Credit amount must not be negative")
        if credit_amount == ZERO:
            return self
        if credit_amount > self.amount:
            raise ValueError(
                f"Credit {credit_amount} exceeds invoice amount {self.amount}"
            )
        self.line_items.append(
            LineItemDraft(
                description=CREDIT_LINE_DESCRIPTION,
                total=-credit_amount,
                unit_price=-credit_amount,
            )
        )
        return self

    def finalize(self) -> Decimal:
        """Invoice amount: the line item sum, never below zero."""
        return non_negative(self.amount)

    def to_models(self) -> List[InvoiceLineItem]:
        return [
            InvoiceLineItem(
                appointment_id=item.appointment_id,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                row_order=index,
            )
            for index, item in enumerate(self.line_items)
        ]
