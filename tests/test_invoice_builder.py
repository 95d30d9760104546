"""
Invoice builder tests. No database needed.
"""

from datetime import datetime, timezone
from decimal import Decimal
import uuid

import pytest

from trainerhub.models.appointment import Appointment
from trainerhub.services.invoice_builder import (
    CREDIT_LINE_DESCRIPTION,
    InvoiceDraft,
    LineItemDraft,
    build_session_line_item,
    session_description,
)


def _appointment(is_group_session=False):
    return Appointment(
        id=uuid.uuid4(),
        start_time=datetime(2025, 3, 5, 10, 0, tzinfo=timezone.utc),
        end_time=datetime(2025, 3, 5, 11, 0, tzinfo=timezone.utc),
        is_group_session=is_group_session,
    )


def test_session_description():
    assert session_description(_appointment()) == "Training session on Mar 5, 2025"
    assert session_description(_appointment(is_group_session=True)) == "Group training session on Mar 5, 2025"


def test_build_session_line_item_links_appointment():
    appointment = _appointment()
    item = build_session_line_item(appointment, Decimal("100"))

    assert item.total == Decimal("100.00")
    assert item.unit_price == Decimal("100.00")
    assert item.quantity == 1
    assert item.appointment_id == appointment.id


def test_credit_line_is_negative_and_reduces_amount():
    draft = InvoiceDraft().add_session(_appointment(), Decimal("150.00"))
    draft.apply_credit(Decimal("40.00"))

    assert [item.total for item in draft.line_items] == [Decimal("150.00"), Decimal("-40.00")]
    assert draft.line_items[1].description == CREDIT_LINE_DESCRIPTION
    assert draft.line_items[1].appointment_id is None
    assert draft.amount == Decimal("110.00")
    assert draft.subtotal == Decimal("150.00")
    assert draft.credit_applied == Decimal("40.00")
    assert draft.finalize() == Decimal("110.00")


def test_zero_credit_appends_nothing():
    draft = InvoiceDraft().add_session(_appointment(), Decimal("100.00"))
    draft.apply_credit(Decimal("0"))

    assert len(draft.line_items) == 1
    assert draft.finalize() == Decimal("100.00")


def test_full_credit_finalizes_to_zero():
    draft = InvoiceDraft().add_session(_appointment(), Decimal("100.00"))
    draft.apply_credit(Decimal("100.00"))

    assert draft.finalize() == Decimal("0.00")


def test_credit_above_amount_is_rejected():
    draft = InvoiceDraft().add_session(_appointment(), Decimal("100.00"))

    with pytest.raises(ValueError):
        draft.apply_credit(Decimal("100.01"))


def test_negative_charge_is_rejected():
    with pytest.raises(ValueError):
        InvoiceDraft().add_line_item(
            LineItemDraft(description="Refund", total=Decimal("-1.00"), unit_price=Decimal("-1.00"))
        )


def test_to_models_keeps_order_and_sum():
    draft = InvoiceDraft()
    draft.add_session(_appointment(), Decimal("100.00"))
    draft.add_session(_appointment(), Decimal("100.00"))
    draft.apply_credit(Decimal("75.00"))

    items = draft.to_models()

    assert [item.row_order for item in items] == [0, 1, 2]
    assert sum(item.total for item in items) == draft.finalize() == Decimal("125.00")
