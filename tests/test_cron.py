"""
Cron endpoint tests.
"""

from datetime import datetime, time, timedelta, timezone
import uuid

import pytest

from trainerhub.models import AppointmentStatus, BillingMode, Invoice, InvoiceStatus
from trainerhub.services import billing_rules
from trainerhub.services.per_session_invoicing_service import PerSessionInvoicingService


@pytest.mark.asyncio
async def test_cron_requires_secret(test_client):
    response = await test_client.post("/api/v1/cron/mark-overdue")
    assert response.status_code == 401

    response = await test_client.post(
        "/api/v1/cron/mark-overdue", headers={"Authorization": "Bearer not-the-secret"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_trainer_token_is_not_a_cron_secret(test_client, auth_headers):
    response = await test_client.post("/api/v1/cron/mark-overdue", headers=auth_headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_complete_appointments_bills_ended_sessions(
    test_db_session, test_client, cron_headers, make_client, make_appointment
):
    profile = await make_client()
    appointment = await make_appointment(profile.user_id, status=AppointmentStatus.SCHEDULED)

    response = await test_client.post("/api/v1/cron/complete-appointments", headers=cron_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["job"] == "complete-appointments"
    assert data["processed"] == 1
    assert data["succeeded"] == 1
    assert data["failures"] == []
    assert len(data["invoice_ids"]) == 1

    await test_db_session.refresh(appointment)
    assert appointment.status == AppointmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_complete_appointments_ignores_future_sessions(
    test_client, cron_headers, make_client, make_appointment
):
    profile = await make_client()
    tomorrow = datetime.now(timezone.utc) + timedelta(days=1)
    await make_appointment(profile.user_id, start_time=tomorrow, status=AppointmentStatus.SCHEDULED)

    response = await test_client.post("/api/v1/cron/complete-appointments", headers=cron_headers)

    assert response.status_code == 200
    assert response.json()["processed"] == 0


@pytest.mark.asyncio
async def test_generate_invoices_for_todays_invoice_day(
    test_db_session, test_client, cron_headers, make_client, make_appointment
):
    today = billing_rules.utc_today()
    period_start, _ = billing_rules.previous_month_period(today)
    profile = await make_client(billing_mode=BillingMode.MONTHLY, monthly_invoice_day=today.day)
    await make_appointment(
        profile.user_id, start_time=datetime.combine(period_start, time(10, 0), tzinfo=timezone.utc)
    )

    first = await test_client.post("/api/v1/cron/generate-invoices", headers=cron_headers)
    second = await test_client.post("/api/v1/cron/generate-invoices", headers=cron_headers)

    assert first.status_code == 200
    assert first.json()["succeeded"] == 1
    assert len(first.json()["invoice_ids"]) == 1
    assert second.status_code == 200
    assert second.json()["invoice_ids"] == []

    invoice = await test_db_session.get(Invoice, uuid.UUID(first.json()["invoice_ids"][0]))
    assert invoice.client_id == profile.user_id
    assert invoice.billing_period_start == period_start


@pytest.mark.asyncio
async def test_mark_overdue(test_db_session, test_client, cron_headers, make_client, make_appointment):
    profile = await make_client()
    appointment = await make_appointment(profile.user_id)
    # Issued 31 days ago with 30 due days: due yesterday
    result = await PerSessionInvoicingService(test_db_session).invoice_completed_appointment(
        appointment.id, today=billing_rules.utc_today() - timedelta(days=31)
    )
    invoice = result.invoice
    assert invoice.status == InvoiceStatus.SENT

    response = await test_client.post("/api/v1/cron/mark-overdue", headers=cron_headers)

    assert response.status_code == 200
    assert response.json()["job"] == "mark-overdue"
    assert response.json()["succeeded"] == 1
    await test_db_session.refresh(invoice)
    assert invoice.status == InvoiceStatus.OVERDUE
