"""
Billing API tests: authentication, invoices, prepaid and appointment completion.
"""

import uuid

import pytest

from trainerhub.core.security import create_access_token
from trainerhub.models import AppointmentStatus, BillingMode
from trainerhub.services.per_session_invoicing_service import PerSessionInvoicingService


async def _invoice(session, make_client, make_appointment, **client_fields):
    profile = await make_client(**client_fields)
    appointment = await make_appointment(profile.user_id)
    result = await PerSessionInvoicingService(session).invoice_completed_appointment(appointment.id)
    return profile, result.invoice


@pytest.mark.asyncio
async def test_billing_routes_require_token(test_client):
    response = await test_client.get("/api/v1/invoices")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(test_client):
    response = await test_client.get("/api/v1/invoices", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_client_role_cannot_manage_billing(test_client, workspace, make_client):
    profile = await make_client()
    token = create_access_token({"sub": str(profile.user_id), "workspace_id": str(workspace.id)})

    response = await test_client.get("/api/v1/invoices", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_and_get_invoice(test_db_session, test_client, auth_headers, make_client, make_appointment):
    profile, invoice = await _invoice(test_db_session, make_client, make_appointment, prepaid_balance="40.00")

    listing = await test_client.get("/api/v1/invoices", headers=auth_headers)
    detail = await test_client.get(f"/api/v1/invoices/{invoice.id}", headers=auth_headers)

    assert listing.status_code == 200
    assert listing.json()["total"] == 1
    assert listing.json()["items"][0]["id"] == str(invoice.id)
    assert detail.status_code == 200
    body = detail.json()
    assert body["amount"] == "60.00"
    assert body["client_id"] == str(profile.user_id)
    assert [item["total"] for item in body["line_items"]] == ["100.00", "-40.00"]


@pytest.mark.asyncio
async def test_get_unknown_invoice(test_client, auth_headers):
    response = await test_client.get(f"/api/v1/invoices/{uuid.uuid4()}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Invoice not found"


@pytest.mark.asyncio
async def test_update_status_and_reject_invalid_transition(
    test_db_session, test_client, auth_headers, make_client, make_appointment
):
    _, invoice = await _invoice(test_db_session, make_client, make_appointment)

    paid = await test_client.patch(
        f"/api/v1/invoices/{invoice.id}/status", json={"status": "PAID"}, headers=auth_headers
    )
    reopened = await test_client.patch(
        f"/api/v1/invoices/{invoice.id}/status", json={"status": "SENT"}, headers=auth_headers
    )

    assert paid.status_code == 200
    assert paid.json()["status"] == "PAID"
    assert paid.json()["paid_at"] is not None
    assert reopened.status_code == 400


@pytest.mark.asyncio
async def test_void_and_switch(test_db_session, test_client, auth_headers, make_client, make_appointment):
    profile, invoice = await _invoice(test_db_session, make_client, make_appointment)

    response = await test_client.post(
        f"/api/v1/invoices/{invoice.id}/void-and-switch",
        json={"new_billing_mode": "MONTHLY"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["new_billing_mode"] == "MONTHLY"
    await test_db_session.refresh(profile)
    assert profile.billing_mode == BillingMode.MONTHLY


@pytest.mark.asyncio
async def test_void_and_switch_failure_returns_structured_body(
    test_db_session, test_client, auth_headers, make_client, make_appointment
):
    _, invoice = await _invoice(test_db_session, make_client, make_appointment)
    # The rejected request rolls the shared session back and expires the invoice
    invoice_id = invoice.id

    response = await test_client.post(
        f"/api/v1/invoices/{invoice_id}/void-and-switch",
        json={"new_billing_mode": "PREPAID"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["invoice_id"] == str(invoice_id)
    assert body["error"]


@pytest.mark.asyncio
async def test_prepaid_credit_flow(test_client, auth_headers, make_client):
    profile = await make_client(prepaid_target_balance="500.00")
    base = f"/api/v1/prepaid/{profile.user_id}"

    created = await test_client.post(base, json={"amount": "200.00", "notes": "Package"}, headers=auth_headers)
    details = await test_client.get(base, headers=auth_headers)
    transactions = await test_client.get(f"{base}/transactions", headers=auth_headers)
    reconcile = await test_client.get(f"{base}/reconcile", headers=auth_headers)
    summary = await test_client.get("/api/v1/prepaid", headers=auth_headers)

    assert created.status_code == 201
    assert created.json()["billing_mode"] == "PREPAID"
    assert created.json()["new_balance"] == "200.00"
    assert details.status_code == 200
    assert details.json()["balance"] == "200.00"
    assert details.json()["status"] == "healthy"
    assert transactions.json()["total"] == 1
    assert transactions.json()["items"][0]["description"] == "Package"
    assert reconcile.json()["is_consistent"] is True
    assert summary.json()["client_count"] == 1


@pytest.mark.asyncio
async def test_prepaid_credit_validation(test_client, auth_headers, make_client):
    profile = await make_client()

    response = await test_client.post(
        f"/api/v1/prepaid/{profile.user_id}", json={"amount": "-5.00"}, headers=auth_headers
    )

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["message"] == "Validation error"
    assert error["details"][0]["loc"][-1] == "amount"
    assert error["details"][0]["ctx"]["gt"] == 0


@pytest.mark.asyncio
async def test_prepaid_unknown_client(test_client, auth_headers):
    response = await test_client.get(f"/api/v1/prepaid/{uuid.uuid4()}", headers=auth_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_top_up_invoice_endpoint(test_client, auth_headers, make_client):
    low = await make_client(
        billing_mode=BillingMode.PREPAID, prepaid_balance="100.00", prepaid_target_balance="400.00"
    )
    full = await make_client(
        billing_mode=BillingMode.PREPAID, prepaid_balance="400.00", prepaid_target_balance="400.00"
    )

    issued = await test_client.post(f"/api/v1/prepaid/{low.user_id}/top-up-invoice", headers=auth_headers)
    not_needed = await test_client.post(f"/api/v1/prepaid/{full.user_id}/top-up-invoice", headers=auth_headers)

    assert issued.status_code == 200
    assert issued.json()["is_prepaid_top_up"] is True
    assert issued.json()["amount"] == "300.00"
    assert not_needed.status_code == 204


@pytest.mark.asyncio
async def test_complete_appointment_endpoint(test_client, auth_headers, make_client, make_appointment):
    profile = await make_client(billing_mode=BillingMode.PREPAID, prepaid_balance="250.00")
    appointment = await make_appointment(profile.user_id, status=AppointmentStatus.SCHEDULED)

    response = await test_client.post(f"/api/v1/appointments/{appointment.id}/complete", headers=auth_headers)
    again = await test_client.post(f"/api/v1/appointments/{appointment.id}/complete", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["appointment"]["status"] == "COMPLETED"
    assert body["billing_outcome"] == "PREPAID_DEDUCTED"
    assert body["new_balance"] == "150.00"
    assert body["invoice_id"] is None
    assert again.status_code == 200
    assert again.json()["billing_outcome"] == "ALREADY_INVOICED"


@pytest.mark.asyncio
async def test_complete_cancelled_appointment_is_rejected(test_client, auth_headers, make_client, make_appointment):
    profile = await make_client()
    appointment = await make_appointment(profile.user_id, status=AppointmentStatus.CANCELLED)

    response = await test_client.post(f"/api/v1/appointments/{appointment.id}/complete", headers=auth_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_monthly_preview_endpoint(test_client, auth_headers, make_client):
    await make_client(billing_mode=BillingMode.MONTHLY, full_name="Monthly Morgan")

    response = await test_client.get("/api/v1/invoices/monthly-preview", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["period_start"] <= body["period_end"]
    assert isinstance(body["items"], list)
