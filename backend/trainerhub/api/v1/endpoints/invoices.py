"""
Invoice API endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from trainerhub.api.v1.middleware import require_authentication
from trainerhub.controllers.invoice_controller import InvoiceController
from trainerhub.core.context import BillingContext
from trainerhub.db.session import get_db
from trainerhub.models.invoice import InvoiceStatus
from trainerhub.schemas.invoice import (
    InvoiceResponse,
    InvoiceListResponse,
    InvoiceStatusUpdate,
    MonthlyPreviewResponse,
    VoidAndSwitchRequest,
    VoidAndSwitchResponse,
)

router = APIRouter()


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    client_id: Optional[UUID] = Query(None),
    status: Optional[InvoiceStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> InvoiceListResponse:
    """List the trainer's invoices with optional filters."""
    controller = InvoiceController(db)
    return await controller.list_invoices(context, client_id=client_id, status=status, skip=skip, limit=limit)


@router.get("/monthly-preview", response_model=MonthlyPreviewResponse)
async def monthly_preview(
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> MonthlyPreviewResponse:
    """Projected invoices for MONTHLY clients in the current month."""
    controller = InvoiceController(db)
    return await controller.monthly_preview(context)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: UUID,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> InvoiceResponse:
    """Get invoice by ID."""
    controller = InvoiceController(db)
    return await controller.get_invoice(context, invoice_id)


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_id: UUID,
    status_data: InvoiceStatusUpdate,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> InvoiceResponse:
    """Change an invoice's status."""
    controller = InvoiceController(db)
    return await controller.update_status(context, invoice_id, status_data.status)


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: UUID,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> InvoiceResponse:
    """Mark a draft invoice as sent."""
    controller = InvoiceController(db)
    return await controller.send_invoice(context, invoice_id)


@router.post("/{invoice_id}/void-and-switch", response_model=VoidAndSwitchResponse)
async def void_and_switch(
    invoice_id: UUID,
    request_data: VoidAndSwitchRequest,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
):
    """
    Cancel an invoice and move the client to another billing mode.
    A rejected request still returns the structured result, with the error's status code.
    """
    controller = InvoiceController(db)
    result = await controller.void_and_switch(context, invoice_id, request_data.new_billing_mode)
    response = controller.to_void_response(result)
    if not result.success:
        return JSONResponse(status_code=result.status_code or 400, content=response.model_dump(mode="json"))
    return response
