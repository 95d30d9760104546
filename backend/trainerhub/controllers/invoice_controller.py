"""
Invoice controller.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.controllers.base_controller import BaseController
from trainerhub.core.context import BillingContext
from trainerhub.models.client_profile import BillingMode
from trainerhub.models.invoice import InvoiceStatus
from trainerhub.services.invoice_service import InvoiceService
from trainerhub.services.void_and_switch_service import VoidAndSwitchService, VoidAndSwitchResult
from trainerhub.schemas.invoice import (
    InvoiceResponse,
    InvoiceListResponse,
    MonthlyPreviewResponse,
    VoidAndSwitchResponse,
)


class InvoiceController(BaseController):
    """Controller for invoice operations."""

    def __init__(self, session: AsyncSession):
        self.invoice_service = InvoiceService(session)
        self.void_and_switch_service = VoidAndSwitchService(session)

    async def get_invoice(self, context: BillingContext, invoice_id: UUID) -> InvoiceResponse:
        """Get invoice by ID."""
        return await self.invoice_service.get_invoice(context, invoice_id)

    async def list_invoices(
        self,
        context: BillingContext,
        client_id: Optional[UUID] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> InvoiceListResponse:
        """List invoices with optional filters."""
        invoices, total = await self.invoice_service.list_invoices(
            context,
            client_id=client_id,
            status=status,
            skip=skip,
            limit=limit,
        )
        return InvoiceListResponse(items=invoices, total=total)

    async def update_status(self, context: BillingContext, invoice_id: UUID, status: InvoiceStatus) -> InvoiceResponse:
        return await self.invoice_service.update_status(context, invoice_id, status)

    async def send_invoice(self, context: BillingContext, invoice_id: UUID) -> InvoiceResponse:
        return await self.invoice_service.send_invoice(context, invoice_id)

    async def void_and_switch(
        self,
        context: BillingContext,
        invoice_id: UUID,
        new_billing_mode: BillingMode,
    ) -> VoidAndSwitchResult:
        """Returns the raw result so the endpoint can map failures to a status code."""
        return await self.void_and_switch_service.void_invoice_and_switch_billing(
            context, invoice_id, new_billing_mode
        )

    @staticmethod
    def to_void_response(result: VoidAndSwitchResult) -> VoidAndSwitchResponse:
        return VoidAndSwitchResponse(
            success=result.success,
            invoice_id=result.invoice_id,
            credit_amount=result.credit_amount,
            new_billing_mode=result.new_billing_mode,
            error=result.error,
        )

    async def monthly_preview(self, context: BillingContext) -> MonthlyPreviewResponse:
        return await self.invoice_service.monthly_preview(context)
