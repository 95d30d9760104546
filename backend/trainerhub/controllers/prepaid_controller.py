"""
Prepaid controller.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.controllers.base_controller import BaseController
from trainerhub.core.context import BillingContext
from trainerhub.services.prepaid_service import PrepaidService
from trainerhub.schemas.invoice import InvoiceResponse
from trainerhub.schemas.prepaid import (
    PrepaidCreditCreate,
    PrepaidCreditResponse,
    PrepaidDetailsResponse,
    PrepaidSummaryResponse,
    PrepaidTransactionListResponse,
    ReconciliationResponse,
)


class PrepaidController(BaseController):
    """Controller for prepaid balance operations."""

    def __init__(self, session: AsyncSession):
        self.prepaid_service = PrepaidService(session)

    async def get_summary(self, context: BillingContext) -> PrepaidSummaryResponse:
        return await self.prepaid_service.get_prepaid_clients_summary(context)

    async def get_details(self, context: BillingContext, client_id: UUID) -> PrepaidDetailsResponse:
        return await self.prepaid_service.get_client_prepaid_details(context, client_id)

    async def add_credit(
        self,
        context: BillingContext,
        client_id: UUID,
        credit_data: PrepaidCreditCreate,
    ) -> PrepaidCreditResponse:
        """Add prepaid credit to a client."""
        return await self.prepaid_service.add_credit(
            context, client_id, credit_data.amount, credit_data.notes
        )

    async def list_transactions(
        self,
        context: BillingContext,
        client_id: UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> PrepaidTransactionListResponse:
        """List ledger transactions, newest first."""
        transactions, total = await self.prepaid_service.get_transactions(context, client_id, skip, limit)
        return PrepaidTransactionListResponse(items=transactions, total=total)

    async def create_top_up_invoice(self, context: BillingContext, client_id: UUID) -> Optional[InvoiceResponse]:
        invoice = await self.prepaid_service.request_top_up_invoice(context, client_id)
        if invoice is None:
            return None
        return InvoiceResponse.model_validate(invoice)

    async def reconcile(self, context: BillingContext, client_id: UUID) -> ReconciliationResponse:
        return await self.prepaid_service.reconcile(context, client_id)
