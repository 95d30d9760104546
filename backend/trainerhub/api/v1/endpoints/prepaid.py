"""
Prepaid balance API endpoints.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from trainerhub.api.v1.middleware import require_authentication
from trainerhub.controllers.prepaid_controller import PrepaidController
from trainerhub.core.context import BillingContext
from trainerhub.db.session import get_db
from trainerhub.schemas.invoice import InvoiceResponse
from trainerhub.schemas.prepaid import (
    PrepaidCreditCreate,
    PrepaidCreditResponse,
    PrepaidDetailsResponse,
    PrepaidSummaryResponse,
    PrepaidTransactionListResponse,
    ReconciliationResponse,
)

router = APIRouter()


@router.get("", response_model=PrepaidSummaryResponse)
async def get_prepaid_summary(
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> PrepaidSummaryResponse:
    """Dashboard of every prepaid client in the workspace."""
    controller = PrepaidController(db)
    return await controller.get_summary(context)


@router.get("/{client_id}", response_model=PrepaidDetailsResponse)
async def get_prepaid_details(
    client_id: UUID,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> PrepaidDetailsResponse:
    controller = PrepaidController(db)
    return await controller.get_details(context, client_id)


@router.post("/{client_id}", response_model=PrepaidCreditResponse, status_code=status.HTTP_201_CREATED)
async def add_prepaid_credit(
    client_id: UUID,
    credit_data: PrepaidCreditCreate,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> PrepaidCreditResponse:
    """Add prepaid credit; the client is moved to prepaid billing."""
    controller = PrepaidController(db)
    return await controller.add_credit(context, client_id, credit_data)


@router.get("/{client_id}/transactions", response_model=PrepaidTransactionListResponse)
async def list_prepaid_transactions(
    client_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> PrepaidTransactionListResponse:
    """Ledger history, newest first."""
    controller = PrepaidController(db)
    return await controller.list_transactions(context, client_id, skip=skip, limit=limit)


@router.post("/{client_id}/top-up-invoice", response_model=InvoiceResponse)
async def create_top_up_invoice(
    client_id: UUID,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
):
    """Issue (or return the pending) top-up invoice. 204 when the balance is already at target."""
    controller = PrepaidController(db)
    invoice = await controller.create_top_up_invoice(context, client_id)
    if invoice is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return invoice


@router.get("/{client_id}/reconcile", response_model=ReconciliationResponse)
async def reconcile_prepaid_balance(
    client_id: UUID,
    context: BillingContext = Depends(require_authentication),
    db: AsyncSession = Depends(get_db),
) -> ReconciliationResponse:
    """Compare the stored balance with the transaction log."""
    controller = PrepaidController(db)
    return await controller.reconcile(context, client_id)
