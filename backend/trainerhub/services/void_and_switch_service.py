"""
Void-and-switch workflow.

Cancels an unpaid invoice and moves the client to another billing mode in one
unit of work. Failures come back as a structured result so the caller can
render the reason instead of handling exceptions.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.core.config import settings
from trainerhub.core.context import BillingContext
from trainerhub.core.exceptions import (
    BillingError,
    ClientProfileNotFound,
    InvalidBillingTransition,
    InvalidInvoiceTransition,
    InvoiceNotFound,
    Unauthorized,
)
from trainerhub.services.base_service import BaseService
from trainerhub.services.prepaid_ledger_service import PrepaidLedgerService
from trainerhub.db.repositories.client_profile_repository import ClientProfileRepository
from trainerhub.db.repositories.invoice_repository import InvoiceRepository
from trainerhub.models.client_profile import BillingMode
from trainerhub.models.invoice import InvoiceStatus
from trainerhub.utils.money import ZERO, to_money

logger = logging.getLogger(__name__)

VOID_CREDIT_DESCRIPTION = "Credit from voided invoice"
RETAIN_BALANCE = "retain_balance"
CARRY_FORWARD_NET = "carry_forward_net"


@dataclass
class VoidAndSwitchResult:
    success: bool
    invoice_id: UUID
    credit_amount: Decimal = ZERO
    new_billing_mode: Optional[BillingMode] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    status_code: Optional[int] = None


class VoidAndSwitchService(BaseService):
    """Service for voiding an invoice while changing the client's billing mode."""

    def __init__(self, session: AsyncSession, credit_policy: Optional[str] = None):
        super().__init__(session)
        self.credit_policy = credit_policy or settings.VOID_CREDIT_POLICY
        self.ledger = PrepaidLedgerService(session)
        self.invoice_repo = InvoiceRepository(session)
        self.profile_repo = ClientProfileRepository(session)

    async def void_invoice_and_switch_billing(
        self,
        context: BillingContext,
        invoice_id: UUID,
        new_billing_mode: BillingMode,
    ) -> VoidAndSwitchResult:
        """
        Cancel the invoice, switch the client's billing mode and settle credit.

        Credit already applied to the invoice was consumed and is never
        returned. Under retain_balance the client's remaining prepaid balance
        is left as credit for future invoices; under carry_forward_net the
        invoice's net amount is credited to the ledger.
        """
        try:
            target_mode = self._parse_billing_mode(new_billing_mode)
            async with self.unit_of_work():
                result = await self._void_and_switch(context, invoice_id, target_mode)
        except BillingError as exc:
            logger.warning(
                "Void and switch rejected",
                extra={
                    "invoice_id": str(invoice_id),
                    "reason": exc.message,
                    "error_type": type(exc).__name__,
                },
            )
            return VoidAndSwitchResult(
                success=False,
                invoice_id=invoice_id,
                error=exc.message,
                error_type=type(exc).__name__,
                status_code=exc.status_code,
            )
        return result

    @staticmethod
    def _parse_billing_mode(value) -> BillingMode:
        try:
            return BillingMode(value)
        except ValueError:
            raise InvalidBillingTransition(
                f"Unknown billing mode: {value}",
                details={"new_billing_mode": str(value)},
            )

    async def _void_and_switch(
        self,
        context: BillingContext,
        invoice_id: UUID,
        new_billing_mode: BillingMode,
    ) -> VoidAndSwitchResult:
        invoice = await self.invoice_repo.get_for_update(invoice_id)
        if not invoice:
            raise InvoiceNotFound("Invoice not found", details={"invoice_id": str(invoice_id)})
        if invoice.workspace_id != context.workspace_id or invoice.trainer_id != context.actor_id:
            raise Unauthorized("Invoice does not belong to this trainer", details={"invoice_id": str(invoice_id)})
        if invoice.status == InvoiceStatus.PAID:
            raise InvalidInvoiceTransition("Cannot void a paid invoice", details={"invoice_id": str(invoice_id)})
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidInvoiceTransition("Invoice is already cancelled", details={"invoice_id": str(invoice_id)})

        profile = await self.profile_repo.get_by_user_id(invoice.client_id)
        if not profile:
            raise ClientProfileNotFound("Client profile not found", details={"client_id": str(invoice.client_id)})
        profile = await self.ledger.lock_profile(profile.id)

        if new_billing_mode == BillingMode.PREPAID:
            raise InvalidBillingTransition(
                "Switching to prepaid billing goes through a prepaid top-up",
                details={"new_billing_mode": new_billing_mode.value},
            )
        if new_billing_mode == profile.billing_mode:
            raise InvalidBillingTransition(
                f"Client is already on {new_billing_mode.value} billing",
                details={"new_billing_mode": new_billing_mode.value},
            )

        previous_mode = profile.billing_mode
        invoice.status = InvoiceStatus.CANCELLED
        profile.billing_mode = new_billing_mode

        if self.credit_policy == CARRY_FORWARD_NET:
            credit_amount = ZERO if invoice.is_prepaid_top_up else to_money(invoice.amount)
            if credit_amount > ZERO:
                await self.ledger.apply_credit(
                    profile.id,
                    credit_amount,
                    VOID_CREDIT_DESCRIPTION,
                    invoice_id=invoice.id,
                )
        else:
            credit_amount = to_money(profile.prepaid_balance)
        await self.session.flush()

        logger.info(
            "Invoice voided and billing mode switched",
            extra={
                "invoice_id": str(invoice.id),
                "client_id": str(invoice.client_id),
                "previous_mode": previous_mode.value,
                "new_billing_mode": new_billing_mode.value,
                "credit_amount": str(credit_amount),
                "credit_policy": self.credit_policy,
            },
        )
        return VoidAndSwitchResult(
            success=True,
            invoice_id=invoice.id,
            credit_amount=credit_amount,
            new_billing_mode=new_billing_mode,
        )
