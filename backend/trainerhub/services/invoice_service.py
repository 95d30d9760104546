"""
Invoice service with business logic.
Reads, status transitions, overdue marking and the monthly preview.
"""

from datetime import date, datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.core.context import BillingContext
from trainerhub.core.exceptions import InvalidInvoiceTransition, InvoiceNotFound, Unauthorized
from trainerhub.services.base_service import BaseService
from trainerhub.services.billing_results import BatchResult
from trainerhub.services.prepaid_ledger_service import PrepaidLedgerService, compute_applicable_credit
from trainerhub.services import billing_rules
from trainerhub.db.base import utcnow
from trainerhub.db.repositories.appointment_repository import AppointmentRepository
from trainerhub.db.repositories.client_profile_repository import ClientProfileRepository
from trainerhub.db.repositories.invoice_repository import InvoiceRepository
from trainerhub.db.repositories.trainer_settings_repository import TrainerSettingsRepository
from trainerhub.db.repositories.user_repository import UserRepository
from trainerhub.models.client_profile import BillingMode
from trainerhub.models.invoice import Invoice, InvoiceStatus
from trainerhub.schemas.invoice import InvoiceResponse, MonthlyPreviewItem, MonthlyPreviewResponse
from trainerhub.utils.money import ZERO, to_money, sum_money

logger = logging.getLogger(__name__)

TOP_UP_PAID_DESCRIPTION = "Prepaid balance replenishment - invoice paid"

ALLOWED_TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class InvoiceService(BaseService):
    """Service for invoice operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.ledger = PrepaidLedgerService(session)
        self.invoice_repo = InvoiceRepository(session)
        self.profile_repo = ClientProfileRepository(session)
        self.appointment_repo = AppointmentRepository(session)
        self.trainer_settings_repo = TrainerSettingsRepository(session)
        self.user_repo = UserRepository(session)

    def _check_owner(self, context: BillingContext, invoice: Optional[Invoice], invoice_id: UUID) -> Invoice:
        if not invoice or invoice.workspace_id != context.workspace_id:
            raise InvoiceNotFound("Invoice not found", details={"invoice_id": str(invoice_id)})
        if invoice.trainer_id != context.actor_id:
            raise Unauthorized("Invoice does not belong to this trainer", details={"invoice_id": str(invoice_id)})
        return invoice

    async def get_invoice(self, context: BillingContext, invoice_id: UUID) -> InvoiceResponse:
        """Get invoice by ID with its line items."""
        invoice = self._check_owner(context, await self.invoice_repo.get(invoice_id), invoice_id)
        return InvoiceResponse.model_validate(invoice)

    async def list_invoices(
        self,
        context: BillingContext,
        client_id: Optional[UUID] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[InvoiceResponse], int]:
        """List the trainer's invoices with optional filters."""
        invoices = await self.invoice_repo.list_for_workspace(
            context.workspace_id,
            trainer_id=context.actor_id,
            client_id=client_id,
            status=status,
            skip=skip,
            limit=limit,
        )
        total = await self.invoice_repo.count_for_workspace(
            context.workspace_id,
            trainer_id=context.actor_id,
            client_id=client_id,
            status=status,
        )
        return [InvoiceResponse.model_validate(invoice) for invoice in invoices], total

    async def update_status(
        self,
        context: BillingContext,
        invoice_id: UUID,
        new_status: InvoiceStatus,
    ) -> InvoiceResponse:
        """
        Move an invoice along its lifecycle.

        paid_at is stamped only on the transition to PAID. Paying a prepaid
        top-up invoice credits its amount to the client's balance in the same
        unit of work. Cancelling never returns credit that was applied.
        """
        async with self.unit_of_work():
            invoice = self._check_owner(context, await self.invoice_repo.get_for_update(invoice_id), invoice_id)
            current = invoice.status
            if not can_transition(current, new_status):
                raise InvalidInvoiceTransition(
                    f"Cannot change invoice status from {current.value} to {new_status.value}",
                    details={"invoice_id": str(invoice_id)},
                )

            invoice.status = new_status
            if new_status == InvoiceStatus.PAID:
                invoice.paid_at = utcnow()
                if invoice.is_prepaid_top_up and to_money(invoice.amount) > ZERO:
                    profile = await self.profile_repo.get_by_user_id(invoice.client_id)
                    if profile:
                        await self.ledger.apply_credit(
                            profile.id,
                            invoice.amount,
                            TOP_UP_PAID_DESCRIPTION,
                            invoice_id=invoice.id,
                        )
            await self.session.flush()

        logger.info(
            "Invoice status changed",
            extra={
                "invoice_id": str(invoice_id),
                "from_status": current.value,
                "to_status": new_status.value,
            },
        )
        return InvoiceResponse.model_validate(invoice)

    async def send_invoice(self, context: BillingContext, invoice_id: UUID) -> InvoiceResponse:
        """DRAFT -> SENT. Delivery itself belongs to the notification side."""
        return await self.update_status(context, invoice_id, InvoiceStatus.SENT)

    async def mark_overdue_invoices(self, today: Optional[date] = None) -> BatchResult:
        """Cron entry point: SENT invoices past their due date become OVERDUE."""
        today = today or billing_rules.utc_today()
        batch = BatchResult()
        invoice_ids = [invoice.id for invoice in await self.invoice_repo.list_past_due(today)]

        for invoice_id in invoice_ids:
            try:
                async with self.unit_of_work():
                    invoice = await self.invoice_repo.get_for_update(invoice_id)
                    if not invoice or invoice.status != InvoiceStatus.SENT:
                        batch.processed += 1
                        batch.skipped += 1
                        continue
                    invoice.status = InvoiceStatus.OVERDUE
            except Exception as exc:
                logger.exception("Failed to mark invoice overdue", extra={"invoice_id": str(invoice_id)})
                batch.record_failure(invoice_id, exc)
                continue
            batch.processed += 1
            batch.succeeded += 1

        logger.info(
            "Overdue invoices marked",
            extra={"date": today.isoformat(), "marked": batch.succeeded, "failures": len(batch.failures)},
        )
        return batch

    async def monthly_preview(self, context: BillingContext, today: Optional[date] = None) -> MonthlyPreviewResponse:
        """
        What the trainer's MONTHLY clients would be billed for the current
        month so far. Read only.
        """
        today = today or billing_rules.utc_today()
        period_start, period_end = billing_rules.current_month_period(today)
        start_dt, end_dt = billing_rules.period_bounds(period_start, period_end)
        remaining_from = datetime.now(timezone.utc)
        if remaining_from < start_dt:
            remaining_from = start_dt

        trainer_settings = await self.trainer_settings_repo.get_by_trainer_id(context.actor_id)
        profiles = await self.profile_repo.list_by_billing_mode(context.workspace_id, BillingMode.MONTHLY)
        users = await self.user_repo.list_by_ids([p.user_id for p in profiles])
        names = {user.id: user.full_name for user in users}

        items = []
        for profile in profiles:
            appointments = await self.appointment_repo.list_completed_uninvoiced(
                profile.user_id, context.actor_id, start_dt, end_dt
            )
            subtotal = sum_money(
                billing_rules.resolve_session_rate(profile, trainer_settings, a.is_group_session)
                for a in appointments
            )
            credit = compute_applicable_credit(profile.prepaid_balance, subtotal)
            remaining = await self.appointment_repo.count_scheduled_between(
                profile.user_id, context.actor_id, remaining_from, end_dt
            )
            items.append(
                MonthlyPreviewItem(
                    client_id=profile.user_id,
                    client_name=names.get(profile.user_id),
                    session_count=len(appointments),
                    subtotal=subtotal,
                    applicable_credit=credit,
                    projected_total=subtotal - credit,
                    remaining_scheduled_sessions=remaining,
                )
            )
        items.sort(key=lambda item: (item.client_name or "", str(item.client_id)))

        return MonthlyPreviewResponse(
            period_start=period_start,
            period_end=period_end,
            items=items,
            total_projected=sum_money(item.projected_total for item in items),
        )
