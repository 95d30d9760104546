"""
Monthly invoicing policy.

Aggregates a client's completed, not yet invoiced sessions for a billing
period into one invoice with a single aggregate credit line.
"""

from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID, uuid4
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.core.exceptions import ClientProfileNotFound
from trainerhub.services.base_service import BaseService
from trainerhub.services.billing_results import BatchResult, InvoicingOutcome, InvoicingResult
from trainerhub.services.invoice_builder import InvoiceDraft
from trainerhub.services.prepaid_ledger_service import PrepaidLedgerService, compute_applicable_credit
from trainerhub.services import billing_rules
from trainerhub.db.repositories.appointment_repository import AppointmentRepository
from trainerhub.db.repositories.client_profile_repository import ClientProfileRepository
from trainerhub.db.repositories.invoice_repository import InvoiceRepository
from trainerhub.db.repositories.invoice_line_item_repository import InvoiceLineItemRepository
from trainerhub.db.repositories.trainer_settings_repository import TrainerSettingsRepository
from trainerhub.models.client_profile import BillingMode
from trainerhub.models.invoice import Invoice
from trainerhub.utils.money import ZERO

logger = logging.getLogger(__name__)

MONTHLY_CREDIT_DESCRIPTION = "Credit applied to monthly invoice"


class MonthlyInvoicingService(BaseService):
    """Periodic invoices for MONTHLY clients."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.ledger = PrepaidLedgerService(session)
        self.appointment_repo = AppointmentRepository(session)
        self.profile_repo = ClientProfileRepository(session)
        self.invoice_repo = InvoiceRepository(session)
        self.line_item_repo = InvoiceLineItemRepository(session)
        self.trainer_settings_repo = TrainerSettingsRepository(session)

    async def generate_monthly_invoice(
        self,
        client_id: UUID,
        trainer_id: UUID,
        generation_date: Optional[date] = None,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> InvoicingResult:
        """
        Invoice one client's sessions with one trainer for a billing period.

        The period defaults to the calendar month before generation_date and
        is inclusive of both end days. Sessions already on any invoice are
        never picked up again.
        """
        generation_date = generation_date or billing_rules.utc_today()
        if period_start is None or period_end is None:
            period_start, period_end = billing_rules.previous_month_period(generation_date)

        profile = await self.profile_repo.get_by_user_id(client_id)
        if not profile:
            raise ClientProfileNotFound("Client profile not found", details={"client_id": str(client_id)})
        if profile.billing_mode != BillingMode.MONTHLY:
            return self._skipped(client_id, "Client is not billed monthly")
        if not profile.auto_invoice_enabled:
            return self._skipped(client_id, "Auto-invoicing disabled for client")

        trainer_settings = await self.trainer_settings_repo.get_by_trainer_id(trainer_id)
        start_dt, end_dt = billing_rules.period_bounds(period_start, period_end)
        profile_id = profile.id
        candidate_ids: List[UUID] = []

        try:
            async with self.unit_of_work():
                profile = await self.ledger.lock_profile(profile_id)
                appointments = await self.appointment_repo.list_completed_uninvoiced(
                    client_id, trainer_id, start_dt, end_dt
                )
                if not appointments:
                    return self._skipped(client_id, "No uninvoiced sessions in billing period")
                candidate_ids = [appointment.id for appointment in appointments]

                draft = InvoiceDraft()
                for appointment in appointments:
                    rate = billing_rules.resolve_session_rate(profile, trainer_settings, appointment.is_group_session)
                    draft.add_session(appointment, rate)
                credit = compute_applicable_credit(profile.prepaid_balance, draft.amount)
                draft.apply_credit(credit)

                due_days = billing_rules.resolve_due_days(profile, trainer_settings)
                invoice = Invoice(
                    id=uuid4(),
                    workspace_id=profile.workspace_id,
                    trainer_id=trainer_id,
                    client_id=client_id,
                    amount=draft.finalize(),
                    status=billing_rules.initial_invoice_status(trainer_settings),
                    due_date=billing_rules.due_date_for(generation_date, due_days),
                    notes=f"Monthly invoice for {period_start:%B %Y}",
                    billing_period_start=period_start,
                    billing_period_end=period_end,
                    line_items=draft.to_models(),
                )
                await self.invoice_repo.add(invoice)

                new_balance = None
                if credit > ZERO:
                    new_balance = await self.ledger.deduct_credit(
                        profile_id,
                        credit,
                        MONTHLY_CREDIT_DESCRIPTION,
                        invoice_id=invoice.id,
                    )
        except IntegrityError:
            if await self._any_invoiced(candidate_ids):
                logger.info(
                    "Monthly sessions were invoiced concurrently",
                    extra={"client_id": str(client_id), "trainer_id": str(trainer_id)},
                )
                return InvoicingResult(
                    outcome=InvoicingOutcome.ALREADY_INVOICED,
                    client_id=client_id,
                    reason="Sessions in billing period already invoiced",
                )
            raise

        logger.info(
            "Monthly invoice created",
            extra={
                "invoice_id": str(invoice.id),
                "client_id": str(client_id),
                "session_count": len(candidate_ids),
                "amount": str(invoice.amount),
                "credit_applied": str(credit),
            },
        )
        return InvoicingResult(
            outcome=InvoicingOutcome.INVOICED,
            client_id=client_id,
            invoice=invoice,
            new_balance=new_balance,
            session_count=len(candidate_ids),
        )

    async def process_monthly_invoices(self, today: Optional[date] = None) -> BatchResult:
        """
        Cron entry point: invoice every MONTHLY client whose invoice day is today.
        Each client runs in its own unit of work; failures are collected, not raised.
        """
        today = today or billing_rules.utc_today()
        batch = BatchResult()

        jobs: List[Tuple[UUID, UUID]] = []
        for trainer_settings in await self.trainer_settings_repo.list_auto_invoicing():
            profiles = await self.profile_repo.list_by_billing_mode(
                trainer_settings.workspace_id, BillingMode.MONTHLY, auto_invoice_only=True
            )
            for profile in profiles:
                invoice_day = billing_rules.resolve_monthly_invoice_day(profile, trainer_settings)
                if billing_rules.is_invoice_day(today, invoice_day):
                    jobs.append((profile.user_id, trainer_settings.trainer_id))

        logger.info("Monthly invoicing run started", extra={"date": today.isoformat(), "candidates": len(jobs)})

        for client_id, trainer_id in jobs:
            try:
                result = await self.generate_monthly_invoice(client_id, trainer_id, generation_date=today)
            except Exception as exc:
                await self.session.rollback()
                logger.exception(
                    "Monthly invoicing failed for client",
                    extra={"client_id": str(client_id), "trainer_id": str(trainer_id)},
                )
                batch.record_failure(client_id, exc)
                continue
            batch.record(result)

        logger.info(
            "Monthly invoicing run finished",
            extra={
                "processed": batch.processed,
                "invoices": len(batch.invoice_ids),
                "failures": len(batch.failures),
            },
        )
        return batch

    async def _any_invoiced(self, appointment_ids: List[UUID]) -> bool:
        for appointment_id in appointment_ids:
            if await self.line_item_repo.get_by_appointment(appointment_id):
                return True
        return False

    def _skipped(self, client_id: UUID, reason: str) -> InvoicingResult:
        logger.info(reason, extra={"client_id": str(client_id)})
        return InvoicingResult(outcome=InvoicingOutcome.SKIPPED, client_id=client_id, reason=reason)
