"""
Per-session invoicing policy.

Runs once for every appointment that reaches COMPLETED. PREPAID clients whose
balance covers the session are charged on the ledger only; everyone else gets
an invoice with as much prepaid credit applied as the balance allows. Ledger
and invoice writes share one unit of work.

Re-running for the same appointment is a no-op: an existing line item (or
session deduction) for the appointment trips the AlreadyInvoiced guard, which
is checked again under the client profile's row lock and backed by unique
constraints on both tables.
"""

from datetime import date
from typing import Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.core.exceptions import AlreadyInvoiced, AppointmentNotFound, BillingError
from trainerhub.services.base_service import BaseService
from trainerhub.services.billing_results import InvoicingOutcome, InvoicingResult
from trainerhub.services.invoice_builder import InvoiceDraft
from trainerhub.services.prepaid_ledger_service import PrepaidLedgerService, compute_applicable_credit
from trainerhub.services.prepaid_service import PrepaidService
from trainerhub.services import billing_rules
from trainerhub.db.repositories.appointment_repository import AppointmentRepository
from trainerhub.db.repositories.client_profile_repository import ClientProfileRepository
from trainerhub.db.repositories.invoice_repository import InvoiceRepository
from trainerhub.db.repositories.invoice_line_item_repository import InvoiceLineItemRepository
from trainerhub.db.repositories.prepaid_transaction_repository import PrepaidTransactionRepository
from trainerhub.db.repositories.trainer_settings_repository import TrainerSettingsRepository
from trainerhub.models.appointment import Appointment, AppointmentStatus
from trainerhub.models.client_profile import ClientProfile, BillingMode
from trainerhub.models.invoice import Invoice
from trainerhub.models.trainer_settings import TrainerSettings
from trainerhub.utils.money import ZERO, to_money

logger = logging.getLogger(__name__)

SESSION_DEDUCTION_DESCRIPTION = "Session deduction"
INVOICE_CREDIT_DESCRIPTION = "Credit applied to invoice"


class PerSessionInvoicingService(BaseService):
    """Bills a single completed appointment."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.ledger = PrepaidLedgerService(session)
        self.appointment_repo = AppointmentRepository(session)
        self.profile_repo = ClientProfileRepository(session)
        self.invoice_repo = InvoiceRepository(session)
        self.line_item_repo = InvoiceLineItemRepository(session)
        self.transaction_repo = PrepaidTransactionRepository(session)
        self.trainer_settings_repo = TrainerSettingsRepository(session)

    async def ensure_not_invoiced(self, appointment_id: UUID) -> None:
        """Raise AlreadyInvoiced when the appointment was billed before, on an invoice or the ledger."""
        if await self.line_item_repo.get_by_appointment(appointment_id):
            raise AlreadyInvoiced(
                "Appointment already has an invoice",
                details={"appointment_id": str(appointment_id)},
            )
        if await self.transaction_repo.get_deduction_for_appointment(appointment_id):
            raise AlreadyInvoiced(
                "Appointment already deducted from prepaid balance",
                details={"appointment_id": str(appointment_id)},
            )

    async def invoice_completed_appointment(
        self,
        appointment_id: UUID,
        today: Optional[date] = None,
    ) -> InvoicingResult:
        """
        Bill a completed appointment.

        Args:
            appointment_id: Appointment that transitioned to COMPLETED
            today: Issue date for the invoice (defaults to the current UTC date)

        Returns:
            InvoicingResult describing what happened; repeated calls report ALREADY_INVOICED
        """
        today = today or billing_rules.utc_today()
        appointment = await self.appointment_repo.get(appointment_id)
        if not appointment:
            raise AppointmentNotFound("Appointment not found", details={"appointment_id": str(appointment_id)})

        client_id = appointment.client_id
        trainer_id = appointment.trainer_id

        if appointment.status != AppointmentStatus.COMPLETED:
            return self._skipped(appointment_id, client_id, "Appointment is not completed")

        profile = await self.profile_repo.get_by_user_id(client_id)
        if not profile:
            logger.warning(
                "No billing profile for client, appointment not invoiced",
                extra={"appointment_id": str(appointment_id), "client_id": str(client_id)},
            )
            return self._skipped(appointment_id, client_id, "Client has no billing profile")
        if not profile.auto_invoice_enabled:
            return self._skipped(appointment_id, client_id, "Auto-invoicing disabled for client")
        if profile.billing_mode == BillingMode.MONTHLY:
            return self._skipped(appointment_id, client_id, "Client is billed monthly")

        trainer_settings = await self.trainer_settings_repo.get_by_trainer_id(trainer_id)
        if trainer_settings is not None and not trainer_settings.auto_invoicing_enabled:
            return self._skipped(appointment_id, client_id, "Auto-invoicing disabled for trainer")

        profile_id = profile.id
        try:
            await self.ensure_not_invoiced(appointment_id)
            async with self.unit_of_work():
                # Serialize against concurrent triggers for the same client, then re-check
                profile = await self.ledger.lock_profile(profile_id)
                await self.ensure_not_invoiced(appointment_id)
                result = await self._bill(appointment, profile, trainer_settings, today)
        except AlreadyInvoiced as exc:
            logger.info(exc.message, extra={"appointment_id": str(appointment_id)})
            return InvoicingResult(
                outcome=InvoicingOutcome.ALREADY_INVOICED,
                client_id=client_id,
                appointment_id=appointment_id,
                reason=exc.message,
            )
        except IntegrityError:
            # A concurrent run won the unique constraint race
            try:
                await self.ensure_not_invoiced(appointment_id)
            except AlreadyInvoiced as exc:
                logger.info(exc.message, extra={"appointment_id": str(appointment_id)})
                return InvoicingResult(
                    outcome=InvoicingOutcome.ALREADY_INVOICED,
                    client_id=client_id,
                    appointment_id=appointment_id,
                    reason=exc.message,
                )
            raise

        # Shortfall invoices drain the balance as well
        if profile.billing_mode == BillingMode.PREPAID and result.outcome in (
            InvoicingOutcome.PREPAID_DEDUCTED,
            InvoicingOutcome.INVOICED,
        ):
            result.top_up_invoice_id = await self._maybe_request_top_up(
                profile, client_id, trainer_id, result, today
            )
        return result

    async def _bill(
        self,
        appointment: Appointment,
        profile: ClientProfile,
        trainer_settings: Optional[TrainerSettings],
        today: date,
    ) -> InvoicingResult:
        rate = billing_rules.resolve_session_rate(profile, trainer_settings, appointment.is_group_session)
        balance = to_money(profile.prepaid_balance)

        if profile.billing_mode == BillingMode.PREPAID and balance >= rate:
            new_balance = await self.ledger.deduct_credit(
                profile.id,
                rate,
                SESSION_DEDUCTION_DESCRIPTION,
                appointment_id=appointment.id,
            )
            return InvoicingResult(
                outcome=InvoicingOutcome.PREPAID_DEDUCTED,
                client_id=appointment.client_id,
                appointment_id=appointment.id,
                new_balance=new_balance,
                session_rate=rate,
            )

        if profile.billing_mode == BillingMode.PREPAID:
            logger.info(
                "Prepaid balance cannot cover session, invoicing shortfall",
                extra={"appointment_id": str(appointment.id), "balance": str(balance), "rate": str(rate)},
            )

        draft = InvoiceDraft().add_session(appointment, rate)
        credit = compute_applicable_credit(profile.prepaid_balance, draft.amount)
        draft.apply_credit(credit)

        due_days = billing_rules.resolve_due_days(profile, trainer_settings)
        invoice = Invoice(
            id=uuid4(),
            workspace_id=appointment.workspace_id,
            trainer_id=appointment.trainer_id,
            client_id=appointment.client_id,
            amount=draft.finalize(),
            status=billing_rules.initial_invoice_status(trainer_settings),
            due_date=billing_rules.due_date_for(today, due_days),
            line_items=draft.to_models(),
        )
        await self.invoice_repo.add(invoice)

        new_balance = balance
        if credit > ZERO:
            new_balance = await self.ledger.deduct_credit(
                profile.id,
                credit,
                INVOICE_CREDIT_DESCRIPTION,
                invoice_id=invoice.id,
            )

        logger.info(
            "Session invoice created",
            extra={
                "invoice_id": str(invoice.id),
                "appointment_id": str(appointment.id),
                "amount": str(invoice.amount),
                "credit_applied": str(credit),
            },
        )
        return InvoicingResult(
            outcome=InvoicingOutcome.INVOICED,
            client_id=appointment.client_id,
            appointment_id=appointment.id,
            invoice=invoice,
            new_balance=new_balance,
            session_count=1,
            session_rate=rate,
        )

    async def _maybe_request_top_up(
        self,
        profile: ClientProfile,
        client_id: UUID,
        trainer_id: UUID,
        result: InvoicingResult,
        today: date,
    ) -> Optional[UUID]:
        """Issue a top-up invoice once the balance can no longer cover a session."""
        if profile.prepaid_target_balance is None:
            return None
        if result.new_balance > ZERO and result.new_balance >= to_money(result.session_rate):
            return None
        try:
            invoice = await PrepaidService(self.session).generate_top_up_invoice(client_id, trainer_id, today)
        except (BillingError, SQLAlchemyError):
            # The deduction is already committed; the next deduction retries the top-up
            logger.exception("Failed to create prepaid top-up invoice", extra={"client_id": str(client_id)})
            return None
        return invoice.id if invoice else None

    def _skipped(self, appointment_id: UUID, client_id: UUID, reason: str) -> InvoicingResult:
        logger.info(reason, extra={"appointment_id": str(appointment_id)})
        return InvoicingResult(
            outcome=InvoicingOutcome.SKIPPED,
            client_id=client_id,
            appointment_id=appointment_id,
            reason=reason,
        )
