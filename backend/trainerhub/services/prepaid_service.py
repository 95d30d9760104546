"""
Prepaid service with business logic.
Manual credit, top-up invoices, the prepaid dashboard and ledger reconciliation.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.core.config import settings
from trainerhub.core.context import BillingContext
from trainerhub.core.exceptions import ClientProfileNotFound, InvalidAmount, InvalidBillingTransition
from trainerhub.services.base_service import BaseService
from trainerhub.services.prepaid_ledger_service import PrepaidLedgerService
from trainerhub.services.invoice_builder import InvoiceDraft, LineItemDraft
from trainerhub.services import billing_rules
from trainerhub.db.repositories.client_profile_repository import ClientProfileRepository
from trainerhub.db.repositories.prepaid_transaction_repository import PrepaidTransactionRepository
from trainerhub.db.repositories.invoice_repository import InvoiceRepository
from trainerhub.db.repositories.trainer_settings_repository import TrainerSettingsRepository
from trainerhub.db.repositories.user_repository import UserRepository
from trainerhub.models.client_profile import ClientProfile, BillingMode
from trainerhub.models.invoice import Invoice
from trainerhub.models.prepaid_transaction import PrepaidTransactionType
from trainerhub.models.user import User
from trainerhub.schemas.prepaid import (
    PrepaidBalanceStatus,
    PrepaidClientSummary,
    PrepaidCreditResponse,
    PrepaidDetailsResponse,
    PrepaidSummaryResponse,
    PrepaidTransactionResponse,
    ReconciliationResponse,
)
from trainerhub.utils.money import ZERO, to_money, sum_money, format_money

logger = logging.getLogger(__name__)

TOP_UP_LINE_DESCRIPTION = "Prepaid balance top-up"
MANUAL_CREDIT_DESCRIPTION = "Prepaid credit added"


def classify_balance(balance: Decimal, target: Optional[Decimal]) -> PrepaidBalanceStatus:
    """empty at zero, low below the configured fraction of the target, healthy otherwise."""
    balance = to_money(balance)
    if balance <= ZERO:
        return PrepaidBalanceStatus.EMPTY
    if target is not None and to_money(target) > ZERO:
        threshold = to_money(target) * Decimal(str(settings.PREPAID_LOW_BALANCE_RATIO))
        if balance < threshold:
            return PrepaidBalanceStatus.LOW
    return PrepaidBalanceStatus.HEALTHY


class PrepaidService(BaseService):
    """Service for prepaid balance operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.ledger = PrepaidLedgerService(session)
        self.profile_repo = ClientProfileRepository(session)
        self.transaction_repo = PrepaidTransactionRepository(session)
        self.invoice_repo = InvoiceRepository(session)
        self.trainer_settings_repo = TrainerSettingsRepository(session)
        self.user_repo = UserRepository(session)

    async def _get_client(self, context: BillingContext, client_id: UUID) -> Tuple[User, ClientProfile]:
        client = await self.user_repo.get_in_workspace(client_id, context.workspace_id)
        profile = await self.profile_repo.get_by_user_id(client_id) if client else None
        if not profile:
            raise ClientProfileNotFound(
                "Client profile not found",
                details={"client_id": str(client_id)},
            )
        return client, profile

    async def add_credit(
        self,
        context: BillingContext,
        client_id: UUID,
        amount: Decimal,
        notes: Optional[str] = None,
    ) -> PrepaidCreditResponse:
        """
        Add credit on behalf of a trainer.
        A client not yet billed as PREPAID is moved to PREPAID in the same unit of work.
        """
        amount = to_money(amount)
        if amount <= ZERO:
            raise InvalidAmount("Credit amount must be positive", details={"amount": str(amount)})

        _, profile = await self._get_client(context, client_id)
        profile_id = profile.id

        async with self.unit_of_work():
            profile = await self.ledger.lock_profile(profile_id)
            if profile.billing_mode != BillingMode.PREPAID:
                logger.info(
                    "Switching client to prepaid billing",
                    extra={"client_id": str(client_id), "previous_mode": profile.billing_mode.value},
                )
                profile.billing_mode = BillingMode.PREPAID
            new_balance = await self.ledger.apply_credit(
                profile_id, amount, notes or MANUAL_CREDIT_DESCRIPTION
            )

        return PrepaidCreditResponse(
            client_id=client_id,
            billing_mode=BillingMode.PREPAID,
            new_balance=new_balance,
        )

    async def generate_top_up_invoice(
        self,
        client_id: UUID,
        trainer_id: UUID,
        today: Optional[date] = None,
    ) -> Optional[Invoice]:
        """
        Invoice a PREPAID client for the difference between target and balance.

        Returns the pending top-up invoice when one already exists, and None
        when the client has no target or is already at or above it.
        """
        today = today or billing_rules.utc_today()
        profile = await self.profile_repo.get_by_user_id(client_id)
        if not profile:
            raise ClientProfileNotFound("Client profile not found", details={"client_id": str(client_id)})
        if profile.billing_mode != BillingMode.PREPAID:
            raise InvalidBillingTransition(
                "Top-up invoices are only issued to prepaid clients",
                details={"client_id": str(client_id), "billing_mode": profile.billing_mode.value},
            )
        profile_id = profile.id

        async with self.unit_of_work():
            profile = await self.ledger.lock_profile(profile_id)
            pending = await self.invoice_repo.get_pending_top_up(client_id)
            if pending:
                return pending
            if profile.prepaid_target_balance is None:
                return None

            top_up_amount = to_money(profile.prepaid_target_balance) - to_money(profile.prepaid_balance)
            if top_up_amount <= ZERO:
                return None

            trainer_settings = await self.trainer_settings_repo.get_by_trainer_id(trainer_id)
            draft = InvoiceDraft().add_line_item(
                LineItemDraft(
                    description=TOP_UP_LINE_DESCRIPTION,
                    total=top_up_amount,
                    unit_price=top_up_amount,
                )
            )
            due_days = billing_rules.resolve_due_days(profile, trainer_settings)
            invoice = Invoice(
                workspace_id=profile.workspace_id,
                trainer_id=trainer_id,
                client_id=client_id,
                amount=draft.finalize(),
                status=billing_rules.initial_invoice_status(trainer_settings),
                due_date=billing_rules.due_date_for(today, due_days),
                is_prepaid_top_up=True,
                notes=f"Prepaid balance replenishment to {format_money(profile.prepaid_target_balance)}",
                line_items=draft.to_models(),
            )
            await self.invoice_repo.add(invoice)

        logger.info(
            "Prepaid top-up invoice created",
            extra={
                "invoice_id": str(invoice.id),
                "client_id": str(client_id),
                "amount": str(invoice.amount),
            },
        )
        return invoice

    async def request_top_up_invoice(self, context: BillingContext, client_id: UUID) -> Optional[Invoice]:
        """Top-up invoice requested by the trainer from the dashboard."""
        await self._get_client(context, client_id)
        return await self.generate_top_up_invoice(client_id, context.actor_id)

    async def get_transactions(
        self,
        context: BillingContext,
        client_id: UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[PrepaidTransactionResponse], int]:
        """Ledger history, newest first, with the total count."""
        _, profile = await self._get_client(context, client_id)
        transactions = await self.transaction_repo.list_by_profile(profile.id, skip, limit)
        total = await self.transaction_repo.count_by_profile(profile.id)
        return [PrepaidTransactionResponse.model_validate(tx) for tx in transactions], total

    async def _activity(self, profile: ClientProfile):
        """Deductions since the last credit, and the time of the last transaction."""
        last_credit = await self.transaction_repo.get_latest(profile.id, PrepaidTransactionType.CREDIT)
        sessions = await self.transaction_repo.count_deductions_since(
            profile.id, last_credit.created_at if last_credit else None
        )
        latest = await self.transaction_repo.get_latest(profile.id)
        return sessions, latest.created_at if latest else None

    async def get_client_prepaid_details(self, context: BillingContext, client_id: UUID) -> PrepaidDetailsResponse:
        client, profile = await self._get_client(context, client_id)
        sessions, last_transaction_at = await self._activity(profile)
        outstanding = await self.invoice_repo.outstanding_total(client_id)
        pending_top_up = await self.invoice_repo.get_pending_top_up(client_id)
        balance = to_money(profile.prepaid_balance)

        return PrepaidDetailsResponse(
            client_id=client_id,
            client_name=client.full_name,
            billing_mode=profile.billing_mode,
            balance=balance,
            target_balance=profile.prepaid_target_balance,
            status=classify_balance(balance, profile.prepaid_target_balance),
            outstanding_amount=to_money(outstanding),
            sessions_since_last_credit=sessions,
            last_transaction_at=last_transaction_at,
            pending_top_up_invoice_id=pending_top_up.id if pending_top_up else None,
        )

    async def get_prepaid_clients_summary(self, context: BillingContext) -> PrepaidSummaryResponse:
        """Dashboard of every PREPAID client in the workspace."""
        profiles = await self.profile_repo.list_by_billing_mode(context.workspace_id, BillingMode.PREPAID)
        users = await self.user_repo.list_by_ids([p.user_id for p in profiles])
        names = {user.id: user.full_name for user in users}

        rows = []
        for profile in profiles:
            sessions, last_transaction_at = await self._activity(profile)
            balance = to_money(profile.prepaid_balance)
            rows.append(
                PrepaidClientSummary(
                    client_id=profile.user_id,
                    client_name=names.get(profile.user_id),
                    balance=balance,
                    target_balance=profile.prepaid_target_balance,
                    status=classify_balance(balance, profile.prepaid_target_balance),
                    sessions_since_last_credit=sessions,
                    last_transaction_at=last_transaction_at,
                )
            )
        rows.sort(key=lambda row: (row.client_name or "", str(row.client_id)))

        return PrepaidSummaryResponse(
            clients=rows,
            client_count=len(rows),
            total_balance=sum_money(row.balance for row in rows),
            low_balance_count=sum(1 for row in rows if row.status == PrepaidBalanceStatus.LOW),
            empty_balance_count=sum(1 for row in rows if row.status == PrepaidBalanceStatus.EMPTY),
        )

    async def reconcile(self, context: BillingContext, client_id: UUID) -> ReconciliationResponse:
        _, profile = await self._get_client(context, client_id)
        result = await self.ledger.reconcile(profile.id)
        return ReconciliationResponse(
            client_id=client_id,
            stored_balance=result.stored_balance,
            last_balance_after=result.last_balance_after,
            replayed_balance=result.replayed_balance,
            total_credits=result.total_credits,
            total_deductions=result.total_deductions,
            transaction_count=result.transaction_count,
            drift=result.drift,
            is_consistent=result.is_consistent,
        )
