"""
Prepaid ledger.

The only code path that changes ClientProfile.prepaid_balance. Every change
writes a matching PrepaidTransaction in the caller's unit of work: these
methods flush but never commit, so the invoicing policies can combine ledger
writes with invoice writes and commit or roll back all of them together.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.services.base_service import BaseService
from trainerhub.db.repositories.client_profile_repository import ClientProfileRepository
from trainerhub.db.repositories.prepaid_transaction_repository import PrepaidTransactionRepository
from trainerhub.models.client_profile import ClientProfile
from trainerhub.models.prepaid_transaction import PrepaidTransaction, PrepaidTransactionType
from trainerhub.core.exceptions import InsufficientBalance, InvalidAmount, ClientProfileNotFound
from trainerhub.utils.money import ZERO, to_money, min_money, non_negative

logger = logging.getLogger(__name__)


def compute_applicable_credit(balance: Optional[Decimal], invoice_amount: Decimal) -> Decimal:
    """Lesser of the balance and the invoice amount, never negative."""
    return non_negative(min_money(to_money(balance), to_money(invoice_amount)))


@dataclass
class LedgerReconciliation:
    """Stored balance compared against what the transaction log says it should be."""
    client_profile_id: UUID
    stored_balance: Decimal
    last_balance_after: Optional[Decimal]
    replayed_balance: Decimal
    total_credits: Decimal
    total_deductions: Decimal
    transaction_count: int

    @property
    def is_consistent(self) -> bool:
        if self.last_balance_after is not None and self.last_balance_after != self.stored_balance:
            return False
        return self.replayed_balance == self.stored_balance

    @property
    def drift(self) -> Decimal:
        return self.stored_balance - self.replayed_balance


class PrepaidLedgerService(BaseService):
    """Credits and deductions against a client's prepaid balance."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.profile_repo = ClientProfileRepository(session)
        self.transaction_repo = PrepaidTransactionRepository(session)

    async def lock_profile(self, client_profile_id: UUID) -> ClientProfile:
        """Load a profile with a row lock held until the unit of work ends."""
        profile = await self.profile_repo.get_for_update(client_profile_id)
        if not profile:
            raise ClientProfileNotFound(
                "Client profile not found",
                details={"client_profile_id": str(client_profile_id)},
            )
        return profile

    async def apply_credit(
        self,
        client_profile_id: UUID,
        amount: Decimal,
        description: str,
        invoice_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Add credit to the prepaid balance.

        Args:
            client_profile_id: Profile whose balance grows
            amount: Positive amount to add
            description: Ledger description
            invoice_id: Invoice that caused the credit, if any

        Returns:
            The new balance
        """
        amount = to_money(amount)
        if amount <= ZERO:
            raise InvalidAmount("Credit amount must be positive", details={"amount": str(amount)})

        profile = await self.lock_profile(client_profile_id)
        new_balance = to_money(profile.prepaid_balance) + amount
        profile.prepaid_balance = new_balance

        await self.transaction_repo.create(
            client_profile_id=profile.id,
            type=PrepaidTransactionType.CREDIT,
            amount=amount,
            balance_after=new_balance,
            description=description,
            invoice_id=invoice_id,
        )

        logger.info(
            "Prepaid credit applied",
            extra={
                "client_profile_id": str(profile.id),
                "amount": str(amount),
                "balance_after": str(new_balance),
            },
        )
        return new_balance

    async def deduct_credit(
        self,
        client_profile_id: UUID,
        amount: Decimal,
        description: str,
        appointment_id: Optional[UUID] = None,
        invoice_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Remove credit from the prepaid balance.
        Raises InsufficientBalance rather than clamping when amount exceeds the balance.
        """
        amount = to_money(amount)
        if amount <= ZERO:
            raise InvalidAmount("Deduction amount must be positive", details={"amount": str(amount)})

        profile = await self.lock_profile(client_profile_id)
        balance = to_money(profile.prepaid_balance)
        if amount > balance:
            raise InsufficientBalance(
                "Insufficient prepaid balance",
                details={
                    "client_profile_id": str(profile.id),
                    "balance": str(balance),
                    "requested": str(amount),
                },
            )

        new_balance = balance - amount
        profile.prepaid_balance = new_balance

        await self.transaction_repo.create(
            client_profile_id=profile.id,
            type=PrepaidTransactionType.DEDUCTION,
            amount=amount,
            balance_after=new_balance,
            description=description,
            appointment_id=appointment_id,
            invoice_id=invoice_id,
        )

        logger.info(
            "Prepaid deduction recorded",
            extra={
                "client_profile_id": str(profile.id),
                "amount": str(amount),
                "balance_after": str(new_balance),
                "appointment_id": str(appointment_id) if appointment_id else None,
                "invoice_id": str(invoice_id) if invoice_id else None,
            },
        )
        return new_balance

    async def applicable_credit(self, client_profile_id: UUID, invoice_amount: Decimal) -> Decimal:
        """Credit that could be applied to an invoice of this amount. No side effects."""
        profile = await self.profile_repo.get(client_profile_id)
        if not profile:
            raise ClientProfileNotFound(
                "Client profile not found",
                details={"client_profile_id": str(client_profile_id)},
            )
        return compute_applicable_credit(profile.prepaid_balance, invoice_amount)

    async def reconcile(self, client_profile_id: UUID) -> LedgerReconciliation:
        """Compare the stored balance with the transaction log. Read only."""
        profile = await self.profile_repo.get(client_profile_id)
        if not profile:
            raise ClientProfileNotFound(
                "Client profile not found",
                details={"client_profile_id": str(client_profile_id)},
            )

        latest: Optional[PrepaidTransaction] = await self.transaction_repo.get_latest(profile.id)
        totals = await self.transaction_repo.totals_by_type(profile.id)
        count = await self.transaction_repo.count_by_profile(profile.id)

        credits = to_money(totals[PrepaidTransactionType.CREDIT])
        deductions = to_money(totals[PrepaidTransactionType.DEDUCTION])
        result = LedgerReconciliation(
            client_profile_id=profile.id,
            stored_balance=to_money(profile.prepaid_balance),
            last_balance_after=to_money(latest.balance_after) if latest else None,
            replayed_balance=credits - deductions,
            total_credits=credits,
            total_deductions=deductions,
            transaction_count=count,
        )

        if not result.is_consistent:
            logger.warning(
                "Prepaid balance does not match ledger",
                extra={
                    "client_profile_id": str(profile.id),
                    "stored_balance": str(result.stored_balance),
                    "replayed_balance": str(result.replayed_balance),
                    "last_balance_after": str(result.last_balance_after),
                },
            )
        return result
