"""
Result types returned by the invoicing policies and batch jobs.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
import enum

from trainerhub.models.invoice import Invoice


class InvoicingOutcome(str, enum.Enum):
    """What an invoicing attempt did."""
    INVOICED = "INVOICED"
    PREPAID_DEDUCTED = "PREPAID_DEDUCTED"
    ALREADY_INVOICED = "ALREADY_INVOICED"
    SKIPPED = "SKIPPED"


@dataclass
class InvoicingResult:
    outcome: InvoicingOutcome
    client_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    invoice: Optional[Invoice] = None
    new_balance: Optional[Decimal] = None
    session_count: int = 0
    reason: Optional[str] = None
    top_up_invoice_id: Optional[UUID] = None
    # Rate charged for the session, group or individual
    session_rate: Optional[Decimal] = None

    @property
    def invoice_id(self) -> Optional[UUID]:
        return self.invoice.id if self.invoice is not None else None


@dataclass
class BatchFailure:
    item_id: UUID
    error: str


@dataclass
class BatchResult:
    """Summary of a cron run; one item failing never stops the others."""
    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    invoice_ids: List[UUID] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)

    def record(self, result: InvoicingResult) -> None:
        self.processed += 1
        if result.outcome in (InvoicingOutcome.INVOICED, InvoicingOutcome.PREPAID_DEDUCTED):
            self.succeeded += 1
        else:
            self.skipped += 1
        if result.invoice_id is not None:
            self.invoice_ids.append(result.invoice_id)
        if result.top_up_invoice_id is not None:
            self.invoice_ids.append(result.top_up_invoice_id)

    def record_failure(self, item_id: UUID, exc: Exception) -> None:
        self.processed += 1
        self.failures.append(BatchFailure(item_id=item_id, error=str(exc) or type(exc).__name__))
