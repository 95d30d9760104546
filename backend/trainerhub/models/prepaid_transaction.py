"""
Prepaid transaction model: append-only audit log of prepaid balance changes.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, CheckConstraint, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum

from trainerhub.db.base import Base, utcnow


class PrepaidTransactionType(str, enum.Enum):
    """Prepaid transaction type enumeration."""
    CREDIT = "CREDIT"
    DEDUCTION = "DEDUCTION"


class PrepaidTransaction(Base):
    """
    Immutable ledger entry.

    balance_after equals the previous balance plus (CREDIT) or minus
    (DEDUCTION) amount. Rows are never updated or deleted.
    """

    __tablename__ = "prepaid_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_prepaid_transaction_amount_positive"),
        CheckConstraint("balance_after >= 0", name="ck_prepaid_transaction_balance_non_negative"),
        # One session deduction per appointment
        UniqueConstraint("appointment_id", "type", name="uq_prepaid_transaction_appointment_type"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    client_profile_id = Column(UUID(as_uuid=True), ForeignKey("client_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLEnum(PrepaidTransactionType), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    balance_after = Column(Numeric(10, 2), nullable=False)
    description = Column(String(500), nullable=False)
    appointment_id = Column(UUID(as_uuid=True), ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True, index=True)
    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Relationships
    client_profile = relationship("ClientProfile", back_populates="prepaid_transactions")
