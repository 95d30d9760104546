"""
Client profile model: billing mode, rates and prepaid balance for one client.
"""

from sqlalchemy import Column, Integer, Boolean, ForeignKey, Numeric, CheckConstraint, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum

from trainerhub.db.base import Base


class BillingMode(str, enum.Enum):
    """Billing mode enumeration."""
    PER_SESSION = "PER_SESSION"
    MONTHLY = "MONTHLY"
    PREPAID = "PREPAID"


class ClientProfile(Base):
    """
    Billing profile for a client.

    prepaid_balance is NULL for clients that were never prepaid-eligible and
    is only ever changed through the prepaid ledger.
    """

    __tablename__ = "client_profiles"
    __table_args__ = (
        CheckConstraint("prepaid_balance IS NULL OR prepaid_balance >= 0", name="ck_client_profile_balance_non_negative"),
        CheckConstraint("session_rate > 0", name="ck_client_profile_session_rate_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    workspace_id = Column(UUID(as_uuid=True), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_mode = Column(SQLEnum(BillingMode), nullable=False, default=BillingMode.PER_SESSION, index=True)
    session_rate = Column(Numeric(10, 2), nullable=False)
    group_session_rate = Column(Numeric(10, 2), nullable=True)
    prepaid_balance = Column(Numeric(10, 2), nullable=True)
    prepaid_target_balance = Column(Numeric(10, 2), nullable=True)
    auto_invoice_enabled = Column(Boolean, nullable=False, default=True)
    monthly_invoice_day = Column(Integer, nullable=True)  # Overrides trainer setting when set
    default_due_days = Column(Integer, nullable=True)  # Overrides trainer setting when set

    # Relationships
    user = relationship("User", back_populates="client_profile", foreign_keys=[user_id])
    prepaid_transactions = relationship(
        "PrepaidTransaction",
        back_populates="client_profile",
        order_by="PrepaidTransaction.created_at",
        passive_deletes=True,
    )
