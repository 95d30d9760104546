"""
Trainer settings model: per-trainer invoicing defaults.
"""

from sqlalchemy import Column, Integer, Boolean, ForeignKey, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid

from trainerhub.db.base import Base


class TrainerSettings(Base):
    """Invoicing defaults a trainer applies to all of their clients."""

    __tablename__ = "trainer_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    trainer_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    workspace_id = Column(UUID(as_uuid=True), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    default_invoice_due_days = Column(Integer, nullable=False, default=30)
    monthly_invoice_day = Column(Integer, nullable=False, default=1)  # 1-31
    auto_invoicing_enabled = Column(Boolean, nullable=False, default=True)
    auto_send_invoices = Column(Boolean, nullable=False, default=True)  # SENT vs DRAFT on creation
    default_session_rate = Column(Numeric(10, 2), nullable=True)
    default_group_session_rate = Column(Numeric(10, 2), nullable=True)

    # Relationships
    trainer = relationship("User", back_populates="trainer_settings")
