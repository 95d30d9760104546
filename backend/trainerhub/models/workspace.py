"""
Workspace model: the tenant every billing record belongs to.
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
import uuid

from trainerhub.db.base import Base, utcnow


class Workspace(Base):
    """Tenant boundary for trainers, clients and their billing data."""

    __tablename__ = "workspaces"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
