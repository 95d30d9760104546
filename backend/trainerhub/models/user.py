"""
User model for trainers and clients.
"""

from sqlalchemy import Column, String, ForeignKey, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum

from trainerhub.db.base import Base


class UserRole(str, enum.Enum):
    """User role enumeration."""
    TRAINER = "TRAINER"
    CLIENT = "CLIENT"


class User(Base):
    """Account holder; trainers own settings, clients own a billing profile."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    workspace_id = Column(UUID(as_uuid=True), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.CLIENT, index=True)

    # Relationships
    client_profile = relationship("ClientProfile", back_populates="user", uselist=False, foreign_keys="ClientProfile.user_id")
    trainer_settings = relationship("TrainerSettings", back_populates="trainer", uselist=False)
