"""
Database models.
Import all models here to ensure they're registered with Base.
"""

from trainerhub.models.workspace import Workspace
from trainerhub.models.user import User, UserRole
from trainerhub.models.trainer_settings import TrainerSettings
from trainerhub.models.client_profile import ClientProfile, BillingMode
from trainerhub.models.appointment import Appointment, AppointmentStatus
from trainerhub.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from trainerhub.models.prepaid_transaction import PrepaidTransaction, PrepaidTransactionType

__all__ = [
    "Workspace",
    "User",
    "UserRole",
    "TrainerSettings",
    "ClientProfile",
    "BillingMode",
    "Appointment",
    "AppointmentStatus",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceStatus",
    "PrepaidTransaction",
    "PrepaidTransactionType",
]
