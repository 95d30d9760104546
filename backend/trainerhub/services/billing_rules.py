"""
Billing rules shared by the invoicing policies: rate selection, due dates,
initial invoice status and the monthly billing calendar.
"""

import calendar
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Tuple

from trainerhub.core.config import settings
from trainerhub.models.client_profile import ClientProfile
from trainerhub.models.trainer_settings import TrainerSettings
from trainerhub.models.invoice import InvoiceStatus
from trainerhub.utils.money import to_money


def resolve_session_rate(
    profile: ClientProfile,
    trainer_settings: Optional[TrainerSettings],
    is_group_session: bool,
) -> Decimal:
    """
    Rate for one session.
    Group sessions fall back from the client's group rate to the trainer's
    default group rate, then to the client's individual rate.
    """
    if is_group_session:
        if profile.group_session_rate:
            return to_money(profile.group_session_rate)
        if trainer_settings is not None and trainer_settings.default_group_session_rate:
            return to_money(trainer_settings.default_group_session_rate)
    return to_money(profile.session_rate)


def resolve_due_days(profile: ClientProfile, trainer_settings: Optional[TrainerSettings]) -> int:
    """Client override, then trainer default, then the service-wide default."""
    if profile.default_due_days is not None:
        return profile.default_due_days
    if trainer_settings is not None and trainer_settings.default_invoice_due_days is not None:
        return trainer_settings.default_invoice_due_days
    return settings.DEFAULT_INVOICE_DUE_DAYS


def due_date_for(issue_date: date, due_days: int) -> date:
    return issue_date + timedelta(days=due_days)


def initial_invoice_status(trainer_settings: Optional[TrainerSettings]) -> InvoiceStatus:
    """Generated invoices go out as SENT unless the trainer reviews drafts first."""
    if trainer_settings is not None and not trainer_settings.auto_send_invoices:
        return InvoiceStatus.DRAFT
    return InvoiceStatus.SENT


def resolve_monthly_invoice_day(profile: ClientProfile, trainer_settings: Optional[TrainerSettings]) -> int:
    if profile.monthly_invoice_day:
        return profile.monthly_invoice_day
    if trainer_settings is not None and trainer_settings.monthly_invoice_day:
        return trainer_settings.monthly_invoice_day
    return settings.DEFAULT_MONTHLY_INVOICE_DAY


def is_invoice_day(today: date, invoice_day: int) -> bool:
    """
    True when today is the configured day of month.
    Days beyond the end of a short month fall on its last day.
    """
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.day == min(invoice_day, last_day)


def previous_month_period(reference: date) -> Tuple[date, date]:
    """First and last day of the calendar month before reference."""
    first_this_month = reference.replace(day=1)
    last_prev_month = first_this_month - timedelta(days=1)
    return last_prev_month.replace(day=1), last_prev_month


def current_month_period(reference: date) -> Tuple[date, date]:
    """First and last day of the calendar month containing reference."""
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return reference.replace(day=1), reference.replace(day=last_day)


def period_bounds(period_start: date, period_end: date) -> Tuple[datetime, datetime]:
    """Half-open UTC datetime range covering whole days from start to end inclusive."""
    start = datetime(period_start.year, period_start.month, period_start.day, tzinfo=timezone.utc)
    end = datetime(period_end.year, period_end.month, period_end.day, tzinfo=timezone.utc) + timedelta(days=1)
    return start, end


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
