"""
Monthly invoicing policy tests.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from trainerhub.db.repositories.trainer_settings_repository import TrainerSettingsRepository
from trainerhub.models import AppointmentStatus, BillingMode, Invoice, InvoiceStatus
from trainerhub.services import billing_rules
from trainerhub.services.billing_results import InvoicingOutcome
from trainerhub.services.monthly_invoicing_service import MonthlyInvoicingService
from trainerhub.services.void_and_switch_service import VoidAndSwitchService

GENERATION_DATE = date(2025, 4, 1)


def _march(day, hour=10):
    return datetime(2025, 3, day, hour, 0, tzinfo=timezone.utc)


async def _invoice_count(session) -> int:
    result = await session.execute(select(func.count(Invoice.id)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_monthly_aggregation_with_credit(test_db_session, trainer, make_client, make_appointment):
    profile = await make_client(billing_mode=BillingMode.MONTHLY, session_rate="100.00", prepaid_balance="75.00")
    await make_appointment(profile.user_id, start_time=_march(5))
    await make_appointment(profile.user_id, start_time=_march(20))

    result = await MonthlyInvoicingService(test_db_session).generate_monthly_invoice(
        profile.user_id, trainer.id, generation_date=GENERATION_DATE
    )

    assert result.outcome == InvoicingOutcome.INVOICED
    assert result.session_count == 2
    invoice = result.invoice
    assert invoice.amount == Decimal("125.00")
    assert [item.total for item in invoice.line_items] == [
        Decimal("100.00"),
        Decimal("100.00"),
        Decimal("-75.00"),
    ]
    assert invoice.billing_period_start == date(2025, 3, 1)
    assert invoice.billing_period_end == date(2025, 3, 31)
    assert invoice.notes == "Monthly invoice for March 2025"
    assert invoice.due_date == GENERATION_DATE + timedelta(days=30)
    assert invoice.status == InvoiceStatus.SENT
    await test_db_session.refresh(profile)
    assert profile.prepaid_balance == Decimal("0.00")


@pytest.mark.asyncio
async def test_monthly_excludes_other_periods_and_statuses(test_db_session, trainer, make_client, make_appointment):
    profile = await make_client(billing_mode=BillingMode.MONTHLY)
    await make_appointment(profile.user_id, start_time=_march(1, hour=0))
    await make_appointment(profile.user_id, start_time=_march(31, hour=23))
    await make_appointment(profile.user_id, start_time=datetime(2025, 2, 28, 23, 0, tzinfo=timezone.utc))
    await make_appointment(profile.user_id, start_time=datetime(2025, 4, 1, 0, 0, tzinfo=timezone.utc))
    await make_appointment(profile.user_id, start_time=_march(10), status=AppointmentStatus.CANCELLED)

    result = await MonthlyInvoicingService(test_db_session).generate_monthly_invoice(
        profile.user_id, trainer.id, generation_date=GENERATION_DATE
    )

    assert result.session_count == 2
    assert result.invoice.amount == Decimal("200.00")


@pytest.mark.asyncio
async def test_monthly_rerun_does_not_double_bill(test_db_session, trainer, make_client, make_appointment):
    profile = await make_client(billing_mode=BillingMode.MONTHLY)
    await make_appointment(profile.user_id, start_time=_march(5))
    service = MonthlyInvoicingService(test_db_session)

    first = await service.generate_monthly_invoice(profile.user_id, trainer.id, generation_date=GENERATION_DATE)
    second = await service.generate_monthly_invoice(profile.user_id, trainer.id, generation_date=GENERATION_DATE)

    assert first.outcome == InvoicingOutcome.INVOICED
    assert second.outcome == InvoicingOutcome.SKIPPED
    assert await _invoice_count(test_db_session) == 1


@pytest.mark.asyncio
async def test_sessions_on_cancelled_invoice_are_not_rebilled(
    test_db_session, context, trainer, make_client, make_appointment
):
    profile = await make_client(billing_mode=BillingMode.MONTHLY)
    await make_appointment(profile.user_id, start_time=_march(5))
    service = MonthlyInvoicingService(test_db_session)
    first = await service.generate_monthly_invoice(profile.user_id, trainer.id, generation_date=GENERATION_DATE)

    await VoidAndSwitchService(test_db_session).void_invoice_and_switch_billing(
        context, first.invoice.id, BillingMode.PER_SESSION
    )
    async with service.unit_of_work():
        await test_db_session.refresh(profile)
        profile.billing_mode = BillingMode.MONTHLY

    again = await service.generate_monthly_invoice(profile.user_id, trainer.id, generation_date=GENERATION_DATE)

    assert again.outcome == InvoicingOutcome.SKIPPED
    assert await _invoice_count(test_db_session) == 1


@pytest.mark.asyncio
async def test_monthly_without_sessions_is_skipped(test_db_session, trainer, make_client):
    profile = await make_client(billing_mode=BillingMode.MONTHLY)

    result = await MonthlyInvoicingService(test_db_session).generate_monthly_invoice(
        profile.user_id, trainer.id, generation_date=GENERATION_DATE
    )

    assert result.outcome == InvoicingOutcome.SKIPPED
    assert await _invoice_count(test_db_session) == 0


@pytest.mark.asyncio
async def test_per_session_client_is_not_billed_monthly(test_db_session, trainer, make_client, make_appointment):
    profile = await make_client(billing_mode=BillingMode.PER_SESSION)
    await make_appointment(profile.user_id, start_time=_march(5))

    result = await MonthlyInvoicingService(test_db_session).generate_monthly_invoice(
        profile.user_id, trainer.id, generation_date=GENERATION_DATE
    )

    assert result.outcome == InvoicingOutcome.SKIPPED


@pytest.mark.asyncio
async def test_explicit_period(test_db_session, trainer, make_client, make_appointment):
    profile = await make_client(billing_mode=BillingMode.MONTHLY)
    await make_appointment(profile.user_id, start_time=_march(5))
    await make_appointment(profile.user_id, start_time=_march(20))

    result = await MonthlyInvoicingService(test_db_session).generate_monthly_invoice(
        profile.user_id,
        trainer.id,
        generation_date=GENERATION_DATE,
        period_start=date(2025, 3, 1),
        period_end=date(2025, 3, 15),
    )

    assert result.session_count == 1


@pytest.mark.asyncio
async def test_batch_runs_clients_on_their_invoice_day(test_db_session, trainer, make_client, make_appointment):
    on_day = await make_client(billing_mode=BillingMode.MONTHLY, full_name="Alex On Day")
    other_day = await make_client(billing_mode=BillingMode.MONTHLY, full_name="Blair Other Day", monthly_invoice_day=15)
    await make_appointment(on_day.user_id, start_time=_march(5))
    await make_appointment(other_day.user_id, start_time=_march(6))

    batch = await MonthlyInvoicingService(test_db_session).process_monthly_invoices(today=GENERATION_DATE)

    assert batch.processed == 1
    assert batch.succeeded == 1
    assert len(batch.invoice_ids) == 1
    invoice = await test_db_session.get(Invoice, batch.invoice_ids[0])
    assert invoice.client_id == on_day.user_id


@pytest.mark.asyncio
async def test_batch_collects_failures_and_continues(test_db_session, trainer, make_client, make_appointment, monkeypatch):
    first = await make_client(billing_mode=BillingMode.MONTHLY, full_name="Alex")
    second = await make_client(billing_mode=BillingMode.MONTHLY, full_name="Blair")
    await make_appointment(first.user_id, start_time=_march(5))
    await make_appointment(second.user_id, start_time=_march(6))
    failing_client = first.user_id

    service = MonthlyInvoicingService(test_db_session)
    real_generate = service.generate_monthly_invoice

    async def flaky_generate(client_id, trainer_id, **kwargs):
        if client_id == failing_client:
            raise RuntimeError("database unavailable")
        return await real_generate(client_id, trainer_id, **kwargs)

    monkeypatch.setattr(service, "generate_monthly_invoice", flaky_generate)

    batch = await service.process_monthly_invoices(today=GENERATION_DATE)

    assert batch.processed == 2
    assert batch.succeeded == 1
    assert len(batch.failures) == 1
    assert batch.failures[0].item_id == failing_client
    assert batch.failures[0].error == "database unavailable"


@pytest.mark.asyncio
async def test_batch_skips_trainers_without_auto_invoicing(test_db_session, trainer, make_client, make_appointment):
    trainer_settings = await TrainerSettingsRepository(test_db_session).get_by_trainer_id(trainer.id)
    trainer_settings.auto_invoicing_enabled = False
    await test_db_session.commit()
    profile = await make_client(billing_mode=BillingMode.MONTHLY)
    await make_appointment(profile.user_id, start_time=_march(5))

    batch = await MonthlyInvoicingService(test_db_session).process_monthly_invoices(today=GENERATION_DATE)

    assert batch.processed == 0


@pytest.mark.parametrize(
    "today,invoice_day,expected",
    [
        (date(2025, 4, 1), 1, True),
        (date(2025, 4, 2), 1, False),
        (date(2025, 2, 28), 31, True),
        (date(2025, 2, 27), 31, False),
        (date(2024, 2, 29), 30, True),
        (date(2025, 3, 31), 31, True),
    ],
)
def test_is_invoice_day_clamps_to_month_end(today, invoice_day, expected):
    assert billing_rules.is_invoice_day(today, invoice_day) is expected


def test_previous_month_period_crosses_year():
    assert billing_rules.previous_month_period(date(2025, 1, 10)) == (date(2024, 12, 1), date(2024, 12, 31))
