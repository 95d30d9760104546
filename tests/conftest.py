"""
Pytest configuration and fixtures.
Provides an in-memory database per test, billing fixtures and an HTTP client
wired to the same session.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
import uuid

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from trainerhub.main import app
from trainerhub.core.config import settings
from trainerhub.core.context import BillingContext
from trainerhub.core.rate_limit import limiter
from trainerhub.core.security import create_access_token
from trainerhub.db.base import Base
from trainerhub.db.session import get_db
from trainerhub.models import (
    Appointment,
    AppointmentStatus,
    BillingMode,
    ClientProfile,
    TrainerSettings,
    User,
    UserRole,
    Workspace,
)


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

limiter.enabled = False


@pytest.fixture(scope="function")
async def test_db_session():
    """
    Create a test database session.
    Uses in-memory SQLite for fast tests.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    test_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with test_session_maker() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
async def workspace(test_db_session):
    ws = Workspace(name="Peak Performance")
    test_db_session.add(ws)
    await test_db_session.commit()
    return ws


@pytest.fixture
async def trainer(test_db_session, workspace):
    """Trainer with default invoicing settings: 30 due days, invoices sent immediately."""
    user = User(
        workspace_id=workspace.id,
        email=f"trainer-{uuid.uuid4().hex[:8]}@example.com",
        full_name="Taylor Trainer",
        role=UserRole.TRAINER,
    )
    test_db_session.add(user)
    await test_db_session.flush()
    test_db_session.add(
        TrainerSettings(
            trainer_id=user.id,
            workspace_id=workspace.id,
            default_invoice_due_days=30,
            monthly_invoice_day=1,
            auto_invoicing_enabled=True,
            auto_send_invoices=True,
            default_session_rate=Decimal("100.00"),
            default_group_session_rate=Decimal("60.00"),
        )
    )
    await test_db_session.commit()
    return user


@pytest.fixture
def context(workspace, trainer) -> BillingContext:
    return BillingContext(workspace_id=workspace.id, actor_id=trainer.id)


@pytest.fixture
def make_client(test_db_session, workspace):
    """Factory for a client user plus billing profile."""

    async def _make(
        billing_mode: BillingMode = BillingMode.PER_SESSION,
        session_rate: str = "100.00",
        prepaid_balance: Optional[str] = None,
        prepaid_target_balance: Optional[str] = None,
        group_session_rate: Optional[str] = None,
        full_name: str = "Casey Client",
        **profile_fields,
    ) -> ClientProfile:
        user = User(
            workspace_id=workspace.id,
            email=f"client-{uuid.uuid4().hex[:8]}@example.com",
            full_name=full_name,
            role=UserRole.CLIENT,
        )
        test_db_session.add(user)
        await test_db_session.flush()
        profile = ClientProfile(
            user_id=user.id,
            workspace_id=workspace.id,
            billing_mode=billing_mode,
            session_rate=Decimal(session_rate),
            group_session_rate=Decimal(group_session_rate) if group_session_rate else None,
            prepaid_balance=Decimal(prepaid_balance) if prepaid_balance is not None else None,
            prepaid_target_balance=Decimal(prepaid_target_balance) if prepaid_target_balance else None,
            **profile_fields,
        )
        test_db_session.add(profile)
        await test_db_session.commit()
        return profile

    return _make


@pytest.fixture
def make_appointment(test_db_session, workspace, trainer):
    """Factory for an appointment with the fixture trainer; completed by default."""

    async def _make(
        client_id,
        start_time: Optional[datetime] = None,
        status: AppointmentStatus = AppointmentStatus.COMPLETED,
        is_group_session: bool = False,
        trainer_id=None,
    ) -> Appointment:
        start_time = start_time or datetime(2025, 3, 5, 10, 0, tzinfo=timezone.utc)
        appointment = Appointment(
            workspace_id=workspace.id,
            trainer_id=trainer_id or trainer.id,
            client_id=client_id,
            start_time=start_time,
            end_time=start_time + timedelta(hours=1),
            status=status,
            is_group_session=is_group_session,
        )
        test_db_session.add(appointment)
        await test_db_session.commit()
        return appointment

    return _make


@pytest.fixture(scope="function")
async def test_client(test_db_session):
    """
    Create a test HTTP client.
    Routes share the test session through the get_db override.
    """

    async def override_get_db():
        yield test_db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(workspace, trainer):
    token = create_access_token({"sub": str(trainer.id), "workspace_id": str(workspace.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {settings.CRON_SECRET}"}
