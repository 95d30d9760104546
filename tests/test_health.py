"""
Health endpoint tests using pytest-asyncio and httpx.AsyncClient.
"""

from datetime import datetime, timedelta, timezone

import pytest

from trainerhub.models import AppointmentStatus


@pytest.mark.asyncio
async def test_health_endpoint(test_client):
    """Test the health check endpoint returns expected structure."""
    response = await test_client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "ok"
    assert data["uptime"].startswith("PT")
    assert data["checks"] == {"database": "ok", "scheduler": "ok"}
    assert "version" in data


@pytest.mark.asyncio
async def test_health_reports_stale_scheduler(test_client, make_client, make_appointment):
    profile = await make_client()
    two_days_ago = datetime.now(timezone.utc) - timedelta(days=2)
    await make_appointment(profile.user_id, start_time=two_days_ago, status=AppointmentStatus.SCHEDULED)

    response = await test_client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["checks"]["scheduler"] == "stale"


@pytest.mark.asyncio
async def test_root_health_endpoint(test_client):
    response = await test_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
