"""
Health service.
Provides health check functionality.
"""

from datetime import datetime, timedelta, timezone
import time
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.services.base_service import BaseService
from trainerhub.db.repositories.health_repository import HealthRepository
from trainerhub.core.config import settings
from trainerhub.schemas.health import HealthResponse

# Process start, shared by every request-scoped service instance
STARTED_AT = time.time()


class HealthService(BaseService):
    """Service for health check operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.health_repo = HealthRepository(session)

    async def _scheduler_check(self) -> str:
        """Stale when ended appointments have waited past the allowed lag for the cron run."""
        cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.SCHEDULER_MAX_LAG_HOURS)
        try:
            backlog = await self.health_repo.count_unbilled_backlog(cutoff)
        except SQLAlchemyError:
            return "error"
        return "ok" if backlog == 0 else "stale"

    async def get_health(self) -> HealthResponse:
        """
        Get system health status.

        Returns:
            HealthResponse with status, uptime, and checks
        """
        uptime_seconds = int(time.time() - STARTED_AT)
        uptime_str = f"PT{uptime_seconds}S"  # ISO 8601 duration format

        checks = {
            "database": "ok" if await self.health_repo.check_database() else "error",
        }
        if checks["database"] == "ok":
            checks["scheduler"] = await self._scheduler_check()

        status = "ok" if all(check == "ok" for check in checks.values()) else "degraded"

        return HealthResponse(
            status=status,
            uptime=uptime_str,
            version=settings.VERSION,
            checks=checks,
        )
