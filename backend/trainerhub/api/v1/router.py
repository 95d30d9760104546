"""
API v1 router that aggregates all endpoint routers.
Billing routes require a trainer token; cron routes require the scheduler's shared secret.
"""

from fastapi import APIRouter, Depends
from trainerhub.api.v1.middleware import require_authentication, require_cron_secret

from trainerhub.api.v1.endpoints import (
    health,
    invoices,
    prepaid,
    appointments,
    cron,
)

api_router = APIRouter()

# Public routes (no authentication required)
api_router.include_router(health.router, tags=["health"])

# Protected routes (authentication required for all endpoints)
# Authentication is enforced via dependency injection at the router level
api_router.include_router(
    invoices.router,
    prefix="/invoices",
    tags=["invoices"],
    dependencies=[Depends(require_authentication)],
)
api_router.include_router(
    prepaid.router,
    prefix="/prepaid",
    tags=["prepaid"],
    dependencies=[Depends(require_authentication)],
)
api_router.include_router(
    appointments.router,
    prefix="/appointments",
    tags=["appointments"],
    dependencies=[Depends(require_authentication)],
)

# Scheduler routes
api_router.include_router(
    cron.router,
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(require_cron_secret)],
)
