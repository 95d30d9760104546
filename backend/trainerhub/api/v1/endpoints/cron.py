"""
Cron endpoints called by the external scheduler.
Every job is safe to re-run; per-item failures are reported in the body.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.controllers.cron_controller import CronController
from trainerhub.core.rate_limit import limiter, DEFAULT_RATE_LIMIT
from trainerhub.db.session import get_db
from trainerhub.schemas.cron import CronRunResponse

router = APIRouter()


@router.post("/complete-appointments", response_model=CronRunResponse)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def complete_appointments(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CronRunResponse:
    """Complete appointments that have ended and run per-session invoicing."""
    controller = CronController(db)
    return await controller.complete_appointments()


@router.post("/generate-invoices", response_model=CronRunResponse)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def generate_invoices(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CronRunResponse:
    """Monthly invoices for clients whose invoice day is today."""
    controller = CronController(db)
    return await controller.generate_invoices()


@router.post("/mark-overdue", response_model=CronRunResponse)
@limiter.limit(DEFAULT_RATE_LIMIT)
async def mark_overdue(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CronRunResponse:
    """SENT invoices past their due date become OVERDUE."""
    controller = CronController(db)
    return await controller.mark_overdue()
