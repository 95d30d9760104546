"""
Cron controller.
Runs the scheduled billing jobs and reports per-run counts.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.controllers.base_controller import BaseController
from trainerhub.services.appointment_service import AppointmentService
from trainerhub.services.billing_results import BatchResult
from trainerhub.services.invoice_service import InvoiceService
from trainerhub.services.monthly_invoicing_service import MonthlyInvoicingService
from trainerhub.schemas.cron import BatchFailureResponse, CronRunResponse


class CronController(BaseController):
    """Controller for scheduled jobs."""

    def __init__(self, session: AsyncSession):
        self.appointment_service = AppointmentService(session)
        self.monthly_invoicing_service = MonthlyInvoicingService(session)
        self.invoice_service = InvoiceService(session)

    async def complete_appointments(self) -> CronRunResponse:
        return self._to_response("complete-appointments", await self.appointment_service.complete_past_appointments())

    async def generate_invoices(self) -> CronRunResponse:
        return self._to_response("generate-invoices", await self.monthly_invoicing_service.process_monthly_invoices())

    async def mark_overdue(self) -> CronRunResponse:
        return self._to_response("mark-overdue", await self.invoice_service.mark_overdue_invoices())

    @staticmethod
    def _to_response(job: str, batch: BatchResult) -> CronRunResponse:
        return CronRunResponse(
            job=job,
            processed=batch.processed,
            succeeded=batch.succeeded,
            skipped=batch.skipped,
            invoice_ids=batch.invoice_ids,
            failures=[BatchFailureResponse.model_validate(failure) for failure in batch.failures],
        )
