"""
Cron job response schemas.
"""

from pydantic import BaseModel
from typing import List
from uuid import UUID


class BatchFailureResponse(BaseModel):
    item_id: UUID
    error: str

    class Config:
        from_attributes = True


class CronRunResponse(BaseModel):
    """Per-run counts; failed items are listed, not fatal."""
    job: str
    processed: int
    succeeded: int
    skipped: int
    invoice_ids: List[UUID] = []
    failures: List[BatchFailureResponse] = []
