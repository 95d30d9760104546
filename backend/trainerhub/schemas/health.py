"""
Health check response schemas.
"""

from pydantic import BaseModel
from typing import Dict


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    uptime: str
    version: str
    checks: Dict[str, str] = {}
