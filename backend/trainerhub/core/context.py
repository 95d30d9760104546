"""
Explicit caller context threaded through every billing operation.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class BillingContext:
    """Who is acting, and in which workspace."""
    workspace_id: UUID
    actor_id: UUID
