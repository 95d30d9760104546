"""
Shared slowapi limiter.
Lives outside main so endpoint modules can decorate routes without circular imports.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from trainerhub.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED,
)

DEFAULT_RATE_LIMIT = f"{settings.RATE_LIMIT_PER_MINUTE}/minute"
