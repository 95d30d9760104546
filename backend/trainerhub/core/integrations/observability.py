"""
Observability hooks.
Exceptions are recorded as structured log records tagged with the service name.
"""

from fastapi import Request
import logging

from trainerhub.core.config import settings

logger = logging.getLogger(__name__)


def setup_observability() -> None:
    """
    Announce the observability labels for this process.

    TODO: Export traces through the OTLP endpoint once a collector is deployed.
    """
    logger.info(
        "Setting up observability",
        extra={
            "otel_endpoint": settings.OTEL_EXPORTER_OTLP_ENDPOINT,
            "service_name": settings.OTEL_SERVICE_NAME,
            "environment": settings.OTEL_ENVIRONMENT,
        },
    )


def record_exception(exc: Exception, request: Request) -> None:
    """
    Record an exception in the observability backend.

    Args:
        exc: The exception that occurred
        request: The FastAPI request object
    """
    logger.error(
        f"Exception recorded: {type(exc).__name__}",
        extra={
            "exception_message": str(exc),
            "path": request.url.path,
            "service_name": settings.OTEL_SERVICE_NAME,
        },
    )
