"""
FastAPI application entry point.
Assembles the app with routers, middleware, lifespan handlers, and exception handlers.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession

from trainerhub.api.v1.router import api_router
from trainerhub.core.config import settings
from trainerhub.core.exceptions import setup_exception_handlers
from trainerhub.core.logging import setup_logging
from trainerhub.core.rate_limit import limiter
from trainerhub.core.integrations.observability import setup_observability
from trainerhub.db.session import init_db, close_db, get_db
from trainerhub.deps import di_container
from trainerhub.schemas.health import HealthResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    Initializes logging, observability, the DB engine and the DI container.
    """
    # Startup
    setup_logging()
    setup_observability()

    await init_db()

    container = di_container.Container()
    container.config.from_dict({
        "database_url": settings.DATABASE_URL,
    })
    app.state.container = container
    di_container._container = container

    yield

    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Invoicing and prepaid billing for personal trainers",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Root-level health endpoint for load balancers
    from trainerhub.api.v1.endpoints.health import get_health

    @app.get("/health", response_model=HealthResponse, include_in_schema=False)
    async def root_health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
        """Root-level health check endpoint."""
        return await get_health(db)

    setup_exception_handlers(app)

    return app


app = create_app()
