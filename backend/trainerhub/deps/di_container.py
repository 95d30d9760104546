"""
Dependency injection container using dependency-injector.
Wires request-scoped services and controllers around a database session.
"""

from dependency_injector import containers, providers

from trainerhub.services.health_service import HealthService
from trainerhub.controllers.health_controller import HealthController


class Container(containers.DeclarativeContainer):
    """Dependency injection container."""

    # Configuration
    config = providers.Configuration()

    # Services
    health_service = providers.Factory(
        HealthService,
    )

    # Controllers
    health_controller = providers.Factory(
        # Session is passed per request: health_controller(health_service__session=db)
        HealthController,
        health_service=health_service,
    )


# Global container instance
_container: Container = None


def get_container() -> Container:
    """Get the global dependency injection container."""
    global _container
    if _container is None:
        _container = Container()
    return _container
