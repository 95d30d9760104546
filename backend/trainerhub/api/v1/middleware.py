"""
API middleware for authentication and common concerns.
Centralized authentication enforcement for all protected routes.
"""

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from trainerhub.core.config import settings
from trainerhub.core.context import BillingContext
from trainerhub.core.security import decode_access_token
from trainerhub.db.session import get_db
from trainerhub.db.repositories.user_repository import UserRepository
from trainerhub.models.user import UserRole

security = HTTPBearer()
cron_security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _parse_uuid(value: Optional[str], detail: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise _unauthorized(detail)


async def require_authentication(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> BillingContext:
    """
    Centralized authentication dependency.
    This should be used as a dependency on all protected routes.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(
            context: BillingContext = Depends(require_authentication)
        ):
            ...

    Args:
        credentials: HTTP Bearer token credentials (injected by FastAPI)
        db: Database session

    Returns:
        BillingContext for the authenticated trainer

    Raises:
        HTTPException: If authentication fails or the user is not a trainer
    """
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid authentication token")

    if not payload.get("sub"):
        raise _unauthorized("Token missing user ID")
    user_id = _parse_uuid(payload.get("sub"), "Invalid user ID in token")
    if not payload.get("workspace_id"):
        raise _unauthorized("Token missing workspace ID")
    workspace_id = _parse_uuid(payload.get("workspace_id"), "Invalid workspace ID in token")

    user = await UserRepository(db).get_in_workspace(user_id, workspace_id)
    if not user:
        raise _unauthorized("User not found")

    if user.role != UserRole.TRAINER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only trainers can manage billing",
        )

    return BillingContext(workspace_id=user.workspace_id, actor_id=user.id)


async def require_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(cron_security),
) -> None:
    """Cron routes are called by the external scheduler with the shared secret as bearer token."""
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode(), settings.CRON_SECRET.encode()
    ):
        raise _unauthorized("Invalid cron secret")
