"""
Prompt & Pause Backend — FastAPI Dependencies
==============================================

What:  Request-scoped accessors for the components built in the lifespan,
       plus the authentication and admin guards.
How:   Components are read from `request.app.state`, never from module
       globals, so tests swap them with `app.dependency_overrides`.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from promptpause.database import get_db_session
from promptpause.exceptions import AuthorizationError
from promptpause.services.auth_service import (
    AuthenticatedUser,
    HostedAuthClient,
    extract_bearer_token,
    is_admin,
)
from promptpause.services.maintenance_service import MaintenanceService
from promptpause.services.prompt_service import PromptService


def get_auth_client(request: Request) -> HostedAuthClient:
    return request.app.state.auth_client


def get_prompt_service(request: Request) -> PromptService:
    return request.app.state.prompt_service


def get_maintenance_service(request: Request) -> MaintenanceService:
    return request.app.state.maintenance_service


async def get_current_user(
    request: Request,
    auth_client: HostedAuthClient = Depends(get_auth_client),
) -> AuthenticatedUser:
    token = extract_bearer_token(request.headers.get("Authorization"))
    user = await auth_client.verify_token(token)
    request.state.user_id = str(user.id)
    return user


async def require_admin(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AuthenticatedUser:
    """Authenticated user who is also an active admin; 403 otherwise."""
    if not await is_admin(db, user.email):
        raise AuthorizationError(context={"user_id": str(user.id)})
    return user
