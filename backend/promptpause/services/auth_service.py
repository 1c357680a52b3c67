"""
Prompt & Pause Backend — Authentication
========================================

What:  Verifies bearer tokens against the hosted auth provider and checks
       admin membership.
How:   GET {auth_url}/auth/v1/user with the caller's token and the project's
       anon key. Transport failures and 5xx answers are retried with tenacity
       (exponential backoff with jitter); once retries are exhausted the
       request fails with AuthServiceUnavailableError (503). Any 4xx is a
       rejected token (401).
Who:   dependencies.get_current_user / require_admin.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from promptpause.exceptions import (
    AuthenticationError,
    AuthServiceUnavailableError,
    DatabaseError,
)
from promptpause.models.user import AdminUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthConfig:
    auth_url: Optional[str]
    anon_key: Optional[str]
    timeout_seconds: float = 10.0
    retry_max_attempts: int = 3
    retry_min_wait: float = 0.5
    retry_max_wait: float = 4.0


@dataclass
class AuthenticatedUser:
    id: uuid.UUID
    email: str

    def __str__(self) -> str:
        return f"User({self.id}, {self.email})"


class _AuthUserPayload(BaseModel):
    id: uuid.UUID
    email: Optional[str] = None


class _AuthServerError(Exception):
    """5xx from the auth provider; retried like a transport failure."""

    def __init__(self, status_code: int):
        super().__init__(f"auth provider returned HTTP {status_code}")
        self.status_code = status_code


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError(context={"reason": "missing authorization header"})

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError(context={"reason": "malformed authorization header"})
    return parts[1]


class HostedAuthClient:
    def __init__(self, config: AuthConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    async def verify_token(self, token: str) -> AuthenticatedUser:
        """
        Resolve a bearer token to the user it belongs to.

        Raises:
            AuthenticationError: token rejected, or the user has no e-mail
            AuthServiceUnavailableError: provider unconfigured or unreachable
        """
        if not self.config.auth_url or not self.config.anon_key:
            raise AuthServiceUnavailableError(
                "Authentication service is not configured",
                context={"missing": "AUTH_URL/AUTH_ANON_KEY"},
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TransportError, _AuthServerError)),
            stop=stop_after_attempt(self.config.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.config.retry_min_wait,
                max=self.config.retry_max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            response = await retrying(self._fetch_user, token)
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error("Auth provider unavailable after retries: %s", str(last))
            raise AuthServiceUnavailableError(
                context={"attempts": self.config.retry_max_attempts}
            ) from e

        if not response.is_success:
            logger.info("Token rejected by auth provider (HTTP %d)", response.status_code)
            raise AuthenticationError(context={"status_code": response.status_code})

        try:
            payload = _AuthUserPayload.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error("Auth provider returned an unreadable user: %s", str(e))
            raise AuthenticationError(context={"reason": "unreadable user payload"}) from e

        if not payload.email:
            raise AuthenticationError(context={"reason": "user has no email"})
        return AuthenticatedUser(id=payload.id, email=payload.email)

    async def _fetch_user(self, token: str) -> httpx.Response:
        response = await self._client.get(
            f"{self.config.auth_url.rstrip('/')}/auth/v1/user",
            headers={
                "Authorization": f"Bearer {token}",
                "apikey": self.config.anon_key,
            },
            timeout=self.config.timeout_seconds,
        )
        if response.status_code >= 500:
            raise _AuthServerError(response.status_code)
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def is_admin(db: AsyncSession, email: str) -> bool:
    """Active admin_users row with this e-mail, compared case-insensitively."""
    query = select(AdminUser.id).where(
        func.lower(AdminUser.email) == email.strip().lower(),
        AdminUser.is_active.is_(True),
    )
    try:
        result = await db.execute(query.limit(1))
    except SQLAlchemyError as e:
        logger.error("Admin lookup failed: %s", str(e))
        raise DatabaseError(context={"operation": "is_admin"}) from e
    return result.scalar_one_or_none() is not None
