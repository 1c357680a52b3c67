"""
Prompt & Pause Backend — Resend Email Client
=============================================

What:  Sends one batch of transactional emails through Resend's batch API.
Who:   MaintenanceNotifier, one call per batch of at most 100 recipients.
How:   POST {api_url}/emails/batch with `x-batch-validation: permissive`, so
       one bad address is reported by index instead of failing the batch.

Outcome mapping:
    transport error / timeout  → EmailProviderUnavailableError (aborts the run)
    401 / 403                  → EmailProviderUnavailableError (aborts the run)
    other non-2xx              → every message BATCH_REJECTED (run continues)
    2xx, unreadable body       → every message MALFORMED_RESPONSE
    2xx, `errors[i]`           → message i REJECTED (once, however often reported)
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from promptpause.exceptions import EmailProviderUnavailableError
from promptpause.schemas.maintenance import FailureKind, RecipientFailure

logger = logging.getLogger(__name__)

# Resend rejects batch requests with more than 100 messages
MAX_BATCH_SIZE = 100


@dataclass(frozen=True)
class EmailClientConfig:
    api_key: Optional[str]
    sender: str
    api_url: str = "https://api.resend.com"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


class _BatchSent(BaseModel):
    id: str


class _BatchError(BaseModel):
    index: int
    message: Optional[str] = None


class _BatchResponse(BaseModel):
    data: List[_BatchSent] = Field(default_factory=list)
    errors: List[_BatchError] = Field(default_factory=list)


class ResendEmailClient:
    """
    Batch email sender.

    Args:
        config: API key, sender address, base URL and request timeout
        client: Shared httpx.AsyncClient. When omitted the email client
                creates and owns one.
    """

    def __init__(self, config: EmailClientConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def ensure_configured(self) -> None:
        if not self.is_configured:
            raise EmailProviderUnavailableError(
                "Email service is not configured",
                context={"missing": "RESEND_API_KEY"},
            )

    async def send_batch(self, messages: Sequence[EmailMessage]) -> List[RecipientFailure]:
        """
        Dispatch one batch. Returns the recipients that were not accepted.

        Raises:
            EmailProviderUnavailableError: unconfigured, unreachable, or
                credentials rejected. Nothing in the batch can be assumed sent.
        """
        self.ensure_configured()
        if not messages:
            return []
        if len(messages) > MAX_BATCH_SIZE:
            raise ValueError(f"batch of {len(messages)} exceeds provider maximum {MAX_BATCH_SIZE}")

        payload = [
            {"from": self.config.sender, "to": [m.to], "subject": m.subject, "html": m.html}
            for m in messages
        ]
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "x-batch-validation": "permissive",
        }
        start = time.perf_counter()

        try:
            response = await self._client.post(
                f"{self.config.api_url.rstrip('/')}/emails/batch",
                json=payload,
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except httpx.HTTPError as e:
            raise EmailProviderUnavailableError(
                f"Email provider unreachable: {type(e).__name__}",
                context={"batch_size": len(messages)},
            ) from e

        status = response.status_code
        if status in (401, 403):
            raise EmailProviderUnavailableError(
                "Email provider rejected credentials",
                status_code=status,
            )

        if not response.is_success:
            logger.warning(
                "Email batch of %d rejected with HTTP %d: %s",
                len(messages),
                status,
                response.text[:200],
            )
            return [
                RecipientFailure(
                    email=m.to,
                    error_kind=FailureKind.BATCH_REJECTED,
                    message=f"HTTP {status}",
                )
                for m in messages
            ]

        try:
            body = _BatchResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error("Email batch accepted but response unreadable: %s", str(e))
            return [
                RecipientFailure(
                    email=m.to,
                    error_kind=FailureKind.MALFORMED_RESPONSE,
                    message="unreadable provider response",
                )
                for m in messages
            ]

        # A message can be reported more than once; the first error wins
        first_errors = {}
        for err in body.errors:
            if 0 <= err.index < len(messages):
                first_errors.setdefault(err.index, err)

        failures = [
            RecipientFailure(
                email=messages[index].to,
                error_kind=FailureKind.REJECTED,
                message=first_errors[index].message,
            )
            for index in sorted(first_errors)
        ]
        logger.debug(
            "Email batch of %d sent in %.0fms (%d rejected)",
            len(messages),
            (time.perf_counter() - start) * 1000,
            len(failures),
        )
        return failures

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
