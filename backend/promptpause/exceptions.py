"""
Prompt & Pause Backend — Exception Hierarchy
=============================================

What:  Application-specific exceptions, each mapped to one HTTP status by the
       global handlers in main.py.
How:   Every exception carries a user-safe `message` and a `context` dict that
       is logged (and for 4xx errors echoed as `details`).

Exception Hierarchy:
    PromptPauseError (base)
    ├── ValidationError                → 400
    │   └── InvalidWindowStateError    → 400
    ├── AuthenticationError            → 401
    ├── AuthorizationError             → 403
    ├── NotFoundError                  → 404
    ├── RateLimitExceededError         → 429
    ├── InfrastructureError            → 500
    │   ├── EmailProviderUnavailableError
    │   └── DatabaseError
    ├── AuthServiceUnavailableError    → 503
    └── ProviderError                  (never reaches HTTP)
        ├── ProviderUnavailableError
        │   └── ProviderAuthError
        └── ProviderResponseError

Provider errors are raised by the text-generation providers and consumed by
the fallback chain, which logs them and moves to the next provider.
"""

from typing import Any, Dict, Optional


class PromptPauseError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Client errors
# ══════════════════════════════════════════════════════════════════════════

class ValidationError(PromptPauseError):
    """Client input failed a business rule (weekend-only dates, time ranges, ...)."""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidWindowStateError(ValidationError):
    """
    The maintenance window cannot take the requested transition.

    Raised before any email is sent, e.g. notify-complete on a window that
    was never started, or a second notify-start.
    """

    def __init__(
        self,
        message: str,
        window_id: Optional[str] = None,
        status: Optional[str] = None,
    ):
        ctx: Dict[str, Any] = {}
        if window_id:
            ctx["window_id"] = window_id
        if status:
            ctx["status"] = status
        super().__init__(message=message, context=ctx)
        self.status = status


class AuthenticationError(PromptPauseError):
    """Missing, malformed or rejected bearer token. HTTP 401."""

    def __init__(self, message: str = "Unauthorized", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class AuthorizationError(PromptPauseError):
    """Authenticated caller lacks admin rights. HTTP 403."""

    def __init__(
        self,
        message: str = "Forbidden - Admin access required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PromptPauseError):
    """A requested record does not exist. HTTP 404."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(PromptPauseError):
    """Client exceeded a rate-limit rule. HTTP 429 with Retry-After."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


# ══════════════════════════════════════════════════════════════════════════
# Infrastructure errors
# ══════════════════════════════════════════════════════════════════════════

class InfrastructureError(PromptPauseError):
    """
    A collaborator the request cannot do without is unreachable.

    Aborts a maintenance notification run. HTTP 500 with a generic message;
    the context is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A required service is unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EmailProviderUnavailableError(InfrastructureError):
    """The email provider cannot be reached or rejects our credentials."""

    def __init__(
        self,
        message: str = "Email service is unavailable",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class DatabaseError(InfrastructureError):
    """A database query failed unexpectedly."""

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthServiceUnavailableError(PromptPauseError):
    """The hosted auth provider could not be reached after retries. HTTP 503."""

    def __init__(
        self,
        message: str = "Authentication service unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ══════════════════════════════════════════════════════════════════════════
# Text-generation provider errors (recovered inside the fallback chain)
# ══════════════════════════════════════════════════════════════════════════

class ProviderError(PromptPauseError):
    """Base for a single failed provider attempt."""

    def __init__(
        self,
        message: str,
        provider: str,
        model: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        if model:
            ctx["model"] = model
        super().__init__(message=message, context=ctx)
        self.provider = provider
        self.model = model


class ProviderUnavailableError(ProviderError):
    """Network failure, timeout or non-2xx response from a provider."""

    def __init__(
        self,
        message: str,
        provider: str,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        ctx: Dict[str, Any] = {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, provider=provider, model=model, context=ctx)
        self.status_code = status_code


class ProviderAuthError(ProviderUnavailableError):
    """401/403 from a provider. The chain skips the provider's other models."""


class ProviderResponseError(ProviderError):
    """Provider answered, but the body failed schema or content validation."""
