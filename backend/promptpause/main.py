"""
Prompt & Pause Backend — FastAPI Application Factory
=====================================================

What:  Creates and configures the FastAPI application instance.
Who:   uvicorn (`uvicorn promptpause.main:app`), tests via create_app().

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │  Middleware: RateLimit → RequestID → Logging → GZip/CORS │
    │                                                          │
    │  Routes:                                                 │
    │   POST /api/prompts/generate   /api/admin/maintenance/*  │
    │   GET  /health                                           │
    │                                                          │
    │  app.state (built in lifespan from Settings):            │
    │   prompt_generator  prompt_service  email_client         │
    │   notifier  maintenance_service  auth_client             │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check (warn, never exit) → build components
    Shutdown: close shared httpx clients → dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from promptpause import __version__
from promptpause.config import Settings, settings
from promptpause.database import dispose_engine
from promptpause.exceptions import (
    AuthenticationError,
    AuthorizationError,
    AuthServiceUnavailableError,
    InfrastructureError,
    InvalidWindowStateError,
    NotFoundError,
    PromptPauseError,
    RateLimitExceededError,
    ValidationError,
)
from promptpause.middleware.logging import RequestLoggingMiddleware
from promptpause.middleware.rate_limit import RateLimitMiddleware, RateLimitRule
from promptpause.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from promptpause.routes import health, maintenance, prompts
from promptpause.services.auth_service import AuthConfig, HostedAuthClient
from promptpause.services.email_client import EmailClientConfig, ResendEmailClient
from promptpause.services.maintenance_service import EmailBranding, MaintenanceService
from promptpause.services.notifier import MaintenanceNotifier, NotifierConfig
from promptpause.services.prompt_generator import build_prompt_generator
from promptpause.services.prompt_service import PromptService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once. Every record carries the current
    request id ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Components
# ══════════════════════════════════════════════════════════════════════════

def build_components(app: FastAPI, config: Settings) -> None:
    """Translate Settings into explicit component configs and store them on app.state."""
    generator = build_prompt_generator(config)

    email_client = ResendEmailClient(
        EmailClientConfig(
            api_key=config.resend_api_key or None,
            sender=f"{config.app_name} <{config.email_from_address}>",
            api_url=config.resend_api_url,
            timeout_seconds=config.email_timeout_seconds,
        )
    )
    notifier = MaintenanceNotifier(
        email_client,
        NotifierConfig(
            batch_size=config.maintenance_batch_size,
            batch_delay_seconds=config.maintenance_batch_delay_ms / 1000,
        ),
    )
    auth_client = HostedAuthClient(
        AuthConfig(
            auth_url=config.auth_url or None,
            anon_key=config.auth_anon_key or None,
            timeout_seconds=config.auth_timeout_seconds,
            retry_max_attempts=config.retry_max_attempts,
            retry_min_wait=config.retry_min_wait,
            retry_max_wait=config.retry_max_wait,
        )
    )

    app.state.prompt_generator = generator
    app.state.prompt_service = PromptService(generator)
    app.state.email_client = email_client
    app.state.notifier = notifier
    app.state.maintenance_service = MaintenanceService(
        notifier, EmailBranding(app_name=config.app_name, app_url=config.app_url)
    )
    app.state.auth_client = auth_client


async def close_components(app: FastAPI) -> None:
    for name in ("prompt_generator", "email_client", "auth_client"):
        component = getattr(app.state, name, None)
        if component is not None:
            await component.aclose()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Prompt & Pause Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: prompts still work through the local fallback
        logger.error("Configuration error: %s", str(e))

    build_components(app, settings)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Prompt & Pause Backend shutting down...")
    await close_components(app)
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, error: str, message: str, details=None, headers=None) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("") or None}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler hierarchy:
        ValidationError (incl. InvalidWindowStateError) → 400
        AuthenticationError                             → 401
        AuthorizationError                              → 403
        NotFoundError                                   → 404
        RateLimitExceededError                          → 429
        InfrastructureError (email, database)           → 500, generic message
        AuthServiceUnavailableError                     → 503
        PromptPauseError / Exception                    → 500, generic message

    5xx responses never echo exception context; it is logged server-side.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        code = "invalid_window_state" if isinstance(exc, InvalidWindowStateError) else "validation_error"
        return _error(400, code, exc.message, details=exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        logger.info("Authentication failed: %s", exc.context)
        return _error(401, "unauthorized", exc.message, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning("Authorization failed: %s", exc.context)
        return _error(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error(
            429,
            "rate_limit_exceeded",
            exc.message,
            details=exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(InfrastructureError)
    async def handle_infrastructure_error(request: Request, exc: InfrastructureError):
        logger.error("Infrastructure error: %s | Context: %s", exc.message, exc.context)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(AuthServiceUnavailableError)
    async def handle_auth_unavailable(request: Request, exc: AuthServiceUnavailableError):
        logger.error("Auth service unavailable: %s", exc.context)
        return _error(503, "service_unavailable", exc.message, headers={"Retry-After": "30"})

    @app.exception_handler(PromptPauseError)
    async def handle_app_error(request: Request, exc: PromptPauseError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Prompt & Pause API",
        description=(
            "Daily reflection prompts from a multi-provider AI fallback chain, "
            "and admin tooling for weekend maintenance windows."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Executed in reverse order of addition: RateLimit runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rule=RateLimitRule(
            name="default",
            requests=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window,
        ),
        rules=[
            RateLimitRule(
                name="prompt_generation",
                requests=settings.prompt_rate_limit_requests,
                window_seconds=settings.prompt_rate_limit_window,
                path_prefix="/api/prompts/generate",
            ),
        ],
    )

    register_exception_handlers(app)

    app.include_router(prompts.router)
    app.include_router(maintenance.router)
    app.include_router(health.router)

    return app


app = create_app()
