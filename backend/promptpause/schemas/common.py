"""
Prompt & Pause Backend — Shared Response Schemas
=================================================
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Error body returned by every exception handler.

    Example:
        {
            "error": "invalid_window_state",
            "message": "Start notification was never sent for this window",
            "details": {"window_id": "5b1c...", "status": "scheduled"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    prompt_providers: List[str] = Field(
        description="Providers in the fallback chain, in the order they are tried"
    )
    email: str = Field(description="configured or not_configured")
    uptime_seconds: float
