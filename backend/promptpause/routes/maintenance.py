"""
Prompt & Pause Backend — Maintenance Admin Routes
==================================================

What:  Admin-only management of maintenance windows, the maintenance-mode
       switch, and the start/complete notification runs.
Who:   The admin panel. Every route depends on require_admin (401/403).

Route order matters: `/status` and `/enable` are declared before `/{window_id}`
so they are never parsed as window ids.

Notify responses:
    200  {"success": true, "message": ..., "batch_result": SendSummary}
    400  window in the wrong state (nothing sent)
    404  unknown window
    500  email provider or recipient store unavailable (run aborted)

The notify body is optional; an empty or unreadable body means no options.
"""

import json
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from promptpause.database import get_db_session
from promptpause.dependencies import get_maintenance_service, require_admin
from promptpause.schemas.common import ErrorResponse
from promptpause.schemas.maintenance import (
    MaintenanceModeResponse,
    MaintenanceModeUpdate,
    MaintenanceStatus,
    MaintenanceWindowCreate,
    MaintenanceWindowDetail,
    MaintenanceWindowListResponse,
    MaintenanceWindowResponse,
    MaintenanceWindowUpdate,
    NotifyCompleteRequest,
    NotifyResponse,
    NotifyStartRequest,
)
from promptpause.services.auth_service import AuthenticatedUser
from promptpause.services.maintenance_service import MaintenanceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/maintenance", tags=["Maintenance"])

_ERRORS = {
    400: {"description": "Validation failed", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Admin access required", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}
_ERRORS_WITH_404 = {**_ERRORS, 404: {"description": "Window not found", "model": ErrorResponse}}


# ── Collection ────────────────────────────────────────────────────────────

@router.get("", response_model=MaintenanceWindowListResponse, responses=_ERRORS)
async def list_windows(
    status: Optional[MaintenanceStatus] = Query(default=None, description="Filter by status"),
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceWindowListResponse:
    return await service.list_windows(db, status=status)


@router.post(
    "",
    response_model=MaintenanceWindowResponse,
    status_code=201,
    responses=_ERRORS,
    summary="Schedule a weekend maintenance window",
)
async def create_window(
    data: MaintenanceWindowCreate,
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceWindowResponse:
    window = await service.create_window(db, data, created_by=admin.email)
    return MaintenanceWindowResponse.model_validate(window)


# ── Maintenance mode ──────────────────────────────────────────────────────

@router.get("/status", response_model=MaintenanceModeResponse, responses=_ERRORS)
async def get_mode(
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceModeResponse:
    return await service.get_mode(db)


@router.put("/status", response_model=MaintenanceModeResponse, responses=_ERRORS)
async def set_mode(
    data: MaintenanceModeUpdate,
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceModeResponse:
    return await service.set_mode(db, data.is_enabled, admin.email, notes=data.notes)


@router.post("/enable", response_model=MaintenanceModeResponse, responses=_ERRORS)
async def enable_mode(
    notes: Optional[str] = Body(default=None, embed=True, max_length=2000),
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceModeResponse:
    return await service.set_mode(db, True, admin.email, notes=notes)


# ── Single window ─────────────────────────────────────────────────────────

@router.get("/{window_id}", response_model=MaintenanceWindowDetail, responses=_ERRORS_WITH_404)
async def get_window(
    window_id: UUID,
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceWindowDetail:
    window = await service.get_window(db, window_id)
    return MaintenanceWindowDetail.model_validate(window)


@router.put("/{window_id}", response_model=MaintenanceWindowResponse, responses=_ERRORS_WITH_404)
async def update_window(
    window_id: UUID,
    data: MaintenanceWindowUpdate,
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceWindowResponse:
    window = await service.update_window(db, window_id, data)
    return MaintenanceWindowResponse.model_validate(window)


@router.delete("/{window_id}", response_model=MaintenanceWindowResponse, responses=_ERRORS_WITH_404)
async def cancel_window(
    window_id: UUID,
    admin: AuthenticatedUser = Depends(require_admin),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> MaintenanceWindowResponse:
    window = await service.cancel_window(db, window_id)
    logger.info("Maintenance window %s cancelled by %s", window_id, admin.email)
    return MaintenanceWindowResponse.model_validate(window)


# ── Notifications ─────────────────────────────────────────────────────────

async def _notify_options(request: Request) -> dict:
    """Optional JSON object body; an empty or unreadable body means no options."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring unreadable notify body on %s", request.url.path)
        return {}
    return data if isinstance(data, dict) else {}


async def notify_start_options(request: Request) -> NotifyStartRequest:
    try:
        return NotifyStartRequest.model_validate(await _notify_options(request))
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from e


async def notify_complete_options(request: Request) -> NotifyCompleteRequest:
    try:
        return NotifyCompleteRequest.model_validate(await _notify_options(request))
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors()) from e


@router.post(
    "/{window_id}/notify-start",
    response_model=NotifyResponse,
    responses=_ERRORS_WITH_404,
    summary="Email every active user that maintenance is starting",
)
async def notify_start(
    window_id: UUID,
    admin: AuthenticatedUser = Depends(require_admin),
    body: NotifyStartRequest = Depends(notify_start_options),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> NotifyResponse:
    summary = await service.notify_start(
        db, window_id, admin.email, notes=body.notes
    )
    return NotifyResponse(
        message=(
            f"Start notification sent to {summary.total_succeeded} of "
            f"{summary.total_recipients} users"
        ),
        batch_result=summary,
    )


@router.post(
    "/{window_id}/notify-complete",
    response_model=NotifyResponse,
    responses=_ERRORS_WITH_404,
    summary="Email every active user that maintenance is complete",
)
async def notify_complete(
    window_id: UUID,
    admin: AuthenticatedUser = Depends(require_admin),
    body: NotifyCompleteRequest = Depends(notify_complete_options),
    service: MaintenanceService = Depends(get_maintenance_service),
    db: AsyncSession = Depends(get_db_session),
) -> NotifyResponse:
    summary = await service.notify_complete(
        db,
        window_id,
        admin.email,
        improvements=body.improvements,
        notes=body.notes,
    )
    return NotifyResponse(
        message=(
            f"Completion notification sent to {summary.total_succeeded} of "
            f"{summary.total_recipients} users"
        ),
        batch_result=summary,
    )
