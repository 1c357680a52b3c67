"""
Prompt & Pause Backend — Maintenance Service
=============================================

What:  Business logic behind /api/admin/maintenance: window CRUD, the
       maintenance-mode switch, and the two notification runs.
Who:   Maintenance route handlers. Built once in the lifespan with its
       notifier and branding; receives the db session per call.

Notification run (notify_start / notify_complete):
    ┌──────────────┐   ┌──────────────┐   ┌───────────────┐   ┌──────────────┐
    │ load window  │──▶│ check state  │──▶│ load active   │──▶│ notifier     │
    │ (404)        │   │ + email key  │   │ recipients    │   │ batches      │
    └──────────────┘   │ (400 / 500)  │   │ (500 on fail) │   └──────┬───────┘
                       └──────────────┘   └───────────────┘          │
                                                    update window + audit row

    Everything before the notifier fails fast, so a rejected request sends
    zero emails. An aborted run persists nothing.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptpause.exceptions import (
    DatabaseError,
    InvalidWindowStateError,
    NotFoundError,
    ValidationError,
)
from promptpause.models.maintenance import (
    MaintenanceMode,
    MaintenanceNotification,
    MaintenanceWindow,
)
from promptpause.models.user import UserProfile
from promptpause.schemas.maintenance import (
    MaintenanceModeResponse,
    MaintenanceStatus,
    MaintenanceWindowCreate,
    MaintenanceWindowListResponse,
    MaintenanceWindowResponse,
    MaintenanceWindowUpdate,
    NotificationType,
    Recipient,
    SendSummary,
)
from promptpause.services.email_client import EmailMessage
from promptpause.services.email_templates import (
    COMPLETE_SUBJECT,
    render_complete_email,
    render_start_email,
    start_subject,
)
from promptpause.services.notifier import MaintenanceNotifier

logger = logging.getLogger(__name__)

# Saturday and Sunday in date.weekday()
WEEKEND_DAYS = (5, 6)


@dataclass(frozen=True)
class EmailBranding:
    app_name: str = "Prompt & Pause"
    app_url: str = "http://localhost:3000"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_schedule(scheduled_date: date, start_time: time, end_time: time) -> None:
    """Maintenance only runs on weekends, and must end after it starts."""
    if scheduled_date.weekday() not in WEEKEND_DAYS:
        raise ValidationError(
            "Maintenance can only be scheduled on weekends (Saturday or Sunday)",
            field="scheduled_date",
        )
    if end_time <= start_time:
        raise ValidationError("end_time must be after start_time", field="end_time")


def check_can_notify_start(window: MaintenanceWindow) -> None:
    if window.status not in (MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.IN_PROGRESS.value):
        raise InvalidWindowStateError(
            f"Cannot send start notification for a {window.status} maintenance window",
            window_id=str(window.id),
            status=window.status,
        )
    if window.notification_sent:
        raise InvalidWindowStateError(
            "Start notification has already been sent for this window",
            window_id=str(window.id),
            status=window.status,
        )


def check_can_notify_complete(window: MaintenanceWindow) -> None:
    if window.status in (MaintenanceStatus.CANCELLED.value, MaintenanceStatus.COMPLETED.value):
        raise InvalidWindowStateError(
            f"Cannot send completion notification for a {window.status} maintenance window",
            window_id=str(window.id),
            status=window.status,
        )
    if not window.has_started:
        raise InvalidWindowStateError(
            "Maintenance window has not started; send the start notification first",
            window_id=str(window.id),
            status=window.status,
        )
    if window.completion_notification_sent:
        raise InvalidWindowStateError(
            "Completion notification has already been sent for this window",
            window_id=str(window.id),
            status=window.status,
        )


class MaintenanceService:
    """
    Args:
        notifier: Batch notifier (owns the email client and pacing)
        branding: App name and URL interpolated into the emails
    """

    def __init__(self, notifier: MaintenanceNotifier, branding: EmailBranding):
        self.notifier = notifier
        self.branding = branding

    # ── Windows ───────────────────────────────────────────────────────────

    async def list_windows(
        self,
        db: AsyncSession,
        status: Optional[MaintenanceStatus] = None,
    ) -> MaintenanceWindowListResponse:
        query = select(MaintenanceWindow)
        count_query = select(func.count(MaintenanceWindow.id))
        if status is not None:
            query = query.where(MaintenanceWindow.status == status.value)
            count_query = count_query.where(MaintenanceWindow.status == status.value)
        query = query.order_by(
            MaintenanceWindow.scheduled_date.desc(), MaintenanceWindow.start_time.desc()
        )

        try:
            windows = (await db.execute(query)).scalars().all()
            total = (await db.execute(count_query)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Failed to list maintenance windows: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "list_windows"}) from e

        return MaintenanceWindowListResponse(
            windows=[MaintenanceWindowResponse.model_validate(w) for w in windows],
            total_count=total,
        )

    async def get_window(self, db: AsyncSession, window_id: uuid.UUID) -> MaintenanceWindow:
        try:
            window = await db.get(MaintenanceWindow, window_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load maintenance window %s: %s", window_id, str(e))
            raise DatabaseError(context={"operation": "get_window"}) from e
        if window is None:
            raise NotFoundError(resource="Maintenance window", resource_id=str(window_id))
        return window

    async def create_window(
        self,
        db: AsyncSession,
        data: MaintenanceWindowCreate,
        created_by: str,
    ) -> MaintenanceWindow:
        validate_schedule(data.scheduled_date, data.start_time, data.end_time)

        window = MaintenanceWindow(
            scheduled_date=data.scheduled_date,
            start_time=data.start_time,
            end_time=data.end_time,
            affected_services=data.affected_services,
            description=data.description,
            status=MaintenanceStatus.SCHEDULED.value,
            notification_sent=False,
            completion_notification_sent=False,
            created_by=created_by,
        )
        db.add(window)
        await self._flush(db, "create_window")
        await db.refresh(window)
        logger.info(
            "Maintenance window %s scheduled for %s by %s",
            window.id,
            window.scheduled_date,
            created_by,
        )
        return window

    async def update_window(
        self,
        db: AsyncSession,
        window_id: uuid.UUID,
        data: MaintenanceWindowUpdate,
    ) -> MaintenanceWindow:
        window = await self.get_window(db, window_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.keys() & {"scheduled_date", "start_time", "end_time"}:
            validate_schedule(
                changes.get("scheduled_date") or window.scheduled_date,
                changes.get("start_time") or window.start_time,
                changes.get("end_time") or window.end_time,
            )

        for field, value in changes.items():
            # Only description and notes may be cleared
            if value is None and field not in ("description", "notes"):
                continue
            if isinstance(value, MaintenanceStatus):
                value = value.value
            setattr(window, field, value)

        await self._flush(db, "update_window")
        await db.refresh(window)
        logger.info("Maintenance window %s updated: %s", window.id, sorted(changes))
        return window

    async def cancel_window(self, db: AsyncSession, window_id: uuid.UUID) -> MaintenanceWindow:
        window = await self.get_window(db, window_id)
        if window.status == MaintenanceStatus.COMPLETED.value:
            raise InvalidWindowStateError(
                "Completed maintenance windows cannot be cancelled",
                window_id=str(window.id),
                status=window.status,
            )
        window.status = MaintenanceStatus.CANCELLED.value
        await self._flush(db, "cancel_window")
        await db.refresh(window)
        logger.info("Maintenance window %s cancelled", window.id)
        return window

    # ── Maintenance mode ──────────────────────────────────────────────────

    async def get_mode(self, db: AsyncSession) -> MaintenanceModeResponse:
        mode = await self._load_mode(db)
        if mode is None:
            return MaintenanceModeResponse(is_enabled=False)
        return MaintenanceModeResponse.model_validate(mode)

    async def set_mode(
        self,
        db: AsyncSession,
        is_enabled: bool,
        admin_email: str,
        notes: Optional[str] = None,
    ) -> MaintenanceModeResponse:
        mode = await self._load_mode(db)
        if mode is None:
            mode = MaintenanceMode(is_enabled=False)
            db.add(mode)

        now = _utcnow()
        mode.is_enabled = is_enabled
        if is_enabled:
            mode.enabled_by = admin_email
            mode.enabled_at = now
        else:
            mode.disabled_at = now
        if notes is not None:
            mode.notes = notes

        await self._flush(db, "set_mode")
        await db.refresh(mode)
        logger.warning(
            "Maintenance mode %s by %s", "ENABLED" if is_enabled else "disabled", admin_email
        )
        return MaintenanceModeResponse.model_validate(mode)

    async def _load_mode(self, db: AsyncSession) -> Optional[MaintenanceMode]:
        try:
            result = await db.execute(
                select(MaintenanceMode).order_by(MaintenanceMode.updated_at.desc()).limit(1)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to load maintenance mode: %s", str(e))
            raise DatabaseError(context={"operation": "load_mode"}) from e
        return result.scalar_one_or_none()

    # ── Notifications ─────────────────────────────────────────────────────

    async def load_recipients(self, db: AsyncSession) -> List[Recipient]:
        """
        Active users who have not opted out of system notifications.

        Ordered by (created_at, user_id) so batches are stable across runs.
        """
        opted_in = (
            func.coalesce(UserProfile.email_preferences["system_notifications"].astext, "true")
            != "false"
        )
        query = (
            select(UserProfile.user_id, UserProfile.email, UserProfile.preferred_name)
            .where(UserProfile.is_active.is_(True), UserProfile.email != "", opted_in)
            .order_by(UserProfile.created_at, UserProfile.user_id)
        )
        try:
            rows = (await db.execute(query)).all()
        except SQLAlchemyError as e:
            logger.error("Failed to load notification recipients: %s", str(e), exc_info=True)
            raise DatabaseError(
                "Could not load notification recipients",
                context={"operation": "load_recipients"},
            ) from e

        return [
            Recipient(user_id=row.user_id, email=row.email, preferred_name=row.preferred_name)
            for row in rows
        ]

    async def notify_start(
        self,
        db: AsyncSession,
        window_id: uuid.UUID,
        admin_email: str,
        notes: Optional[str] = None,
    ) -> SendSummary:
        window = await self.get_window(db, window_id)
        check_can_notify_start(window)
        self.notifier.email_client.ensure_configured()

        recipients = await self.load_recipients(db)
        subject = start_subject(window.scheduled_date)

        def build(recipient: Recipient) -> EmailMessage:
            return EmailMessage(
                to=recipient.email,
                subject=subject,
                html=render_start_email(
                    name=recipient.display_name,
                    scheduled_date=window.scheduled_date,
                    start_time=window.start_time,
                    end_time=window.end_time,
                    affected_services=window.affected_services,
                    app_name=self.branding.app_name,
                    description=window.description,
                ),
            )

        summary = await self.notifier.send(recipients, build, NotificationType.PLANNED, window.id)

        now = _utcnow()
        window.notification_sent = True
        window.notification_sent_at = now
        window.status = MaintenanceStatus.IN_PROGRESS.value
        if notes:
            window.notes = notes
        self._record(db, window, summary, admin_email)
        await self._flush(db, "notify_start")
        return summary

    async def notify_complete(
        self,
        db: AsyncSession,
        window_id: uuid.UUID,
        admin_email: str,
        improvements: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SendSummary:
        window = await self.get_window(db, window_id)
        check_can_notify_complete(window)
        self.notifier.email_client.ensure_configured()

        recipients = await self.load_recipients(db)
        completed_at = _utcnow()

        def build(recipient: Recipient) -> EmailMessage:
            return EmailMessage(
                to=recipient.email,
                subject=COMPLETE_SUBJECT,
                html=render_complete_email(
                    name=recipient.display_name,
                    completed_at=completed_at,
                    app_name=self.branding.app_name,
                    app_url=self.branding.app_url,
                    improvements=improvements,
                    notes=notes,
                ),
            )

        summary = await self.notifier.send(recipients, build, NotificationType.COMPLETED, window.id)

        window.completion_notification_sent = True
        window.completion_notification_sent_at = _utcnow()
        window.completed_at = completed_at
        window.status = MaintenanceStatus.COMPLETED.value
        if notes:
            window.notes = notes
        self._record(db, window, summary, admin_email)
        await self._flush(db, "notify_complete")
        return summary

    def _record(
        self,
        db: AsyncSession,
        window: MaintenanceWindow,
        summary: SendSummary,
        admin_email: str,
    ) -> None:
        db.add(
            MaintenanceNotification(
                maintenance_window_id=window.id,
                notification_type=summary.notification_type.value,
                recipient_count=summary.total_succeeded,
                sent_by=admin_email,
                batch_details=summary.audit_details(),
            )
        )
        logger.info(
            "%s notification for window %s: %d/%d delivered, sent by %s",
            summary.notification_type.value,
            window.id,
            summary.total_succeeded,
            summary.total_recipients,
            admin_email,
        )

    async def _flush(self, db: AsyncSession, operation: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database flush failed during %s: %s", operation, str(e), exc_info=True)
            raise DatabaseError(context={"operation": operation}) from e
