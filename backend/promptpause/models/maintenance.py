"""
Prompt & Pause Backend — Maintenance SQLAlchemy Models
=======================================================

What:  ORM models for scheduled maintenance windows, the audit trail of
       notification runs, and the site-wide maintenance-mode switch.
Who:   MaintenanceService (CRUD, notification bookkeeping) and Alembic.

Window lifecycle:
    scheduled ──notify-start──▶ in_progress ──notify-complete──▶ completed
        │                           │
        └────────── cancel ─────────┴──▶ cancelled

    notification_sent / completion_notification_sent guard against a second
    run of the same notification type.
"""

import uuid
from datetime import date, datetime, time, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promptpause.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


WINDOW_STATUSES = ("scheduled", "in_progress", "completed", "cancelled")


class MaintenanceWindow(Base):
    """A planned period of service disruption on a weekend."""

    __tablename__ = "maintenance_windows"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    affected_services: Mapped[List[str]] = mapped_column(
        ARRAY(Text),
        nullable=False,
        default=list,
        comment="Human-readable names of the services that will be unavailable",
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Values: scheduled, in_progress, completed, cancelled
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="scheduled",
        server_default=text("'scheduled'"),
    )

    notification_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    notification_sent_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    completion_notification_sent: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    completion_notification_sent_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notifications: Mapped[List["MaintenanceNotification"]] = relationship(
        back_populates="window",
        order_by="MaintenanceNotification.sent_at.desc()",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_maintenance_windows_scheduled_date", scheduled_date.desc()),
        Index("idx_maintenance_windows_status", status),
    )

    @property
    def has_started(self) -> bool:
        return self.status == "in_progress" or self.notification_sent

    def __repr__(self) -> str:
        return (
            f"<MaintenanceWindow(id={self.id}, date='{self.scheduled_date}', "
            f"status='{self.status}')>"
        )


class MaintenanceNotification(Base):
    """
    Audit row written after every completed notification run.

    batch_details holds the totals and the per-batch counts of the run; the
    failed addresses are kept so support can follow up on bounces.
    """

    __tablename__ = "maintenance_notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    maintenance_window_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("maintenance_windows.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Values: planned, completed
    notification_type: Mapped[str] = mapped_column(String(20), nullable=False)
    recipient_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sent_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    batch_details: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    window: Mapped[MaintenanceWindow] = relationship(back_populates="notifications")

    __table_args__ = (
        Index("idx_maintenance_notifications_window", maintenance_window_id),
    )


class MaintenanceMode(Base):
    """Single-row switch that puts the public site into maintenance mode."""

    __tablename__ = "maintenance_mode"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    is_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    enabled_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    enabled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    disabled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
