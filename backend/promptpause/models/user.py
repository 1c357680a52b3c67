"""
Prompt & Pause Backend — User and Admin Models
===============================================

What:  The subset of the user tables this service reads: profiles (recipients
       and personalization), premium focus areas, and the admin allow-list.
Who:   Recipient loading in MaintenanceService, context building in
       PromptService, the admin check in auth_service.

Profiles are owned by the signup flow; this service never inserts them.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from promptpause.database import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    preferred_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    # e.g. {"system_notifications": false, "weekly_digest": true}
    email_preferences: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    # freemium | premium
    subscription_tier: Mapped[str] = mapped_column(
        String(20), nullable=False, default="freemium", server_default=text("'freemium'")
    )
    reason: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True, comment="Why the user joined, captured at onboarding"
    )
    focus_areas: Mapped[Optional[List[str]]] = mapped_column(
        ARRAY(Text), nullable=True, comment="Onboarding focus areas (names)"
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_user_profiles_active", is_active),
    )

    @property
    def wants_system_notifications(self) -> bool:
        """Only an explicit `false` opts a user out."""
        prefs = self.email_preferences or {}
        return prefs.get("system_notifications") is not False


class FocusArea(Base):
    """Premium-only custom focus area with a selection weight."""

    __tablename__ = "focus_areas"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    __table_args__ = (
        Index("idx_focus_areas_user", user_id),
    )


class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(
        String(30), nullable=False, default="admin", server_default=text("'admin'")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
