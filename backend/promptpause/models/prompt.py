"""
Prompt & Pause Backend — Reflection and Prompt History Models
==============================================================

What:  Reflections (read for mood/topic context) and the one-per-day prompt
       history written by the daily prompt handler.
"""

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, Date, Index, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from promptpause.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reflection(Base):
    __tablename__ = "reflections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    mood: Mapped[str] = mapped_column(String(16), nullable=False)
    tags: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    reflection_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Context building reads a user's newest reflections first
    __table_args__ = (
        Index("idx_reflections_user_created", user_id, created_at.desc()),
    )


class PromptHistory(Base):
    """
    One generated prompt per user per day.

    personalization_context stores the PromptContext the prompt was
    generated from, which makes provider quality comparable after the fact.
    """

    __tablename__ = "prompts_history"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)
    ai_provider: Mapped[str] = mapped_column(String(30), nullable=False)
    ai_model: Mapped[str] = mapped_column(String(120), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    focus_area_used: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    personalization_context: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    date_generated: Mapped[date] = mapped_column(Date, nullable=False)
    used: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "date_generated", name="uq_prompts_history_user_day"),
    )
