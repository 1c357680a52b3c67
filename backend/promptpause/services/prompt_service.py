"""
Prompt & Pause Backend — Daily Prompt Service
==============================================

What:  One reflection prompt per user per day.
How:   Returns today's stored prompt if there is one. Otherwise builds a
       PromptContext from the profile, focus areas and the last 30 days of
       reflections, runs the fallback chain and stores the result.
Who:   POST /api/prompts/generate.

Storage failures after generation do not fail the request: the prompt is
still returned, flagged with a warning.
"""

import logging
import random
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promptpause.exceptions import DatabaseError
from promptpause.models.prompt import PromptHistory, Reflection
from promptpause.models.user import FocusArea, UserProfile
from promptpause.schemas.prompt import (
    DailyPrompt,
    GeneratedPrompt,
    PromptContext,
    RecentEntry,
    Tier,
)
from promptpause.services.prompt_builder import FocusAreaOption, select_focus_area
from promptpause.services.prompt_generator import PromptGenerator

logger = logging.getLogger(__name__)

DEFAULT_MOOD = "😐"
HISTORY_DAYS = 30


class PromptService:
    def __init__(self, generator: PromptGenerator, rng: Optional[random.Random] = None):
        self.generator = generator
        self.rng = rng or random.Random()

    async def get_daily_prompt(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        mood: Optional[str] = None,
    ) -> DailyPrompt:
        today = datetime.now(timezone.utc).date()

        existing = await self._load_existing(db, user_id, today)
        if existing is not None:
            prompt = DailyPrompt.model_validate(existing)
            prompt.message = "Using existing prompt for today"
            return prompt

        context = await self.build_context(db, user_id, mood)
        generated = await self.generator.generate(context)
        return await self._store(db, user_id, today, context, generated)

    async def build_context(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        mood: Optional[str] = None,
    ) -> PromptContext:
        since = datetime.now(timezone.utc) - timedelta(days=HISTORY_DAYS)
        try:
            profile = await db.get(UserProfile, user_id)
            custom_areas = (
                await db.execute(
                    select(FocusArea)
                    .where(FocusArea.user_id == user_id, FocusArea.is_active.is_(True))
                    .order_by(FocusArea.priority.desc())
                )
            ).scalars().all()
            reflections = (
                await db.execute(
                    select(Reflection)
                    .where(Reflection.user_id == user_id, Reflection.created_at >= since)
                    .order_by(Reflection.created_at.desc())
                )
            ).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to load prompt context for %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "build_context"}) from e

        tier = Tier.FREEMIUM
        goals: List[str] = []
        reason = None
        if profile is not None:
            goals = list(profile.focus_areas or [])
            reason = profile.reason
            if profile.subscription_tier == Tier.PREMIUM.value:
                tier = Tier.PREMIUM

        options = [FocusAreaOption(name=name) for name in goals]
        if tier is Tier.PREMIUM:
            options.extend(
                FocusAreaOption(name=a.name, priority=a.priority, is_premium=True)
                for a in custom_areas
            )
        focus_area = select_focus_area(options, is_premium=tier is Tier.PREMIUM, rng=self.rng)

        current_mood = (mood or "").strip()
        if not current_mood:
            current_mood = reflections[0].mood if reflections else DEFAULT_MOOD

        return PromptContext(
            mood=current_mood,
            recent_entries=[
                RecentEntry(mood=r.mood, tags=list(r.tags or []), created_at=r.created_at)
                for r in reflections
            ],
            goals=goals,
            tier=tier,
            reason=reason,
            focus_area=focus_area,
        )

    async def _load_existing(
        self, db: AsyncSession, user_id: uuid.UUID, today: date
    ) -> Optional[PromptHistory]:
        try:
            result = await db.execute(
                select(PromptHistory).where(
                    PromptHistory.user_id == user_id,
                    PromptHistory.date_generated == today,
                )
            )
        except SQLAlchemyError as e:
            logger.error("Failed to check today's prompt for %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "load_existing_prompt"}) from e
        return result.scalar_one_or_none()

    async def _store(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        today: date,
        context: PromptContext,
        generated: GeneratedPrompt,
    ) -> DailyPrompt:
        row = PromptHistory(
            user_id=user_id,
            prompt_text=generated.text,
            ai_provider=generated.provider.value,
            ai_model=generated.model,
            category=generated.category.value,
            focus_area_used=generated.focus_area,
            personalization_context={
                "mood": context.mood,
                "tier": context.tier.value,
                "recent_moods": context.recent_moods[:7],
                "recent_topics": context.recent_topics,
                "goals": context.goals,
            },
            date_generated=today,
        )

        try:
            async with db.begin_nested():
                db.add(row)
        except SQLAlchemyError as e:
            logger.warning("Prompt generated but not saved for %s: %s", user_id, str(e))
            return DailyPrompt(
                prompt_text=generated.text,
                ai_provider=generated.provider.value,
                ai_model=generated.model,
                category=generated.category.value,
                focus_area_used=generated.focus_area,
                date_generated=today,
                warning="Prompt generated but not saved",
            )

        logger.info(
            "Daily prompt stored for %s via %s/%s",
            user_id,
            generated.provider.value,
            generated.model,
        )
        return DailyPrompt.model_validate(row)
