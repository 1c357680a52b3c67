"""
Prompt & Pause Backend — Daily Prompt Service Tests
====================================================
"""

import random
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from promptpause.exceptions import DatabaseError
from promptpause.models.prompt import PromptHistory, Reflection
from promptpause.models.user import FocusArea, UserProfile
from promptpause.schemas.prompt import GeneratedPrompt, MoodTone, Tier
from promptpause.schemas.providers import ProviderId
from promptpause.services.prompt_service import DEFAULT_MOOD, PromptService

USER_ID = uuid.UUID(int=7)


def _scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def _rows_result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def _generated(text="What would make tonight feel restful?"):
    return GeneratedPrompt(
        text=text, provider=ProviderId.GEMINI, model="gemini-2.5-flash", category=MoodTone.FLAT
    )


@pytest.fixture
def generator():
    gen = MagicMock()
    gen.generate = AsyncMock(return_value=_generated())
    return gen


@pytest.fixture
def savepoint(mock_db_session):
    ctx = MagicMock()
    mock_db_session.begin_nested = MagicMock(return_value=ctx)
    return ctx


class TestBuildContext:

    @pytest.mark.asyncio
    async def test_premium_profile_with_history(self, generator, mock_db_session):
        profile = UserProfile(
            user_id=USER_ID,
            email="a@example.com",
            subscription_tier="premium",
            reason="Anxious evenings",
            focus_areas=["Sleep"],
        )
        custom = [FocusArea(user_id=USER_ID, name="Boundaries", priority=3, is_active=True)]
        reflections = [
            Reflection(user_id=USER_ID, mood="😔", tags=["work"], created_at=datetime.now(timezone.utc))
        ]
        mock_db_session.get.return_value = profile
        mock_db_session.execute.side_effect = [_rows_result(custom), _rows_result(reflections)]

        context = await PromptService(generator, rng=random.Random(0)).build_context(
            mock_db_session, USER_ID
        )

        assert context.tier == Tier.PREMIUM
        assert context.mood == "😔"
        assert context.goals == ["Sleep"]
        assert context.reason == "Anxious evenings"
        assert context.focus_area == "Boundaries"
        assert context.recent_topics == ["work"]

    @pytest.mark.asyncio
    async def test_new_user_gets_default_mood(self, generator, mock_db_session):
        mock_db_session.get.return_value = None
        mock_db_session.execute.side_effect = [_rows_result([]), _rows_result([])]

        context = await PromptService(generator).build_context(mock_db_session, USER_ID)

        assert context.mood == DEFAULT_MOOD
        assert context.tier == Tier.FREEMIUM
        assert context.focus_area is None

    @pytest.mark.asyncio
    async def test_explicit_mood_wins(self, generator, mock_db_session):
        mock_db_session.get.return_value = None
        reflections = [Reflection(user_id=USER_ID, mood="😔", tags=[])]
        mock_db_session.execute.side_effect = [_rows_result([]), _rows_result(reflections)]

        context = await PromptService(generator).build_context(mock_db_session, USER_ID, mood=" 😊 ")
        assert context.mood == "😊"

    @pytest.mark.asyncio
    async def test_query_failure_is_database_error(self, generator, mock_db_session):
        mock_db_session.get.side_effect = OperationalError("SELECT", {}, Exception("gone"))
        with pytest.raises(DatabaseError):
            await PromptService(generator).build_context(mock_db_session, USER_ID)


class TestGetDailyPrompt:
    """One prompt per user per day."""

    @pytest.mark.asyncio
    async def test_returns_existing_prompt_without_generating(self, generator, mock_db_session):
        existing = PromptHistory(
            id=uuid.uuid4(),
            user_id=USER_ID,
            prompt_text="Already here",
            ai_provider="openai",
            ai_model="gpt-4o-mini",
            date_generated=datetime.now(timezone.utc).date(),
        )
        mock_db_session.execute.return_value = _scalar_result(existing)

        prompt = await PromptService(generator).get_daily_prompt(mock_db_session, USER_ID)

        assert prompt.prompt_text == "Already here"
        assert prompt.message == "Using existing prompt for today"
        generator.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_generates_and_stores(self, generator, mock_db_session, savepoint):
        mock_db_session.get.return_value = None
        mock_db_session.execute.side_effect = [
            _scalar_result(None),
            _rows_result([]),
            _rows_result([]),
        ]

        prompt = await PromptService(generator).get_daily_prompt(mock_db_session, USER_ID, mood="😐")

        assert prompt.prompt_text == "What would make tonight feel restful?"
        assert prompt.ai_provider == "gemini"
        assert prompt.category == "flat"
        assert prompt.warning is None
        (row,) = [c.args[0] for c in mock_db_session.add.call_args_list]
        assert isinstance(row, PromptHistory)
        assert row.personalization_context["mood"] == "😐"

    @pytest.mark.asyncio
    async def test_storage_failure_still_returns_prompt(self, generator, mock_db_session, savepoint):
        mock_db_session.get.return_value = None
        mock_db_session.execute.side_effect = [
            _scalar_result(None),
            _rows_result([]),
            _rows_result([]),
        ]
        savepoint.__aexit__.side_effect = IntegrityError("INSERT", {}, Exception("duplicate"))

        prompt = await PromptService(generator).get_daily_prompt(mock_db_session, USER_ID)

        assert prompt.prompt_text == "What would make tonight feel restful?"
        assert prompt.warning == "Prompt generated but not saved"
