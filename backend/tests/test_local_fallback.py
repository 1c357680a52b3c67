"""
Prompt & Pause Backend — Local Fallback Tests
==============================================
"""

import pytest

from promptpause.schemas.prompt import MoodTone, PromptContext, RecentEntry
from promptpause.schemas.providers import ProviderId
from promptpause.services.local_fallback import (
    FOCUS_TEMPLATES,
    LOCAL_MODEL,
    PROMPT_BANK,
    LocalFallbackProvider,
)


class TestLocalFallbackProvider:
    """Offline prompt bank used at the end of the chain."""

    def test_same_context_same_prompt(self):
        context = PromptContext(mood="😔", goals=["Sleep"], recent_entries=[RecentEntry(mood="😔")])
        fallback = LocalFallbackProvider()
        assert fallback.compose(context).text == fallback.compose(context).text

    def test_bank_matches_tone(self):
        context = PromptContext(mood="😊", recent_entries=[RecentEntry(mood="😄")])
        result = LocalFallbackProvider().compose(context)

        assert result.provider == ProviderId.LOCAL
        assert result.model == LOCAL_MODEL
        assert result.category == MoodTone.POSITIVE
        assert result.text in PROMPT_BANK[MoodTone.POSITIVE]

    def test_focus_area_uses_template(self):
        result = LocalFallbackProvider().compose(PromptContext(mood="😐", focus_area="Self-compassion"))

        assert "Self-compassion" in result.text
        assert result.focus_area == "Self-compassion"
        assert any(result.text == t.format(area="Self-compassion") for t in FOCUS_TEMPLATES)

    @pytest.mark.parametrize("mood", ["😊", "😔", "😐", "🤔", "🙏", "🦄"])
    def test_never_empty(self, mood):
        assert LocalFallbackProvider().compose(PromptContext(mood=mood)).text.strip()
