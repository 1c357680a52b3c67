"""
Prompt & Pause Backend — Provider Response Union Tests
=======================================================
"""

import pytest

from promptpause.exceptions import ProviderResponseError
from promptpause.schemas.providers import (
    GeminiResponse,
    OpenRouterChatResponse,
    ProviderId,
    parse_provider_response,
)


def _chat(content):
    return {"id": "cmpl-1", "model": "m", "choices": [{"message": {"role": "assistant", "content": content}}]}


class TestParseProviderResponse:
    """Tagged-union validation of raw provider bodies."""

    def test_chat_variant_selected_by_provider(self):
        parsed = parse_provider_response(ProviderId.OPENROUTER, _chat(" Hello there "))
        assert isinstance(parsed, OpenRouterChatResponse)
        assert parsed.text() == "Hello there"

    def test_gemini_variant_joins_parts(self):
        body = {"candidates": [{"content": {"parts": [{"text": "What "}, {"text": "helped?"}]}}]}
        parsed = parse_provider_response(ProviderId.GEMINI, body)
        assert isinstance(parsed, GeminiResponse)
        assert parsed.text() == "What helped?"

    def test_blocked_gemini_candidate_has_empty_text(self):
        parsed = parse_provider_response(ProviderId.GEMINI, {"candidates": [{"finish_reason": "SAFETY"}]})
        assert parsed.text() == ""

    def test_extra_fields_are_ignored(self):
        body = _chat("Hi")
        body["usage"] = {"total_tokens": 12}
        assert parse_provider_response(ProviderId.OPENAI, body).text() == "Hi"

    def test_chat_shape_is_not_accepted_for_gemini(self):
        with pytest.raises(ProviderResponseError) as exc_info:
            parse_provider_response(ProviderId.GEMINI, _chat("Hi"), model="gemini-2.5-flash")
        assert exc_info.value.provider == "gemini"
        assert exc_info.value.model == "gemini-2.5-flash"

    def test_empty_choices_rejected(self):
        with pytest.raises(ProviderResponseError):
            parse_provider_response(ProviderId.OPENAI, {"choices": []})

    def test_non_object_body_rejected(self):
        with pytest.raises(ProviderResponseError):
            parse_provider_response(ProviderId.HUGGINGFACE, ["not", "a", "dict"])

    def test_null_content_yields_empty_text(self):
        assert parse_provider_response(ProviderId.OPENAI, _chat(None)).text() == ""
