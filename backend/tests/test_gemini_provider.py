"""
Prompt & Pause Backend — Gemini Provider Tests
===============================================

The SDK module is patched, so no API key or network access is needed.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from promptpause.exceptions import (
    ProviderAuthError,
    ProviderResponseError,
    ProviderUnavailableError,
)
from promptpause.services.gemini_service import GeminiPromptProvider
from promptpause.services.llm_base import ProviderConfig


@pytest.fixture
def mock_genai():
    with patch("promptpause.services.gemini_service.genai") as genai:
        model = MagicMock()
        model.generate_content_async = AsyncMock()
        genai.GenerativeModel.return_value = model
        yield genai


def _provider():
    return GeminiPromptProvider(ProviderConfig(api_key="g-test", model="gemini-2.5-flash"))


def _sdk_response(body):
    response = MagicMock()
    response.to_dict.return_value = body
    return response


class TestGeminiPromptProvider:
    """SDK call, error mapping and response validation."""

    def test_configures_sdk_with_own_key(self, mock_genai):
        _provider()
        mock_genai.configure.assert_called_once_with(api_key="g-test")

    @pytest.mark.asyncio
    async def test_returns_candidate_text(self, mock_genai):
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async.return_value = _sdk_response(
            {"candidates": [{"content": {"parts": [{"text": "What softened today?"}]}}]}
        )

        text = await _provider().generate("system", "context")

        assert text == "What softened today?"
        mock_genai.GenerativeModel.assert_called_once_with(
            "gemini-2.5-flash", system_instruction="system"
        )
        kwargs = model.generate_content_async.call_args.kwargs
        assert kwargs["request_options"] == {"timeout": 15.0}

    @pytest.mark.asyncio
    async def test_permission_denied_raises_auth_error(self, mock_genai):
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async.side_effect = google_exceptions.PermissionDenied("key revoked")

        with pytest.raises(ProviderAuthError) as exc_info:
            await _provider().generate("s", "u")
        assert exc_info.value.provider == "gemini"

    @pytest.mark.asyncio
    async def test_quota_error_raises_unavailable(self, mock_genai):
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async.side_effect = google_exceptions.ResourceExhausted("quota")

        with pytest.raises(ProviderUnavailableError) as exc_info:
            await _provider().generate("s", "u")
        assert not isinstance(exc_info.value, ProviderAuthError)

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises_response_error(self, mock_genai):
        model = mock_genai.GenerativeModel.return_value
        model.generate_content_async.return_value = _sdk_response({"candidates": []})

        with pytest.raises(ProviderResponseError):
            await _provider().generate("s", "u")
