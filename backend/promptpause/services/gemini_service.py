"""
Prompt & Pause Backend — Google Gemini Provider
================================================

What:  Gemini entry of the prompt fallback chain, built on the
       google-generativeai SDK.
How:   The system prompt goes in as `system_instruction`, the user context as
       the single content turn. The SDK response is converted with
       `to_dict()` and validated as the `gemini` variant of the provider
       response union before any text is read from it.

The SDK keeps its API key in module state, so `genai.configure` runs once
per provider construction with the key from this provider's own config.
"""

import logging
import time

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from promptpause.exceptions import (
    ProviderAuthError,
    ProviderResponseError,
    ProviderUnavailableError,
)
from promptpause.schemas.providers import ProviderId, parse_provider_response
from promptpause.services.llm_base import PromptProvider, ProviderConfig

logger = logging.getLogger(__name__)


class GeminiPromptProvider(PromptProvider):
    """Single-attempt Gemini provider. No retries, no circuit state."""

    provider_id = ProviderId.GEMINI

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        genai.configure(api_key=config.api_key)
        self.generation_config = genai.GenerationConfig(
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
            top_p=config.top_p,
        )
        logger.info("GeminiPromptProvider initialized with model=%s", config.model)

    async def generate(self, system_prompt: str, user_context: str) -> str:
        name = self.provider_id.value
        model = genai.GenerativeModel(self.model, system_instruction=system_prompt)
        start = time.perf_counter()

        try:
            response = await model.generate_content_async(
                user_context,
                generation_config=self.generation_config,
                request_options={"timeout": self.config.timeout_seconds},
            )
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            raise ProviderAuthError(
                f"gemini rejected credentials: {e.message}",
                provider=name,
                model=self.model,
                status_code=e.code,
            ) from e
        except google_exceptions.GoogleAPICallError as e:
            raise ProviderUnavailableError(
                f"gemini call failed: {e.message}",
                provider=name,
                model=self.model,
                status_code=e.code,
            ) from e
        except (TimeoutError, ConnectionError) as e:
            raise ProviderUnavailableError(
                f"gemini unreachable: {type(e).__name__}",
                provider=name,
                model=self.model,
            ) from e

        try:
            body = response.to_dict()
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderResponseError(
                "gemini response could not be converted",
                provider=name,
                model=self.model,
            ) from e

        text = parse_provider_response(self.provider_id, body, model=self.model).text()
        logger.debug(
            "gemini/%s answered in %.0fms (%d chars)",
            self.model,
            (time.perf_counter() - start) * 1000,
            len(text),
        )
        return text
