"""
Prompt & Pause Backend — OpenAI-Compatible Chat Provider
=========================================================

What:  One chat-completions call against any OpenAI-compatible endpoint.
Who:   Used for OpenAI (primary), OpenRouter and the Hugging Face router.
How:   POST {base_url}/chat/completions over httpx, map transport and status
       failures to ProviderError subclasses, validate the body through the
       provider-tagged response union.

Status handling:
    2xx      → validate body, return text
    401/403  → ProviderAuthError (chain skips this provider's other models)
    other    → ProviderUnavailableError (chain moves to the next entry)
"""

import logging
import time
from typing import Optional

import httpx

from promptpause.exceptions import (
    ProviderAuthError,
    ProviderResponseError,
    ProviderUnavailableError,
)
from promptpause.schemas.providers import ProviderId, parse_provider_response
from promptpause.services.llm_base import PromptProvider, ProviderConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URLS = {
    ProviderId.OPENAI: "https://api.openai.com/v1",
    ProviderId.OPENROUTER: "https://openrouter.ai/api/v1",
    ProviderId.HUGGINGFACE: "https://router.huggingface.co/v1",
}


class OpenAICompatibleProvider(PromptProvider):
    """
    Chat-completions provider.

    Args:
        provider_id: Which variant of the response union to validate against
        config:      Key, model, base URL, sampling parameters and timeout
        client:      Shared httpx.AsyncClient. When omitted the provider
                     creates and owns one.
    """

    def __init__(
        self,
        provider_id: ProviderId,
        config: ProviderConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if provider_id not in DEFAULT_BASE_URLS:
            raise ValueError(f"{provider_id.value} is not an OpenAI-compatible provider")
        super().__init__(config)
        self.provider_id = provider_id
        self.base_url = (config.base_url or DEFAULT_BASE_URLS[provider_id]).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    def _payload(self, system_prompt: str, user_context: str) -> dict:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_context},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "top_p": self.config.top_p,
        }

    async def generate(self, system_prompt: str, user_context: str) -> str:
        name = self.provider_id.value
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            **self.config.extra_headers,
        }
        start = time.perf_counter()

        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                json=self._payload(system_prompt, user_context),
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ProviderUnavailableError(
                f"{name} timed out after {self.config.timeout_seconds}s",
                provider=name,
                model=self.model,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(
                f"{name} request failed: {type(e).__name__}",
                provider=name,
                model=self.model,
            ) from e

        duration_ms = (time.perf_counter() - start) * 1000
        status = response.status_code

        if status in (401, 403):
            raise ProviderAuthError(
                f"{name} rejected credentials (HTTP {status})",
                provider=name,
                model=self.model,
                status_code=status,
            )
        if not response.is_success:
            raise ProviderUnavailableError(
                f"{name} returned HTTP {status}",
                provider=name,
                model=self.model,
                status_code=status,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderResponseError(
                f"{name} returned a non-JSON body",
                provider=name,
                model=self.model,
            ) from e

        parsed = parse_provider_response(self.provider_id, body, model=self.model)
        text = parsed.text()
        logger.debug(
            "%s/%s answered in %.0fms (%d chars)", name, self.model, duration_ms, len(text)
        )
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
