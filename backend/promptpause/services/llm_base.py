"""
Prompt & Pause Backend — Text-Generation Provider Interface
============================================================

What:  Abstract base for every provider in the prompt fallback chain, and the
       explicit configuration object each one is built from.
How:   A provider makes exactly one generation call per `generate()` and
       either returns the raw generated text or raises a ProviderError
       subclass. It never retries and never falls back; ordering, timeouts
       and fallback belong to PromptGenerator.

Implementations:
    - OpenAICompatibleProvider: OpenAI, OpenRouter, Hugging Face (httpx)
    - GeminiPromptProvider:     Google Gemini (google-generativeai SDK)

The offline LocalFallbackProvider is not a PromptProvider: it works from the
PromptContext directly and cannot fail.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

from promptpause.schemas.providers import ProviderId


@dataclass(frozen=True)
class ProviderConfig:
    """
    Everything one provider attempt needs.

    OpenRouter and Hugging Face get one ProviderConfig per model, so each
    model is a separate single-attempt entry in the chain.
    """

    api_key: str
    model: str
    timeout_seconds: float = 15.0
    base_url: Optional[str] = None
    temperature: float = 0.9
    max_tokens: int = 800
    top_p: float = 0.95
    extra_headers: Dict[str, str] = field(default_factory=dict)


class PromptProvider(ABC):
    """
    One entry of the fallback chain.

    Contract:
        - generate() issues a single call and returns non-validated text
          extracted from a schema-validated response body
        - failures raise ProviderUnavailableError (transport, timeout,
          non-2xx), ProviderAuthError (401/403) or ProviderResponseError
          (body failed validation)
    """

    provider_id: ProviderId

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model

    @abstractmethod
    async def generate(self, system_prompt: str, user_context: str) -> str:
        ...

    async def aclose(self) -> None:
        """Release network resources. Providers without any keep the default."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(provider={self.provider_id.value}, model={self.model})>"
