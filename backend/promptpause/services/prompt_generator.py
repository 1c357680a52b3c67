"""
Prompt & Pause Backend — Prompt Fallback Chain
===============================================

What:  Produces one GeneratedPrompt from a PromptContext by trying the
       configured providers in priority order and returning the first
       success. Falls back to the offline prompt bank when all fail.
Who:   PromptService (daily prompt endpoint). Built once in the lifespan from
       Settings and stored on app.state.

Chain semantics:
    ┌────────┐   ┌────────────────┐   ┌────────┐   ┌───────────────┐   ┌───────┐
    │ OpenAI │──▶│ OpenRouter × N │──▶│ Gemini │──▶│ HuggingFace×N │──▶│ local │
    └────────┘   └────────────────┘   └────────┘   └───────────────┘   └───────┘
    - sequential, first success wins, never raced
    - one attempt per entry, bounded by `timeout_seconds`
    - text must be non-empty and at most `max_length` characters
    - 401/403 skips the remaining entries of the same provider
    - every failure is logged with provider and model, then skipped
    - generate() never raises
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import httpx

from promptpause.config import Settings
from promptpause.exceptions import (
    ProviderAuthError,
    ProviderError,
    ProviderResponseError,
)
from promptpause.schemas.prompt import GeneratedPrompt, PromptContext
from promptpause.schemas.providers import ProviderId
from promptpause.services.gemini_service import GeminiPromptProvider
from promptpause.services.llm_base import PromptProvider, ProviderConfig
from promptpause.services.local_fallback import LocalFallbackProvider
from promptpause.services.openai_compat import OpenAICompatibleProvider
from promptpause.services.prompt_builder import (
    build_system_prompt,
    build_user_context,
    context_tone,
)

logger = logging.getLogger(__name__)

# Models sometimes wrap the prompt in quotes despite being told not to
_QUOTE_CHARS = "\"'“”‘’"


@dataclass(frozen=True)
class PromptGenerationConfig:
    timeout_seconds: float = 15.0
    max_length: int = 600


def validate_prompt_text(text: str, max_length: int, provider: str, model: str) -> str:
    """Strip and check generated text; raise ProviderResponseError if unusable."""
    cleaned = (text or "").strip().strip(_QUOTE_CHARS).strip()
    if not cleaned:
        raise ProviderResponseError("empty prompt text", provider=provider, model=model)
    if len(cleaned) > max_length:
        raise ProviderResponseError(
            f"prompt text too long ({len(cleaned)} > {max_length} chars)",
            provider=provider,
            model=model,
        )
    return cleaned


class PromptGenerator:
    """
    Ordered, short-circuiting fallback chain over PromptProviders.

    Args:
        providers: Remote providers in priority order
        config:    Per-attempt timeout and maximum prompt length
        fallback:  Offline prompt source; a fresh LocalFallbackProvider by default
        http_client: Shared client to close on shutdown, if the chain owns one
    """

    def __init__(
        self,
        providers: Sequence[PromptProvider],
        config: PromptGenerationConfig,
        fallback: Optional[LocalFallbackProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.providers: List[PromptProvider] = list(providers)
        self.config = config
        self.fallback = fallback or LocalFallbackProvider()
        self._http_client = http_client

    @property
    def provider_ids(self) -> List[str]:
        """Distinct provider ids in chain order, ending with the local fallback."""
        ids: List[str] = []
        for provider in self.providers:
            if provider.provider_id.value not in ids:
                ids.append(provider.provider_id.value)
        ids.append(self.fallback.provider_id.value)
        return ids

    async def generate(self, context: PromptContext) -> GeneratedPrompt:
        system_prompt = build_system_prompt()
        user_context = build_user_context(context)
        category = context_tone(context)
        rejected_providers = set()

        for provider in self.providers:
            name = provider.provider_id.value
            if provider.provider_id in rejected_providers:
                continue

            start = time.perf_counter()
            try:
                raw = await asyncio.wait_for(
                    provider.generate(system_prompt, user_context),
                    timeout=self.config.timeout_seconds,
                )
                text = validate_prompt_text(raw, self.config.max_length, name, provider.model)
            except asyncio.TimeoutError:
                logger.warning(
                    "Prompt provider %s/%s timed out after %.1fs",
                    name,
                    provider.model,
                    self.config.timeout_seconds,
                )
                continue
            except ProviderAuthError as e:
                rejected_providers.add(provider.provider_id)
                logger.warning(
                    "Prompt provider %s/%s rejected credentials, skipping provider: %s",
                    name,
                    provider.model,
                    e.message,
                )
                continue
            except ProviderError as e:
                logger.warning(
                    "Prompt provider %s/%s failed: %s", name, provider.model, e.message
                )
                continue
            except Exception as e:
                logger.error(
                    "Prompt provider %s/%s raised unexpectedly: %s",
                    name,
                    provider.model,
                    str(e),
                    exc_info=True,
                )
                continue

            logger.info(
                "Prompt generated by %s/%s in %.0fms",
                name,
                provider.model,
                (time.perf_counter() - start) * 1000,
            )
            return GeneratedPrompt(
                text=text,
                provider=provider.provider_id,
                model=provider.model,
                category=category,
                focus_area=context.focus_area,
            )

        if self.providers:
            logger.warning(
                "All %d prompt provider attempts failed; using local fallback",
                len(self.providers),
            )
        return self.fallback.compose(context)

    async def aclose(self) -> None:
        for provider in self.providers:
            await provider.aclose()
        if self._http_client is not None:
            await self._http_client.aclose()


# ══════════════════════════════════════════════════════════════════════════
# Construction from Settings
# ══════════════════════════════════════════════════════════════════════════

def build_prompt_generator(settings: Settings) -> PromptGenerator:
    """
    Assemble the chain from configuration.

    Providers without an API key are left out. OpenRouter and Hugging Face
    contribute one entry per configured model, in configured order.
    """
    timeout = settings.provider_timeout_seconds
    client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))
    providers: List[PromptProvider] = []

    if settings.openai_api_key:
        providers.append(
            OpenAICompatibleProvider(
                ProviderId.OPENAI,
                ProviderConfig(
                    api_key=settings.openai_api_key,
                    model=settings.openai_model,
                    base_url=settings.openai_base_url,
                    timeout_seconds=timeout,
                ),
                client=client,
            )
        )

    if settings.openrouter_api_key:
        for model in settings.openrouter_models_list:
            providers.append(
                OpenAICompatibleProvider(
                    ProviderId.OPENROUTER,
                    ProviderConfig(
                        api_key=settings.openrouter_api_key,
                        model=model,
                        base_url=settings.openrouter_base_url,
                        timeout_seconds=timeout,
                        extra_headers={
                            "HTTP-Referer": settings.app_url,
                            "X-Title": settings.app_name,
                        },
                    ),
                    client=client,
                )
            )

    if settings.gemini_api_key:
        providers.append(
            GeminiPromptProvider(
                ProviderConfig(
                    api_key=settings.gemini_api_key,
                    model=settings.gemini_model,
                    timeout_seconds=timeout,
                )
            )
        )

    if settings.huggingface_api_key:
        for model in settings.huggingface_models_list:
            providers.append(
                OpenAICompatibleProvider(
                    ProviderId.HUGGINGFACE,
                    ProviderConfig(
                        api_key=settings.huggingface_api_key,
                        model=model,
                        base_url=settings.huggingface_base_url,
                        timeout_seconds=timeout,
                    ),
                    client=client,
                )
            )

    generator = PromptGenerator(
        providers,
        PromptGenerationConfig(timeout_seconds=timeout, max_length=settings.prompt_max_length),
        http_client=client,
    )
    logger.info("Prompt chain: %s", " → ".join(generator.provider_ids))
    return generator
