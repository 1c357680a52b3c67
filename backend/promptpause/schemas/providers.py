"""
Prompt & Pause Backend — Provider Response Schemas
===================================================

What:  Strict response schemas for every text-generation provider, combined
       into one tagged union keyed by `provider_id`.
Why:   Each provider answers in its own JSON shape. Validating the raw body
       against the variant for the provider that produced it turns "the
       shape was wrong" into a ProviderResponseError the fallback chain can
       recover from, instead of a KeyError deep inside the success path.
How:   `parse_provider_response(ProviderId.OPENAI, body)` injects the tag and
       runs the pydantic discriminated union. Unknown extra fields are
       ignored; missing required fields fail validation.

Variants:
    openai / openrouter / huggingface → chat.completions shape
        {"choices": [{"message": {"content": "..."}}], "model": "..."}
    gemini → GenerateContentResponse.to_dict() shape
        {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from promptpause.exceptions import ProviderResponseError


class ProviderId(str, Enum):
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GEMINI = "gemini"
    HUGGINGFACE = "huggingface"
    LOCAL = "local"


# ══════════════════════════════════════════════════════════════════════════
# OpenAI-compatible chat completions
# ══════════════════════════════════════════════════════════════════════════

class ChatMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: Optional[str] = None


class _ChatCompletionResponse(BaseModel):
    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[ChatChoice] = Field(min_length=1)

    def text(self) -> str:
        return (self.choices[0].message.content or "").strip()


class OpenAIChatResponse(_ChatCompletionResponse):
    provider_id: Literal["openai"]


class OpenRouterChatResponse(_ChatCompletionResponse):
    provider_id: Literal["openrouter"]


class HuggingFaceChatResponse(_ChatCompletionResponse):
    provider_id: Literal["huggingface"]


# ══════════════════════════════════════════════════════════════════════════
# Gemini generateContent
# ══════════════════════════════════════════════════════════════════════════

class GeminiPart(BaseModel):
    text: Optional[str] = None


class GeminiContent(BaseModel):
    parts: List[GeminiPart] = Field(default_factory=list)
    role: Optional[str] = None


class GeminiCandidate(BaseModel):
    # Absent when the candidate was blocked; yields empty text
    content: GeminiContent = Field(default_factory=GeminiContent)
    finish_reason: Optional[Union[str, int]] = None


class GeminiResponse(BaseModel):
    provider_id: Literal["gemini"]
    candidates: List[GeminiCandidate] = Field(min_length=1)

    def text(self) -> str:
        parts = self.candidates[0].content.parts
        return "".join(part.text or "" for part in parts).strip()


ProviderResponse = Annotated[
    Union[
        OpenAIChatResponse,
        OpenRouterChatResponse,
        GeminiResponse,
        HuggingFaceChatResponse,
    ],
    Field(discriminator="provider_id"),
]

_provider_response_adapter: TypeAdapter = TypeAdapter(ProviderResponse)


def parse_provider_response(
    provider_id: ProviderId,
    payload: Any,
    model: Optional[str] = None,
) -> ProviderResponse:
    """
    Validate a provider's raw JSON body against its variant of the union.

    Raises:
        ProviderResponseError: body is not an object or does not match the
            provider's schema.
    """
    if not isinstance(payload, dict):
        raise ProviderResponseError(
            f"{provider_id.value} returned a non-object body",
            provider=provider_id.value,
            model=model,
        )
    try:
        return _provider_response_adapter.validate_python(
            {**payload, "provider_id": provider_id.value}
        )
    except PydanticValidationError as e:
        raise ProviderResponseError(
            f"{provider_id.value} response failed validation: {e.error_count()} error(s)",
            provider=provider_id.value,
            model=model,
            context={"errors": [err["loc"] for err in e.errors()][:5]},
        ) from e
