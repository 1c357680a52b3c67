"""
Prompt & Pause Backend — Prompt Generation Schemas
===================================================

What:  Input and output models of the prompt fallback chain, plus the
       request/response models of the daily prompt endpoint.

PromptContext is frozen: the chain, the prompt builders and the local
fallback all read the same object and none of them may change it.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from promptpause.schemas.providers import ProviderId


class Tier(str, Enum):
    FREEMIUM = "freemium"
    PREMIUM = "premium"


class MoodTone(str, Enum):
    """Emotional direction read from recent moods; doubles as prompt category."""

    NEW = "new"
    DIFFICULT = "difficult"
    POSITIVE = "positive"
    FLAT = "flat"
    RISING = "rising"
    DIPPING = "dipping"
    MIXED = "mixed"


class RecentEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    mood: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class PromptContext(BaseModel):
    """
    Everything the chain knows about the person the prompt is for.

    Only `mood` is required. Missing fields make the prompt less personal
    but never make generation fail.

    Attributes:
        mood:            Current mood (emoji as captured by the mood picker)
        recent_entries:  Prior reflections, newest first
        goals:           Focus-area names the user is working on
        tier:            Subscription tier
        reason:          Why they joined (free text from onboarding)
        focus_area:      The focus area selected for today, if any
    """

    model_config = ConfigDict(frozen=True)

    mood: str = Field(min_length=1)
    recent_entries: List[RecentEntry] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    tier: Tier = Tier.FREEMIUM
    reason: Optional[str] = None
    focus_area: Optional[str] = None

    @field_validator("mood")
    @classmethod
    def strip_mood(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("mood must not be blank")
        return v

    @property
    def recent_moods(self) -> List[str]:
        """Current mood followed by the moods of recent entries."""
        return [self.mood] + [entry.mood for entry in self.recent_entries]

    @property
    def recent_topics(self) -> List[str]:
        """First five distinct tags across the ten most recent entries."""
        topics: List[str] = []
        for entry in self.recent_entries[:10]:
            for tag in entry.tags:
                if tag not in topics:
                    topics.append(tag)
        return topics[:5]


class GeneratedPrompt(BaseModel):
    text: str = Field(min_length=1)
    provider: ProviderId
    model: str
    category: MoodTone
    focus_area: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Daily prompt endpoint
# ══════════════════════════════════════════════════════════════════════════

class GeneratePromptRequest(BaseModel):
    mood: Optional[str] = Field(
        default=None,
        max_length=16,
        description="Current mood; defaults to the mood of the latest reflection",
    )


class DailyPrompt(BaseModel):
    id: Optional[UUID] = None
    prompt_text: str
    ai_provider: str
    ai_model: str
    category: Optional[str] = None
    focus_area_used: Optional[str] = None
    date_generated: date
    message: Optional[str] = None
    warning: Optional[str] = None

    model_config = {"from_attributes": True}


class DailyPromptResponse(BaseModel):
    success: bool = True
    data: DailyPrompt
