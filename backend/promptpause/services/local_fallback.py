"""
Prompt & Pause Backend — Local Fallback Provider
=================================================

What:  Last entry of the prompt fallback chain. Chooses a prompt from a fixed
       bank without any network call.
How:   The mood tone picks the bank; a CRC32 of the context (mood, focus
       area, goals) picks the entry, so identical contexts always get the
       identical prompt. When a focus area is known a focus template is used
       instead, with the area name filled in.

`compose()` cannot fail for any valid PromptContext.
"""

import zlib
from typing import Dict, Tuple

from promptpause.schemas.prompt import GeneratedPrompt, MoodTone, PromptContext
from promptpause.schemas.providers import ProviderId
from promptpause.services.prompt_builder import context_tone

LOCAL_MODEL = "static-bank-v1"

PROMPT_BANK: Dict[MoodTone, Tuple[str, ...]] = {
    MoodTone.NEW: (
        "What made you decide that now was a good time to start paying attention to how you feel?",
        "If today had a weather report for your mood, what would it say and why?",
        "What's one thing you'd love to understand a little better about yourself this month?",
    ),
    MoodTone.DIFFICULT: (
        "What's been weighing on you most today, and what would make it feel even slightly lighter?",
        "When things felt hardest recently, what did you actually need that you didn't get?",
        "Who or what has been a small source of comfort for you lately, even on the tough days?",
    ),
    MoodTone.POSITIVE: (
        "What's been going right lately that you want to remember when things get harder?",
        "Which moment from today would you happily live through again, and what made it good?",
        "What are you doing differently right now that seems to be helping you feel this way?",
    ),
    MoodTone.FLAT: (
        "If you look a little beneath 'fine' today, what's actually there?",
        "What's one small thing that used to spark something in you that you've drifted away from?",
        "When did you last feel genuinely curious about something, and what was it?",
    ),
    MoodTone.RISING: (
        "Things seem to be lifting a little. What do you think helped you turn that corner?",
        "What did the harder days teach you that you want to carry forward?",
        "What's feeling possible today that didn't feel possible a few days ago?",
    ),
    MoodTone.DIPPING: (
        "Things feel heavier than they did recently. What changed, and how are you looking after yourself through it?",
        "What would you say to a close friend whose week had just taken the turn yours has?",
        "What's one thing that felt good a few days ago that you could make a little room for today?",
    ),
    MoodTone.MIXED: (
        "Your days have been a bit of everything lately. What's been pulling you in different directions?",
        "What's one feeling from this week you haven't had the chance to sit with yet?",
        "Which part of your week surprised you most, in a good way or a hard way?",
    ),
}

FOCUS_TEMPLATES: Tuple[str, ...] = (
    "Thinking about {area}, what's one moment this week that showed you how far you've come?",
    "When it comes to {area}, what's felt hardest lately, and what would a kinder next step look like?",
    "What's one small thing you could do today for {area} that your future self would thank you for?",
)


def _stable_index(context: PromptContext, modulo: int) -> int:
    key = "|".join([context.mood, context.focus_area or "", ",".join(context.goals)])
    return zlib.crc32(key.encode("utf-8")) % modulo


class LocalFallbackProvider:
    """Deterministic, offline prompt source used when every remote provider fails."""

    provider_id = ProviderId.LOCAL
    model = LOCAL_MODEL

    def compose(self, context: PromptContext) -> GeneratedPrompt:
        tone = context_tone(context)
        if context.focus_area:
            template = FOCUS_TEMPLATES[_stable_index(context, len(FOCUS_TEMPLATES))]
            text = template.format(area=context.focus_area)
        else:
            bank = PROMPT_BANK[tone]
            text = bank[_stable_index(context, len(bank))]
        return GeneratedPrompt(
            text=text,
            provider=self.provider_id,
            model=LOCAL_MODEL,
            category=tone,
            focus_area=context.focus_area,
        )