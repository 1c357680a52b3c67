"""
Prompt & Pause Backend — Prompt Builders
=========================================

What:  Pure functions that turn a PromptContext into the system and user
       messages sent to every text-generation provider, plus the mood
       analysis and focus-area selection used around them.
Who:   PromptGenerator (messages), LocalFallbackProvider (mood tone),
       PromptService (focus-area selection).

Nothing here touches the network or the database.
"""

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from promptpause.schemas.prompt import MoodTone, PromptContext

HAPPY_MOODS = frozenset({"😊", "😄", "😌", "🙏"})
DIFFICULT_MOODS = frozenset({"😔", "🤔"})
NEUTRAL_MOODS = frozenset({"😐"})

# Only the last week of moods shapes the tone
MOOD_WINDOW = 7

SYSTEM_PROMPT = """You are a warm, empathetic friend helping someone on their mental wellness journey through "Prompt & Pause", a UK-based reflection service.

Your role is to create deeply personal, conversational reflection prompts that feel like a caring friend checking in. Not a therapist or coach, but someone who truly understands and cares.

Core principles:
1. Write as if you're having a genuine conversation with this specific person
2. Reference their actual life context, struggles and growth areas naturally
3. Make it feel like you remember their journey and care about their progress
4. Be human: acknowledge that growth is hard and messy
5. Use everyday language they'd use with a close friend

Tone and style:
- Conversational and natural, like texting a friend
- Warm, without toxic positivity
- Specific to their situation, not generic advice
- Validate their feelings and experiences

Length and format:
- 1-3 sentences maximum (15-25 words ideal)
- A question, gentle prompt or invitation to reflect
- No emojis, quotes or explanations

Avoid:
- Clinical or therapy language ("processing", "coping mechanisms", "self-care routine")
- Generic prompts that could apply to anyone
- Multiple questions in one prompt
- Formulaic openings ("How did you...", "What made you...") every time

Generate ONE personalized prompt that feels written for this person's journey right now."""

WELCOME_CONTEXT = (
    "This person is just starting their reflection journey. Generate a warm, "
    "welcoming prompt that helps them explore their current emotional state and "
    "what brought them here today. Make it feel safe and non-intimidating."
)

TASK_INSTRUCTION = """Your task:
Based on this person's context, generate ONE personalized reflection prompt that:
- Speaks directly to their situation
- Connects naturally to their focus areas or recent experiences
- Uses conversational, everyday language
- Helps them explore something meaningful today

Generate the prompt now (no quotes, no explanation, just the prompt):"""

_TONE_GUIDANCE = {
    MoodTone.NEW: "No recent mood data.",
    MoodTone.DIFFICULT: "They're going through a tough period. Be extra gentle and validating.",
    MoodTone.POSITIVE: "They're in a good place right now. Help them explore or savor this.",
    MoodTone.FLAT: (
        "They've been feeling flat or neutral. Help them connect with what's "
        "beneath the surface."
    ),
    MoodTone.RISING: "They're coming out of a difficult period. Acknowledge the shift.",
    MoodTone.DIPPING: "Things have gotten harder recently. Be compassionate about the dip.",
    MoodTone.MIXED: "Their moods have been mixed. Help them explore what's driving the variation.",
}


def build_system_prompt() -> str:
    return SYSTEM_PROMPT


def analyze_mood_pattern(moods: Sequence[str]) -> Tuple[MoodTone, str]:
    """
    Classify recent moods (newest first) into a tone and a guidance line.

    Rules, first match wins:
        difficult > 2 × happy        → DIFFICULT
        happy > 2 × difficult        → POSITIVE
        neutral > half of the window → FLAT
        newest happy, previous hard  → RISING
        newest hard, previous happy  → DIPPING
        otherwise                    → MIXED
    """
    window = list(moods)[:MOOD_WINDOW]
    if not window:
        return MoodTone.NEW, _TONE_GUIDANCE[MoodTone.NEW]

    happy = sum(1 for m in window if m in HAPPY_MOODS)
    difficult = sum(1 for m in window if m in DIFFICULT_MOODS)
    neutral = sum(1 for m in window if m in NEUTRAL_MOODS)

    if difficult > happy * 2:
        tone = MoodTone.DIFFICULT
    elif happy > difficult * 2:
        tone = MoodTone.POSITIVE
    elif neutral > len(window) / 2:
        tone = MoodTone.FLAT
    elif len(window) > 1 and window[0] in HAPPY_MOODS and window[1] in DIFFICULT_MOODS:
        tone = MoodTone.RISING
    elif len(window) > 1 and window[0] in DIFFICULT_MOODS and window[1] in HAPPY_MOODS:
        tone = MoodTone.DIPPING
    else:
        tone = MoodTone.MIXED
    return tone, _TONE_GUIDANCE[tone]


def context_tone(context: PromptContext) -> MoodTone:
    """
    Tone used as the prompt category.

    A user with no history whose current mood is outside the known sets is
    treated as new rather than mixed.
    """
    known = HAPPY_MOODS | DIFFICULT_MOODS | NEUTRAL_MOODS
    if not context.recent_entries and context.mood not in known:
        return MoodTone.NEW
    tone, _ = analyze_mood_pattern(context.recent_moods)
    return tone


def build_user_context(context: PromptContext) -> str:
    """
    Narrative profile of the user followed by the task instruction.

    With no reason, goals, history or focus area the welcome text is
    returned instead, so first-day users still get a gentle prompt.
    """
    if (
        not context.reason
        and not context.goals
        and not context.recent_entries
        and not context.focus_area
    ):
        return WELCOME_CONTEXT

    sections: List[str] = []

    if context.reason:
        sections.append(
            "Their journey:\n"
            f'They came to Prompt & Pause because: "{context.reason}"\n'
            "This is what matters to them right now. Honor this in your prompt."
        )

    if context.goals:
        areas = ", ".join(context.goals)
        if len(context.goals) == 1:
            sections.append(
                f"Current focus:\nThey're specifically working on: {areas}\n"
                "Your prompt should directly relate to this."
            )
        else:
            sections.append(
                f"Growth areas:\nThey're juggling multiple things: {areas}\n"
                "These areas might intersect or conflict. Consider the whole picture."
            )

    if context.focus_area:
        sections.append(
            f"Today's focus:\nThis person wants to explore: {context.focus_area}\n"
            "Prioritize this above all others."
        )

    moods = context.recent_moods[:MOOD_WINDOW]
    _, guidance = analyze_mood_pattern(moods)
    sections.append(
        f"Emotional state:\nRecent moods (newest first): {' → '.join(moods)}\n"
        f"{guidance}\nMeet them where they are emotionally."
    )

    topics = context.recent_topics
    if topics:
        sections.append(
            f"What's been on their mind:\nRecent reflection topics: {', '.join(topics)}\n"
            "Build on these or explore a connected angle."
        )

    return "\n\n".join(sections) + "\n\n" + TASK_INSTRUCTION


# ══════════════════════════════════════════════════════════════════════════
# Focus-area selection
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FocusAreaOption:
    name: str
    priority: int = 0
    is_premium: bool = False


def select_focus_area(
    areas: Sequence[FocusAreaOption],
    is_premium: bool,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """
    Pick today's focus area.

    Premium users with custom areas get a pick weighted by priority; everyone
    else (and premium users whose weights are all zero) gets a uniform pick.
    Returns None when there is nothing to choose from.
    """
    if not areas:
        return None
    rng = rng or random.Random()

    if is_premium:
        premium = [a for a in areas if a.is_premium]
        total_weight = sum(max(a.priority, 0) for a in premium)
        if premium and total_weight > 0:
            return rng.choices(
                premium, weights=[max(a.priority, 0) for a in premium], k=1
            )[0].name

    return rng.choice(list(areas)).name
