"""
Prompt & Pause Backend — Daily Prompt Route
============================================

What:  POST /api/prompts/generate returns today's reflection prompt for the
       signed-in user, generating it on first call of the day.
How:   The prompt comes from the fallback chain, so this endpoint answers
       even when every AI provider is down. Rate-limited to 5 requests per
       minute per user by RateLimitMiddleware.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from promptpause.database import get_db_session
from promptpause.dependencies import get_current_user, get_prompt_service
from promptpause.schemas.common import ErrorResponse
from promptpause.schemas.prompt import DailyPromptResponse, GeneratePromptRequest
from promptpause.services.auth_service import AuthenticatedUser
from promptpause.services.prompt_service import PromptService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prompts", tags=["Prompts"])


@router.post(
    "/generate",
    response_model=DailyPromptResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get or generate today's reflection prompt",
)
async def generate_prompt(
    body: Optional[GeneratePromptRequest] = Body(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service),
    db: AsyncSession = Depends(get_db_session),
) -> DailyPromptResponse:
    mood = body.mood if body else None
    prompt = await prompt_service.get_daily_prompt(db, user.id, mood=mood)
    return DailyPromptResponse(data=prompt)
