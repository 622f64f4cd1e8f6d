from __future__ import annotations

import logging
from functools import lru_cache

from app.services.llm_client import LLMClient, OpenAIChatClient
from app.services.prompts import (
    EMAIL_SYSTEM_PROMPT,
    RESUME_SYSTEM_PROMPT,
    build_email_prompt,
    build_resume_prompt,
)
from app.services.response_parser import ParsedResult, parse_analysis_response, parse_email_response

logger = logging.getLogger(__name__)


class AIService:
    """Resume analysis and email rewriting on top of a chat-completion client.

    LLM failures propagate as ``LLMServiceError``; malformed replies are
    absorbed by the response parser and come back as fallback results.
    """

    def __init__(self, llm: LLMClient):
        self._llm = llm

    async def analyze_resume(self, *, resume_text: str, job_description: str, purpose: str) -> ParsedResult:
        raw = await self._llm.complete(
            system_prompt=RESUME_SYSTEM_PROMPT,
            user_prompt=build_resume_prompt(
                resume_text=resume_text,
                job_description=job_description,
                purpose=purpose,
            ),
            temperature=0.7,
            max_tokens=2000,
        )
        result = parse_analysis_response(raw)
        logger.info(
            "resume_analyzed purpose=%s resume_len=%s fallback=%s",
            purpose,
            len(resume_text),
            result.fallback_used,
        )
        return result

    async def improve_email(self, *, email_draft: str, purpose: str) -> ParsedResult:
        raw = await self._llm.complete(
            system_prompt=EMAIL_SYSTEM_PROMPT,
            user_prompt=build_email_prompt(email_draft=email_draft, purpose=purpose),
            temperature=0.7,
            max_tokens=1500,
        )
        result = parse_email_response(raw)
        logger.info("email_improved purpose=%s draft_len=%s fallback=%s", purpose, len(email_draft), result.fallback_used)
        return result


@lru_cache(maxsize=1)
def get_ai_service() -> AIService:
    return AIService(OpenAIChatClient())
