from __future__ import annotations

import logging
import time
from typing import Protocol

from openai import AsyncOpenAI

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)


class LLMServiceError(RuntimeError):
    def __init__(self, message: str, *, code: str = "llm_unavailable"):
        super().__init__(message)
        self.code = code


class LLMClient(Protocol):
    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> str: ...


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def openai_configured(config: Settings = settings) -> bool:
    api_key = (config.openai_api_key or "").strip()
    return bool(api_key) and not _looks_like_placeholder(api_key)


class OpenAIChatClient:
    """Chat-completions client returning the raw text of the first choice."""

    def __init__(self, config: Settings = settings, client: AsyncOpenAI | None = None):
        self._config = config
        self._client = client

    @property
    def model(self) -> str:
        return self._config.openai_model

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not openai_configured(self._config):
                raise LLMServiceError("OpenAI API key is missing or invalid.", code="llm_not_configured")
            self._client = AsyncOpenAI(
                api_key=(self._config.openai_api_key or "").strip(),
                base_url=self._config.openai_base_url or None,
                timeout=self._config.openai_timeout_s,
                max_retries=self._config.openai_max_retries,
            )
        return self._client

    async def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> str:
        client = self._get_client()
        started = time.perf_counter()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as exc:  # noqa: BLE001 - every SDK failure maps to one upstream error
            logger.warning("llm_completion_failed model=%s prompt_len=%s: %s", self.model, len(user_prompt), exc)
            raise LLMServiceError(f"OpenAI request failed: {exc}", code="llm_exception") from exc

        content = response.choices[0].message.content if response.choices else ""
        latency_ms = int((time.perf_counter() - started) * 1000)
        if not content:
            logger.warning("llm_completion_empty model=%s latency_ms=%s", self.model, latency_ms)
            raise LLMServiceError("No response from OpenAI", code="empty_response")

        logger.info("llm_completion_ok model=%s latency_ms=%s response_len=%s", self.model, latency_ms, len(content))
        return content
