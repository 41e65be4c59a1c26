from __future__ import annotations

import logging
from typing import Any, Optional

from openai import OpenAI

from dailydrop.analysis.ai_providers.base import TextGenerator
from dailydrop.core.config import (
    ANALYSIS_MAX_TOKENS,
    ANALYSIS_TEMPERATURE,
    GENERATION_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
    OPENAI_CHAT_MODEL,
)

logger = logging.getLogger(__name__)


class OpenAITextGenerator(TextGenerator):
    """Chat Completions backed generator used for journal analyses."""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model: Optional[str] = OPENAI_CHAT_MODEL,
        *,
        max_tokens: int = ANALYSIS_MAX_TOKENS,
        temperature: float = ANALYSIS_TEMPERATURE,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
        client: Optional[Any] = None,
    ):
        if client is None:
            if not api_key:
                raise RuntimeError("Missing OPENAI_API_KEY in environment")
            # Retries are owned by GenerationClient. The SDK timeout matches its wall-clock bound
            # so an abandoned call ends and frees its worker thread.
            client = OpenAI(api_key=api_key, max_retries=0, timeout=timeout)
        if not model:
            raise RuntimeError("Missing OPENAI_CHAT_MODEL in environment")

        self.client = client
        self.model = model
        self.model_tag = f"openai:{model}"
        self.max_tokens = max_tokens
        self.temperature = temperature

    def generate(self, prompt: str) -> str:
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        content = ""
        if resp.choices:
            content = resp.choices[0].message.content or ""
        if not content.strip():
            raise ValueError("Empty response from LLM")
        logger.debug(f"OpenAI returned {len(content)} characters ({self.model})")
        return content
