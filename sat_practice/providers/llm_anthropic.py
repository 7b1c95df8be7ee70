from __future__ import annotations

import logging
import os

from sat_practice.providers.base import LLMProvider, NetworkFailure

log = logging.getLogger("sat_practice.llm")


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514", timeout: float = 120.0):
        import anthropic
        self._errors = (anthropic.APIError,)
        self.client = anthropic.AsyncAnthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
            timeout=timeout,
            max_retries=0,
        )
        self.model = model

    async def generate(self, prompt: str, temperature: float = 0.7) -> str:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        try:
            message = await self.client.messages.create(
                model=self.model,
                # reading sets run to 10+ questions
                max_tokens=4096,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except self._errors as e:
            raise NetworkFailure(f"Anthropic request failed: {e}") from e
        text = "".join(b.text for b in message.content if b.type == "text")
        log.info("── RESPONSE ──\n%s", text)
        return text

    def name(self) -> str:
        return f"anthropic/{self.model}"
