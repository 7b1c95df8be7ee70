from __future__ import annotations

import logging
import os

from sat_practice.providers.base import LLMProvider, NetworkFailure

log = logging.getLogger("sat_practice.llm")


class OpenAIProvider(LLMProvider):
    def __init__(self, model: str = "gpt-4o-mini", timeout: float = 120.0):
        import openai
        self._errors = (openai.APIError,)
        self.client = openai.AsyncOpenAI(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            timeout=timeout,
            max_retries=0,
        )
        self.model = model

    async def generate(self, prompt: str, temperature: float = 0.7) -> str:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except self._errors as e:
            raise NetworkFailure(f"OpenAI request failed: {e}") from e
        content = resp.choices[0].message.content or ""
        log.info("── RESPONSE ──\n%s", content)
        return content

    def name(self) -> str:
        return f"openai/{self.model}"
