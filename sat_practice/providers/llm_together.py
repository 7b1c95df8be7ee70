from __future__ import annotations

import logging
import os
import time

import httpx

from sat_practice.providers.base import LLMProvider, NetworkFailure

log = logging.getLogger("sat_practice.llm")


class TogetherProvider(LLMProvider):
    """Chat completions against Together's OpenAI-compatible endpoint."""

    def __init__(
        self,
        base_url: str = "https://api.together.xyz/v1",
        model: str = "meta-llama/Meta-Llama-3.1-405B-Instruct-Turbo",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.transport = transport
        self.api_key = os.environ.get("TOGETHER_API_KEY", "")

    async def generate(self, prompt: str, temperature: float = 0.7) -> str:
        if not self.api_key:
            raise NetworkFailure("Together API key not found")
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "temperature": temperature,
                        "messages": [{"role": "user", "content": prompt}],
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise NetworkFailure(f"Failed to generate content (status {e.response.status_code})") from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Failed to generate content: {e}") from e
        elapsed = time.monotonic() - t0
        content = data["choices"][0]["message"]["content"]
        tokens = data.get("usage", {}).get("completion_tokens", "?")
        log.info("── RESPONSE (%.1fs, %s tokens) ──\n%s", elapsed, tokens, content)
        return content

    def name(self) -> str:
        return f"together/{self.model}"
