from __future__ import annotations

from abc import ABC, abstractmethod


class NetworkFailure(Exception):
    """A remote collaborator answered with a non-2xx status or not at all."""


class LLMProvider(ABC):
    @abstractmethod
    async def generate(self, prompt: str, temperature: float = 0.7) -> str:
        ...

    @abstractmethod
    def name(self) -> str:
        ...
