"""Where raw completions come from.

Two deployment modes: generate questions from the stored prompts with a
language model, or fetch them ready-made from a hosted question API.  Either
way the caller gets back raw text for the completion parser.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import httpx

from sat_practice.completion_parser import join_completions
from sat_practice.models import QuestionCategory
from sat_practice.prompts import format_questions_prompt
from sat_practice.providers.base import NetworkFailure

if TYPE_CHECKING:
    from sat_practice.config import Settings
    from sat_practice.db import Database
    from sat_practice.providers.base import LLMProvider

_log = logging.getLogger("sat_practice.sources")


class PromptNotFound(LookupError):
    pass


class QuestionSource(ABC):
    @abstractmethod
    async def fetch(self, category: QuestionCategory, passage: str | None = None) -> str:
        """Return a raw completion for *category*.

        *passage* is the passage already on screen, used when only the
        questions for it are requested.
        """

    @abstractmethod
    def name(self) -> str:
        ...


class GeneratedQuestionSource(QuestionSource):
    def __init__(self, llm: LLMProvider, db: Database, temperature: float = 0.7):
        self.llm = llm
        self.db = db
        self.temperature = temperature

    def _prompt(self, category: QuestionCategory) -> str:
        record = self.db.get_prompt(category)
        if record is None:
            raise PromptNotFound(f"No prompt found for the specified type: {category.value}")
        return record.content

    async def fetch(self, category: QuestionCategory, passage: str | None = None) -> str:
        category = QuestionCategory(category)
        follow_up = category.follow_up
        if follow_up is None:
            prompt = self._prompt(category)
            if not category.is_math:
                prompt = format_questions_prompt(prompt, passage)
            _log.info("Generate %s", category.value)
            return await self.llm.generate(prompt, temperature=self.temperature)

        # Passage first, then the questions written against it
        passage_prompt = self._prompt(category)
        questions_template = self._prompt(follow_up)
        _log.info("Generate %s (step 1/2: passage)", category.value)
        passage_raw = await self.llm.generate(passage_prompt, temperature=self.temperature)
        _log.info("Generate %s (step 2/2: questions)", category.value)
        questions_raw = await self.llm.generate(
            format_questions_prompt(questions_template, passage_raw),
            temperature=self.temperature,
        )
        return join_completions(passage_raw, questions_raw)

    def name(self) -> str:
        return f"generate/{self.llm.name()}"


class QuestionApiSource(QuestionSource):
    """Fetch ready-made questions from the hosted question API."""

    ENDPOINTS = {
        QuestionCategory.MATH_WITH_CALCULATOR: ("/api/maths-question", {"use_calculator": "true"}),
        QuestionCategory.MATH_NO_CALCULATOR: ("/api/maths-question", {"use_calculator": "false"}),
        QuestionCategory.READING_PASSAGE: ("/api/reading-question", {}),
        QuestionCategory.READING_QUESTIONS: ("/api/reading-question", {}),
        QuestionCategory.WRITING_PASSAGE: ("/api/writing-question", {}),
        QuestionCategory.WRITING_QUESTIONS: ("/api/writing-question", {}),
    }

    def __init__(
        self,
        base_url: str = "https://sat.techrealm.pk",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, category: QuestionCategory, passage: str | None = None) -> str:
        path, params = self.ENDPOINTS[QuestionCategory(category)]
        url = f"{self.base_url}{path}"
        _log.info("GET %s %s", url, params or "")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Question API unreachable: {e}") from e
        if not resp.is_success:
            raise NetworkFailure(f"HTTP error! status: {resp.status_code}")
        return resp.text

    def name(self) -> str:
        return f"api/{self.base_url}"


def build_llm(settings: Settings) -> LLMProvider:
    s = settings
    if s.llm_provider == "together":
        from sat_practice.providers.llm_together import TogetherProvider
        return TogetherProvider(base_url=s.together_url, model=s.llm_model, timeout=s.llm_timeout)
    elif s.llm_provider == "ollama":
        from sat_practice.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=s.ollama_url, model=s.llm_model, timeout=s.llm_timeout)
    elif s.llm_provider == "openai":
        from sat_practice.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=s.llm_model, timeout=s.llm_timeout)
    elif s.llm_provider == "anthropic":
        from sat_practice.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=s.llm_model, timeout=s.llm_timeout)
    raise ValueError(f"Unknown LLM provider: {s.llm_provider}")


def build_source(settings: Settings, db: Database) -> QuestionSource:
    if settings.question_source == "api":
        return QuestionApiSource(base_url=settings.question_api_url, timeout=settings.llm_timeout)
    if settings.question_source == "generate":
        return GeneratedQuestionSource(build_llm(settings), db, temperature=settings.llm_temperature)
    raise ValueError(f"Unknown question source: {settings.question_source}")
