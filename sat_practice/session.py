"""Practice session state and the controller that drives it."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sat_practice.completion_parser import parse_completion, resolve_answer
from sat_practice.models import (
    AnswerOutcome,
    ParsedQuestion,
    ParseResult,
    QuestionCategory,
    QuestionItem,
)

if TYPE_CHECKING:
    from sat_practice.sources import QuestionSource

_log = logging.getLogger("sat_practice.session")


@dataclass
class PracticeSession:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    category: QuestionCategory | None = None
    question: ParsedQuestion | None = None
    tier: str | None = None
    current_index: int = 0
    selected_answer: str | None = None
    generation: int = 0
    answered: int = 0
    correct: int = 0


def grade(item: QuestionItem, selected: str) -> AnswerOutcome:
    """Score *selected* (a letter, or a choice's text) against *item*."""
    expected = item.answer_letter
    if expected is None:
        return AnswerOutcome.INDETERMINATE
    chosen = resolve_answer(selected, item.choices)
    return AnswerOutcome.CORRECT if chosen == expected else AnswerOutcome.INCORRECT


class PracticeController:
    """Owns one PracticeSession and drives it.

    Every category request bumps the session's generation; a response is
    applied only if no newer request was issued while it was in flight.
    """

    def __init__(self, source: QuestionSource, session: PracticeSession | None = None):
        self.source = source
        self.session = session or PracticeSession()

    @property
    def current_item(self) -> QuestionItem | None:
        q = self.session.question
        if q is None or not q.items:
            return None
        return q.items[self.session.current_index]

    async def request_category(self, category: QuestionCategory | str) -> ParseResult | None:
        """Fetch and parse a new question set, replacing the session state.

        Returns None when a newer request superseded this one.  Source
        failures propagate and leave the current state untouched.
        """
        category = QuestionCategory(category)
        s = self.session
        s.generation += 1
        generation = s.generation

        passage = None
        if category.follow_up is None and not category.is_math and s.question is not None:
            passage = s.question.passage

        try:
            raw = await self.source.fetch(category, passage=passage)
        except Exception as e:
            if generation != s.generation:
                _log.info("Dropping failure of superseded %s request: %s", category.value, e)
                return None
            raise

        if generation != s.generation:
            _log.info(
                "Discarding stale %s response (generation %d, latest %d)",
                category.value, generation, s.generation,
            )
            return None

        result = parse_completion(category, raw)
        s.category = category
        s.question = result.question
        s.tier = result.tier
        s.current_index = 0
        s.selected_answer = None
        _log.info("Session %s: %s via %s tier, %d item(s)",
                  s.id, category.value, result.tier, len(result.question.items))
        return result

    def select_answer(self, answer: str) -> None:
        self.session.selected_answer = answer

    def check_answer(self) -> AnswerOutcome:
        s = self.session
        item = self.current_item
        if item is None:
            raise ValueError("No question loaded")
        if not s.selected_answer:
            raise ValueError("No answer selected")

        outcome = grade(item, s.selected_answer)
        if outcome is AnswerOutcome.INDETERMINATE:
            _log.info("Session %s: correct answer %r unresolved", s.id, item.correct_answer)
            return outcome

        s.answered += 1
        if outcome is AnswerOutcome.CORRECT:
            s.correct += 1
        if s.current_index < len(s.question.items) - 1:
            s.current_index += 1
            s.selected_answer = None
        return outcome

    def _move(self, step: int) -> int:
        s = self.session
        if s.question is None or not s.question.items:
            return s.current_index
        target = s.current_index + step
        if 0 <= target < len(s.question.items):
            s.current_index = target
            s.selected_answer = None
        return s.current_index

    def next(self) -> int:
        return self._move(1)

    def previous(self) -> int:
        return self._move(-1)

    def snapshot(self) -> dict:
        """JSON-ready view of the session for the API."""
        s = self.session
        q = s.question
        item = self.current_item
        return {
            "session_id": s.id,
            "category": s.category.value if s.category else None,
            "tier": s.tier,
            "usable": q is not None and not q.is_empty,
            "passage": q.passage if q else None,
            "question": {
                "question": item.question_text,
                "choices": item.labeled_choices(),
                "sentence": item.sentence,
                "underlined": item.underlined,
            } if item else None,
            "selected_answer": s.selected_answer,
            "progress": {
                "current": s.current_index + 1 if item else 0,
                "total": len(q.items) if q else 0,
                "answered": s.answered,
                "correct": s.correct,
            },
        }
