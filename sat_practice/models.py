from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

LETTERS = "ABCDE"


class QuestionCategory(str, Enum):
    READING_PASSAGE = "reading_passage"
    READING_QUESTIONS = "reading_questions"
    WRITING_PASSAGE = "writing_passage"
    WRITING_QUESTIONS = "writing_questions"
    MATH_WITH_CALCULATOR = "math_with_calculator"
    MATH_NO_CALCULATOR = "math_no_calculator"

    @property
    def is_math(self) -> bool:
        return self.value.startswith("math_")

    @property
    def is_reading(self) -> bool:
        return self.value.startswith("reading_")

    @property
    def is_writing(self) -> bool:
        return self.value.startswith("writing_")

    @property
    def follow_up(self) -> QuestionCategory | None:
        """The questions category generated after a passage category."""
        return _FOLLOW_UPS.get(self)


_FOLLOW_UPS = {
    QuestionCategory.READING_PASSAGE: QuestionCategory.READING_QUESTIONS,
    QuestionCategory.WRITING_PASSAGE: QuestionCategory.WRITING_QUESTIONS,
}


class AnswerOutcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    INDETERMINATE = "indeterminate"


@dataclass
class QuestionItem:
    question_text: str
    choices: list[str] = field(default_factory=list)
    correct_answer: str = ""  # bare letter when resolvable, raw text otherwise
    sentence: str | None = None
    underlined: str | None = None

    @property
    def labels(self) -> list[str]:
        return list(LETTERS[: len(self.choices)])

    @property
    def answer_letter(self) -> str | None:
        if len(self.correct_answer) == 1 and self.correct_answer in self.labels:
            return self.correct_answer
        return None

    @property
    def is_usable(self) -> bool:
        return bool(self.question_text.strip()) and bool(self.choices)

    def labeled_choices(self) -> list[str]:
        return [f"{label}) {c}" for label, c in zip(self.labels, self.choices)]

    def to_dict(self) -> dict:
        return {
            "question": self.question_text,
            "choices": list(self.choices),
            "correctAnswer": self.correct_answer,
            "sentence": self.sentence,
            "underlined": self.underlined,
        }


@dataclass
class ParsedQuestion:
    passage: str | None = None
    items: list[QuestionItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.passage and not any(i.is_usable for i in self.items)

    def to_dict(self) -> dict:
        return {
            "passage": self.passage,
            "questions": [i.to_dict() for i in self.items],
        }


@dataclass
class ParseResult:
    tier: str  # strict | heuristic | failed
    question: ParsedQuestion

    @property
    def ok(self) -> bool:
        return self.tier != "failed"


@dataclass
class PromptRecord:
    id: str
    type: QuestionCategory
    content: str
    is_default: bool
    created_at: str
    updated_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "is_default": self.is_default,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
