"""Tests for data models."""
from __future__ import annotations

import pytest

from sat_practice.models import (
    ParsedQuestion,
    ParseResult,
    QuestionCategory,
    QuestionItem,
)


class TestQuestionCategory:
    def test_values(self):
        assert {c.value for c in QuestionCategory} == {
            "reading_passage", "reading_questions",
            "writing_passage", "writing_questions",
            "math_with_calculator", "math_no_calculator",
        }

    def test_unknown_value(self):
        with pytest.raises(ValueError):
            QuestionCategory("history_essay")

    def test_kind_helpers(self):
        assert QuestionCategory.MATH_NO_CALCULATOR.is_math
        assert QuestionCategory.READING_QUESTIONS.is_reading
        assert QuestionCategory.WRITING_PASSAGE.is_writing
        assert not QuestionCategory.WRITING_PASSAGE.is_math

    def test_follow_up(self):
        assert QuestionCategory.READING_PASSAGE.follow_up is QuestionCategory.READING_QUESTIONS
        assert QuestionCategory.WRITING_PASSAGE.follow_up is QuestionCategory.WRITING_QUESTIONS
        assert QuestionCategory.READING_QUESTIONS.follow_up is None
        assert QuestionCategory.MATH_WITH_CALCULATOR.follow_up is None


class TestQuestionItem:
    def test_labels_follow_choices(self):
        item = QuestionItem("Q?", ["one", "two", "three"])
        assert item.labels == ["A", "B", "C"]
        assert item.labeled_choices() == ["A) one", "B) two", "C) three"]

    def test_answer_letter(self):
        item = QuestionItem("Q?", ["w", "x", "y", "z"], correct_answer="C")
        assert item.answer_letter == "C"

    def test_answer_letter_out_of_range(self):
        item = QuestionItem("Q?", ["w", "x"], correct_answer="D")
        assert item.answer_letter is None

    def test_answer_letter_raw_text(self):
        item = QuestionItem("Q?", ["w", "x"], correct_answer="the second one")
        assert item.answer_letter is None

    def test_usable(self):
        assert QuestionItem("Q?", ["a"]).is_usable
        assert not QuestionItem("", ["a"]).is_usable
        assert not QuestionItem("Q?", []).is_usable

    def test_to_dict(self):
        item = QuestionItem("Q?", ["a", "b"], "A", sentence="S", underlined="U")
        assert item.to_dict() == {
            "question": "Q?",
            "choices": ["a", "b"],
            "correctAnswer": "A",
            "sentence": "S",
            "underlined": "U",
        }


class TestParsedQuestion:
    def test_empty(self):
        assert ParsedQuestion().is_empty
        assert ParsedQuestion(items=[QuestionItem("", [])]).is_empty

    def test_passage_only_not_empty(self):
        assert not ParsedQuestion(passage="Once upon a time.").is_empty

    def test_to_dict(self):
        q = ParsedQuestion("P", [QuestionItem("Q?", ["a"], "A")])
        d = q.to_dict()
        assert d["passage"] == "P"
        assert d["questions"][0]["question"] == "Q?"


class TestParseResult:
    def test_ok(self):
        assert ParseResult("strict", ParsedQuestion()).ok
        assert ParseResult("heuristic", ParsedQuestion()).ok
        assert not ParseResult("failed", ParsedQuestion()).ok
