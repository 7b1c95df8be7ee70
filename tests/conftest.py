"""Shared test fixtures."""
from __future__ import annotations

import json

import pytest

from sat_practice.db import Database


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh temporary database."""
    db = Database(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def math_json():
    """A well-formed math completion."""
    return json.dumps({
        "question": "If 3x + 5 = 20, what is the value of x?",
        "choices": ["A) 3", "B) 5", "C) 7", "D) 15"],
        "correctAnswer": "B",
    })


@pytest.fixture
def math_freeform():
    """A math completion that ignored the JSON instruction."""
    return """\
Sure! Here is your question.

**Question:** What is the slope of the line y = 2x - 7?
A) -7
B) 2
C) 7
D) -2
**Correct Answer:** B
"""


@pytest.fixture
def reading_json():
    return json.dumps({
        "passage": "The lighthouse keeper had tended the lamp for forty years.",
        "questions": [
            {
                "question": "What is the main idea of the passage?",
                "choices": ["A) Duty", "B) Travel", "C) Weather", "D) Trade"],
                "correctAnswer": "A",
            },
            {
                "question": "As used in the passage, \"tended\" most nearly means",
                "choices": ["A) leaned", "B) cared for", "C) inclined", "D) offered"],
                "correctAnswer": "B",
            },
        ],
    })


@pytest.fixture
def reading_freeform():
    return """\
Passage: The lighthouse keeper had tended the lamp for forty years.
Every night he climbed the stairs.

Questions:
1) What is the main idea of the passage?
A) Duty
B) Travel
C) Weather
D) Trade
Answer: A

2) How often did the keeper climb the stairs?
(A) Weekly
(B) Nightly
(C) Yearly
(D) Never
Correct Answer: (B)
"""


@pytest.fixture
def writing_freeform():
    return """\
Passage:
The committee have decided to postpone the vote.

Question 1: Which choice best replaces the underlined portion?
Sentence: The committee have decided to postpone the vote.
Underlined portion: have
A) NO CHANGE
B) has
C) having
D) were
Correct Answer: B
"""
