"""Turn raw LLM completions into structured SAT questions.

Two tiers.  The prompts ask the model for JSON only, so the strict tier
decodes whatever JSON objects the completion contains and reads the question
shape from them.  Models often ignore that instruction, so when no question
comes out of the JSON the heuristic tier scans the free text for labelled
lines (``Question:``, ``A) …``, ``Correct Answer:`` and friends).

Both tiers finish with the same normalisation, and neither ever raises:
an unusable completion comes back as a ``failed`` result with empty fields.
"""
from __future__ import annotations

import json
import logging
import re

from sat_practice.models import (
    LETTERS,
    ParsedQuestion,
    ParseResult,
    QuestionCategory,
    QuestionItem,
)

_log = logging.getLogger("sat_practice.parser")


def _label(name: str) -> re.Pattern:
    """Match a ``Name: value`` line, tolerating markdown emphasis around the name."""
    return re.compile(
        rf"^[*_#\s]*(?:{name})\s*[*_]*\s*:[*_]*\s*(.*)$",
        re.IGNORECASE,
    )


_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)
_FENCE_MARK_RE = re.compile(r"```(?:json)?")

_QUESTION_RE = _label(r"question(?:\s+\d+)?")
_SENTENCE_RE = _label(r"sentence")
_UNDERLINED_RE = _label(r"underlined(?:\s+portion)?")
_ANSWER_RE = _label(r"(?:correct\s+)?answer")
_CHOICES_HEADER_RE = _label(r"answer\s+choices|choices|options")
_PASSAGE_MARKER_RE = _label(r"(?:reading\s+|writing\s+)?passage")
_QUESTIONS_MARKER_RE = _label(r"(?:reading\s+|writing\s+)?questions")
_NUMERAL_RE = re.compile(r"^[*_\s]*(\d+)\)\s*(.*)$")
_CHOICE_LINE_RE = re.compile(r"^\s*\(?([A-Da-d])\)\s*(\S.*)$")

_CHOICE_LABEL_RE = re.compile(r"^\s*\(?[A-Ea-e]\)\s*")
_BARE_LETTER_RE = re.compile(r"^\(?([A-Ea-e])\)?\.?$")
_LETTER_TOKEN_RE = re.compile(r"\b([A-E])\b")
_LETTER_RE = re.compile(r"[A-E]")

_QUESTION_KEYS = ("question", "questionText", "question_text", "content")
_ANSWER_KEYS = ("correctAnswer", "correct_answer", "answer")
_UNDERLINED_KEYS = ("underlined", "underlinedSpan", "underlined_span")


# ── Normalisation ─────────────────────────────────────────────────────────

def normalize_choice(text: str) -> str:
    """Strip one leading ``A)`` / ``(A)`` label and surrounding whitespace."""
    return _CHOICE_LABEL_RE.sub("", str(text), count=1).strip()


def normalize_correct_answer(raw: str) -> str | None:
    """Coerce an answer field to a bare uppercase letter, or None.

    A standalone letter token wins ("The answer is B" -> "B"); otherwise the
    first character in A-E of the upper-cased field is used ("b)" -> "B").
    """
    text = str(raw).strip().upper()
    m = _LETTER_TOKEN_RE.search(text)
    if m:
        return m.group(1)
    m = _LETTER_RE.search(text)
    return m.group(0) if m else None


def resolve_answer(raw: str, choices: list[str]) -> str:
    """Resolve an answer field against normalised *choices*.

    Returns the letter when one can be found, otherwise the trimmed field so
    it can still be shown to the user.
    """
    text = str(raw or "").strip().strip("*_").strip()
    if not text:
        return ""
    m = _BARE_LETTER_RE.match(text)
    if m:
        return m.group(1).upper()
    lowered = text.lower()
    for label, choice in zip(LETTERS, choices):
        if lowered in (choice.lower(), f"{label}) {choice}".lower()):
            return label
    return normalize_correct_answer(text) or text


def _optional_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_question(question: ParsedQuestion) -> ParsedQuestion:
    items = []
    for item in question.items:
        choices = [normalize_choice(c) for c in item.choices]
        # "choices" entries are an artifact of the model echoing the JSON key
        choices = [c for c in choices if c and c.lower().rstrip(":") != "choices"]
        items.append(QuestionItem(
            question_text=str(item.question_text or "").strip(),
            choices=choices,
            correct_answer=resolve_answer(item.correct_answer, choices),
            sentence=_optional_text(item.sentence),
            underlined=_optional_text(item.underlined),
        ))
    return ParsedQuestion(passage=_optional_text(question.passage), items=items)


# ── Strict tier ───────────────────────────────────────────────────────────

def _json_spans(text: str) -> list[tuple[int, int]]:
    """Find balanced top-level ``{…}`` and ``[…]`` spans in *text*."""
    spans: list[tuple[int, int]] = []
    i = 0
    while i < len(text):
        if text[i] not in "{[":
            i += 1
            continue
        depth = 0
        in_str = False
        escape = False
        for j in range(i, len(text)):
            ch = text[j]
            if escape:
                escape = False
                continue
            if ch == "\\":
                escape = True
                continue
            if ch == '"':
                in_str = not in_str
                continue
            if in_str:
                continue
            if ch in "{[":
                depth += 1
            elif ch in "}]":
                depth -= 1
                if depth == 0:
                    spans.append((i, j + 1))
                    i = j + 1
                    break
        else:
            # Unbalanced, skip this opening bracket
            i += 1
    return spans


def _is_question_shaped(obj: dict) -> bool:
    return any(key in obj for key in _QUESTION_KEYS + ("choices", "options"))


def _decode_structured(text: str) -> tuple[dict | None, str]:
    """Decode every JSON value in *text* into one document.

    Question-shaped objects and the entries of arrays or ``questions`` lists
    are collected in order under ``questions``.  Other keys are merged, later
    objects winning, so a passage object followed by a questions object
    reads as one document.  Returns the document (or None) and the text with
    the decoded values cut out.
    """
    text = _FENCE_MARK_RE.sub("", text)
    doc: dict = {}
    questions: list[dict] = []
    kept: list[str] = []
    last = 0
    found = False
    for start, end in _json_spans(text):
        try:
            value = json.loads(text[start:end])
        except json.JSONDecodeError:
            continue
        if isinstance(value, list):
            entries = [v for v in value if isinstance(v, dict)]
            if not entries:
                continue
            questions.extend(entries)
        elif "questions" in value or not _is_question_shaped(value):
            entries = value.get("questions")
            if isinstance(entries, dict):
                entries = [entries]
            if isinstance(entries, list):
                questions.extend(e for e in entries if isinstance(e, dict))
            doc.update((k, v) for k, v in value.items() if k != "questions")
        else:
            questions.append(value)
            if "passage" in value:
                doc["passage"] = value["passage"]
        found = True
        kept.append(text[last:start])
        last = end
    if not found:
        return None, text
    kept.append(text[last:])
    if questions:
        doc["questions"] = questions
    return doc, "".join(kept)


def _first(data: dict, keys: tuple[str, ...]):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _item_from_dict(data: dict) -> QuestionItem | None:
    text = _first(data, _QUESTION_KEYS)
    choices = data.get("choices", data.get("options"))
    if isinstance(choices, dict):
        choices = list(choices.values())
    if not isinstance(choices, list):
        choices = []
    choices = [str(c) for c in choices if isinstance(c, (str, int, float))]
    if text is None and not choices:
        return None
    answer = _first(data, _ANSWER_KEYS)
    return QuestionItem(
        question_text=str(text) if text is not None else "",
        choices=choices,
        correct_answer=str(answer) if answer is not None else "",
        sentence=data.get("sentence"),
        underlined=_first(data, _UNDERLINED_KEYS),
    )


def _from_structured(doc: dict) -> ParsedQuestion:
    passage = doc.get("passage")
    entries = doc.get("questions")
    if isinstance(entries, dict):
        entries = [entries]
    items: list[QuestionItem] = []
    if isinstance(entries, list):
        for entry in entries:
            if isinstance(entry, dict):
                item = _item_from_dict(entry)
                if item is not None:
                    items.append(item)
    if not items:
        item = _item_from_dict(doc)
        if item is not None:
            items.append(item)
    return ParsedQuestion(
        passage=passage if isinstance(passage, str) else None,
        items=items,
    )


# ── Heuristic tier ────────────────────────────────────────────────────────

def _clean(value: str) -> str:
    return value.strip().strip("*_").strip()


def _parse_block(block: str, writing: bool = False) -> QuestionItem:
    """Extract one question from labelled free text.

    Question text comes from a ``Question:`` (or ``Question 3:`` / ``3)``)
    label and runs until the next recognised line.  Without any label the
    first unlabelled lines before the choices are taken as the question.
    """
    question_lines: list[str] = []
    sentence_lines: list[str] = []
    underlined_lines: list[str] = []
    choices: list[str] = []
    answer = ""
    answer_pending = False
    current: list[str] | None = None
    labelled = False
    first = True

    for line in block.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        is_first, first = first, False

        m = _ANSWER_RE.match(stripped)
        if m:
            answer = _clean(m.group(1))
            # "Correct Answer:" alone on its line; the value follows
            answer_pending = not answer
            current = None
            continue

        if answer_pending:
            answer = _clean(stripped)
            answer_pending = False
            continue

        m = _CHOICE_LINE_RE.match(stripped)
        if m:
            choices.append(stripped)
            current = None
            continue

        if _CHOICES_HEADER_RE.match(stripped):
            current = None
            continue

        if writing:
            m = _SENTENCE_RE.match(stripped)
            if m:
                sentence_lines = [_clean(m.group(1))] if _clean(m.group(1)) else []
                current = sentence_lines
                continue
            m = _UNDERLINED_RE.match(stripped)
            if m:
                underlined_lines = [_clean(m.group(1))] if _clean(m.group(1)) else []
                current = underlined_lines
                continue

        m = _QUESTION_RE.match(stripped)
        header = m.group(1) if m else None
        if header is None and is_first:
            m = _NUMERAL_RE.match(stripped)
            header = m.group(2) if m else None
        if header is not None:
            question_lines = [_clean(header)] if _clean(header) else []
            current = question_lines
            labelled = True
            continue

        if current is not None:
            current.append(stripped)
        elif not labelled and not choices and not answer:
            question_lines.append(stripped)
            current = question_lines

    return QuestionItem(
        question_text="\n".join(question_lines).strip(),
        choices=choices,
        correct_answer=answer,
        sentence="\n".join(sentence_lines) or None,
        underlined="\n".join(underlined_lines) or None,
    )


def _has_marker(text: str, pattern: re.Pattern) -> bool:
    return any(pattern.match(line.strip()) for line in text.splitlines())


def _split_sections(text: str) -> tuple[str | None, str]:
    """Split off a ``Passage:`` block; return (passage, remaining text).

    The passage ends at a ``Questions:`` marker or a ``Question <n>:`` line.
    """
    passage_lines: list[str] | None = None
    rest: list[str] = []
    state = "before"

    for line in text.splitlines():
        stripped = line.strip()
        if state != "questions":
            m = _QUESTIONS_MARKER_RE.match(stripped)
            if m:
                state = "questions"
                if _clean(m.group(1)):
                    rest.append(m.group(1))
                continue
            m = _PASSAGE_MARKER_RE.match(stripped)
            if m and state == "before":
                passage_lines = [_clean(m.group(1))] if _clean(m.group(1)) else []
                state = "passage"
                continue
            if state == "passage":
                if _is_block_start(stripped):
                    state = "questions"
                else:
                    passage_lines.append(line.rstrip())
                    continue
        rest.append(line)

    passage = "\n".join(passage_lines).strip() if passage_lines is not None else ""
    return passage or None, "\n".join(rest)


def _is_block_start(stripped: str) -> bool:
    return bool(_QUESTION_RE.match(stripped) or _NUMERAL_RE.match(stripped))


def _split_blocks(text: str) -> list[str]:
    """Split at ``Question <n>:`` / ``<n>)`` lines.

    Text before the first boundary is preamble and dropped; without any
    boundary the whole text is a single block.
    """
    blocks: list[list[str]] = []
    preamble: list[str] = []
    for line in text.splitlines():
        if _is_block_start(line.strip()):
            blocks.append([line])
        elif blocks:
            blocks[-1].append(line)
        else:
            preamble.append(line)
    if not blocks:
        return ["\n".join(preamble)]
    return ["\n".join(b) for b in blocks]


def _parse_heuristic(category: QuestionCategory, text: str) -> ParsedQuestion:
    if category.is_math:
        return ParsedQuestion(items=[_parse_block(text)])

    passage, rest = _split_sections(text)
    items = [
        _parse_block(block, writing=category.is_writing)
        for block in _split_blocks(rest)
    ]
    items = [i for i in items if i.question_text or i.choices]
    return ParsedQuestion(passage=passage, items=items)


# ── Entry points ──────────────────────────────────────────────────────────

def parse_completion(category: QuestionCategory | str, raw: str) -> ParseResult:
    """Parse a raw completion for *category* into a ParseResult.

    Pure function of its inputs; never raises for string input.
    """
    category = QuestionCategory(category)
    text = _THINK_RE.sub("", raw or "").strip()

    doc, remainder = _decode_structured(text)
    structured = _from_structured(doc) if doc is not None else ParsedQuestion()

    if structured.items:
        if not structured.passage and not category.is_math:
            structured.passage, _ = _split_sections(remainder)
        question = normalize_question(structured)
        _log.debug("Strict parse (%s): %d item(s)", category.value, len(question.items))
        return ParseResult("strict", question)

    heuristic = _parse_heuristic(category, remainder)
    if not heuristic.passage and structured.passage:
        heuristic.passage = structured.passage
    question = normalize_question(heuristic)
    if question.is_empty:
        _log.info("Nothing usable in %s completion (%d chars)", category.value, len(text))
        return ParseResult("failed", question)
    _log.debug("Heuristic parse (%s): %d item(s)", category.value, len(question.items))
    return ParseResult("heuristic", question)


def join_completions(passage_raw: str, questions_raw: str) -> str:
    """Compose a passage completion and its questions completion into one.

    Free-text parts get ``Passage:`` / ``Questions:`` markers when they carry
    none, so the heuristic tier can tell them apart.
    """
    passage_raw = _THINK_RE.sub("", passage_raw).strip()
    questions_raw = _THINK_RE.sub("", questions_raw).strip()
    if _decode_structured(passage_raw)[0] is None and not _has_marker(passage_raw, _PASSAGE_MARKER_RE):
        passage_raw = f"Passage:\n{passage_raw}"
    if _decode_structured(questions_raw)[0] is None and not _has_marker(questions_raw, _QUESTIONS_MARKER_RE):
        questions_raw = f"Questions:\n{questions_raw}"
    return f"{passage_raw}\n\n{questions_raw}"
