"""Default prompt texts used to seed the prompt store."""
from __future__ import annotations

from sat_practice.models import QuestionCategory

READING_PASSAGE_PROMPT = """\
Create a passage for an SAT-style Reading Section. The passage should be \
between 500 and 750 words and written in a formal tone. It should focus on \
one of the following topics:

Literature: an excerpt from a fictional story that explores a character's \
internal conflict, relationships, or a significant moment of decision.
Historical Document: a pivotal moment in history, such as a famous speech, \
social movement, or political debate, highlighting the arguments of the time.
Social Science: a current or historical topic in sociology, psychology, or \
economics, emphasizing data or theory.
Natural Science: a scientific concept, discovery, or experiment explained \
accessibly, possibly with hypothetical data.

The passage should be dense with ideas that require inference and analysis, \
with evidence supporting the main idea and advanced vocabulary. Avoid casual \
language and overtly technical jargon.

INSTRUCTIONS FOR OUTPUT:
You must ONLY output valid JSON, nothing else, with this structure:
{ "passage": "Your generated passage here" }
"""

READING_QUESTIONS_PROMPT = """\
Using the provided passage, create 10-11 SAT Reading Section-style \
multiple-choice questions that test a variety of skills:

- Main idea and purpose (1-2 questions)
- Details and evidence (2-3 questions)
- Evidence-based reasoning, as a claim question paired with a \
"Which choice best supports the answer to the previous question?" question
- Inferences (1-2 questions)
- Vocabulary in context (1 question)
- Author's tone and perspective (1 question)

Write each question with 4 answer choices (A, B, C, D). Vary the difficulty \
and avoid trick questions.

INSTRUCTIONS FOR OUTPUT:
You must ONLY output valid JSON, with a structure like:
{ "questions": [ { "question": "Which of the following best describes ...?", \
"choices": ["A) ...", "B) ...", "C) ...", "D) ..."], "correctAnswer": "B" } ] }
"""

WRITING_PASSAGE_PROMPT = """\
Create a passage for an SAT-style Writing and Language Section. The passage \
should be 400-450 words long, in a formal, concise tone, with 4-5 paragraphs \
and transitions between ideas. Choose a topic from careers, humanities, \
history/social studies, or science.

Make sure the passage offers clear opportunities to test grammar and usage, \
sentence structure, word choice, logical flow and transitions, and style and \
tone. It should read like a professional article or report.

INSTRUCTIONS FOR OUTPUT:
You must ONLY output valid JSON, with this structure:
{ "passage": "Your generated passage here" }
"""

WRITING_QUESTIONS_PROMPT = """\
Using the provided passage, create 11 SAT Writing and Language Section-style \
multiple-choice questions that improve the clarity, grammar, style, and \
organization of the text:

- Grammar and usage (3-4 questions)
- Sentence structure and punctuation (2-3 questions)
- Conciseness and word choice (2-3 questions)
- Organization and transitions (2-3 questions)
- Style and tone (1-2 questions)

For each question, quote the sentence it refers to and the underlined portion \
being tested.

INSTRUCTIONS FOR OUTPUT:
You must ONLY output valid JSON, with a structure like:
{ "questions": [ { "sentence": "...", "underlined": "...", \
"question": "Which of the following best corrects ...?", \
"choices": ["A) ...", "B) ...", "C) ...", "D) ..."], "correctAnswer": "D" } ] }
"""

MATH_WITH_CALCULATOR_PROMPT = """\
Create a single SAT Math Section-style question for the calculator-allowed \
subsection. It should involve multi-step calculations where a calculator \
simplifies solving, drawn from problem-solving and data analysis, algebra, or \
advanced math, in a realistic context (finance, science, everyday problems). \
State that the question is intended for the calculator-allowed subsection and \
provide 4 multiple-choice options (A, B, C, D).

INSTRUCTIONS FOR OUTPUT:
You must ONLY output valid JSON, with this structure:
{ "question": "This question is intended for the calculator-allowed subsection. ...", \
"choices": ["A) ...", "B) ...", "C) ...", "D) ..."], "correctAnswer": "C" }
"""

MATH_NO_CALCULATOR_PROMPT = """\
Create a single SAT Math Section-style question for the no-calculator \
subsection. It should be solvable quickly without a calculator, focusing on \
linear equations, simplifying expressions, or basic geometry, and avoid large \
numbers or lengthy calculations. State that the question is intended for the \
no-calculator subsection and provide 4 multiple-choice options (A, B, C, D).

INSTRUCTIONS FOR OUTPUT:
You must ONLY output valid JSON, with this structure:
{ "question": "This question is intended for the no-calculator subsection. ...", \
"choices": ["A) ...", "B) ...", "C) ...", "D) ..."], "correctAnswer": "B" }
"""

DEFAULT_PROMPTS: dict[QuestionCategory, str] = {
    QuestionCategory.READING_PASSAGE: READING_PASSAGE_PROMPT,
    QuestionCategory.READING_QUESTIONS: READING_QUESTIONS_PROMPT,
    QuestionCategory.WRITING_PASSAGE: WRITING_PASSAGE_PROMPT,
    QuestionCategory.WRITING_QUESTIONS: WRITING_QUESTIONS_PROMPT,
    QuestionCategory.MATH_WITH_CALCULATOR: MATH_WITH_CALCULATOR_PROMPT,
    QuestionCategory.MATH_NO_CALCULATOR: MATH_NO_CALCULATOR_PROMPT,
}


def format_questions_prompt(template: str, passage: str | None) -> str:
    """Append the passage the questions should be written about."""
    if not passage:
        return template
    return f"{template.rstrip()}\n\nPassage:\n{passage.strip()}\n"
