"""Answer normalization and scoring.

Correct answers are stored as option indexes. Older content marked them
with letter codes ("a", "b", ...), index strings or the option text; all
of those are converted to an index when a question is written (or by the
one-time migration), so scoring only ever compares integers.
"""

import string
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID


if TYPE_CHECKING:
    from securelearn.assessments.models import AssessmentQuestion


# A section is passed only with every answer correct
PASS_THRESHOLD = 100

MIN_OPTIONS = 2
MAX_OPTIONS = 10


class AnswerNormalizationError(ValueError):
    """The correct-answer marker does not resolve to an option."""


def normalize_correct_answer(value: int | str, options: list[str]) -> int:
    """Resolve a correct-answer marker to an option index.

    Strings are tried as the exact option text first, then as an index,
    then as a letter code.

    Examples:
        >>> opts = ["Phishing", "Vishing", "Tailgating"]
        >>> normalize_correct_answer(2, opts)
        2
        >>> normalize_correct_answer("c", opts)
        2
        >>> normalize_correct_answer("2", opts)
        2
        >>> normalize_correct_answer("Tailgating", opts)
        2

    Raises:
        AnswerNormalizationError: If the marker matches no option
    """
    if not options:
        msg = "Question has no options"
        raise AnswerNormalizationError(msg)

    if isinstance(value, bool):
        msg = "Correct answer must be an index, letter or option text"
        raise AnswerNormalizationError(msg)

    if isinstance(value, int):
        if 0 <= value < len(options):
            return value
        msg = f"Answer index {value} is out of range (0-{len(options) - 1})"
        raise AnswerNormalizationError(msg)

    marker = value.strip()
    stripped_options = [option.strip() for option in options]
    if marker in stripped_options:
        return stripped_options.index(marker)

    if marker.isdigit() and int(marker) < len(options):
        return int(marker)

    if len(marker) == 1 and marker.lower() in string.ascii_lowercase:
        index = string.ascii_lowercase.index(marker.lower())
        if index < len(options):
            return index

    msg = f"Correct answer {value!r} does not match any option"
    raise AnswerNormalizationError(msg)


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage rounded half up (0 when ``whole`` is 0)."""
    if whole <= 0:
        return 0
    exact = Decimal(part * 100) / Decimal(whole)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_passing(score: int) -> bool:
    return score >= PASS_THRESHOLD


@dataclass(frozen=True)
class ScoreCard:
    """Outcome of grading one submission."""

    correct_answers: int
    total_questions: int
    score: int
    passed: bool


def score_submission(
    questions: Iterable["AssessmentQuestion"],
    answers: Mapping[UUID, int],
) -> ScoreCard:
    """Grade submitted option indexes against the stored correct answers.

    Unanswered questions count as wrong; answers to unknown question ids
    are ignored. Grading is deterministic for the same inputs.

    Raises:
        ValueError: If there are no questions to grade
    """
    questions = list(questions)
    if not questions:
        msg = "Cannot score an assessment without questions"
        raise ValueError(msg)

    correct = sum(
        1
        for question in questions
        if question.correct_answer is not None
        and answers.get(question.id) == question.correct_answer
    )
    score = percentage(correct, len(questions))
    return ScoreCard(
        correct_answers=correct,
        total_questions=len(questions),
        score=score,
        passed=is_passing(score),
    )
