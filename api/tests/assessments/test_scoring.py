"""Tests for answer normalization and scoring."""

from uuid import uuid4

import pytest

from securelearn.assessments.models import AssessmentQuestion, AssessmentResult
from securelearn.assessments.scoring import (
    AnswerNormalizationError,
    normalize_correct_answer,
    percentage,
    score_submission,
)


OPTIONS = ["Report it to IT security", "Reply and ask for details", "Click to verify", "Ignore it"]


def make_question(correct_answer: int = 0, options: list[str] | None = None) -> AssessmentQuestion:
    return AssessmentQuestion(
        section_id=uuid4(),
        question="You receive an unexpected invoice attachment. What do you do?",
        options=options or OPTIONS,
        correct_answer=correct_answer,
    )


class TestNormalizeCorrectAnswer:
    @pytest.mark.parametrize("marker", [2, "2", "c", "C", " c ", "Click to verify"])
    def test_all_forms_resolve_to_same_index(self, marker: int | str) -> None:
        assert normalize_correct_answer(marker, OPTIONS) == 2

    def test_option_text_is_matched_after_stripping(self) -> None:
        assert normalize_correct_answer("  Ignore it ", OPTIONS) == 3

    def test_option_text_wins_over_index(self) -> None:
        """Options that look like indexes are matched by text first."""
        options = ["3", "2", "1", "0"]
        assert normalize_correct_answer("1", options) == 2

    @pytest.mark.parametrize("marker", [4, -1, "7", "e", "z", "Maybe"])
    def test_unresolvable_markers(self, marker: int | str) -> None:
        with pytest.raises(AnswerNormalizationError):
            normalize_correct_answer(marker, OPTIONS)

    def test_bool_is_not_an_index(self) -> None:
        with pytest.raises(AnswerNormalizationError):
            normalize_correct_answer(True, OPTIONS)

    def test_no_options(self) -> None:
        with pytest.raises(AnswerNormalizationError):
            normalize_correct_answer(0, [])


class TestPercentage:
    @pytest.mark.parametrize(
        "part,whole,expected",
        [
            (0, 4, 0),
            (4, 4, 100),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),
            (5, 8, 63),
            (0, 0, 0),
        ],
    )
    def test_half_up_rounding(self, part: int, whole: int, expected: int) -> None:
        assert percentage(part, whole) == expected


class TestScoreSubmission:
    def test_all_correct_passes(self) -> None:
        questions = [make_question(0), make_question(3)]
        answers = {questions[0].id: 0, questions[1].id: 3}

        card = score_submission(questions, answers)

        assert card.correct_answers == 2
        assert card.total_questions == 2
        assert card.score == 100
        assert card.passed is True

    def test_one_wrong_fails(self) -> None:
        """Passing requires every answer to be correct."""
        questions = [make_question(0) for _ in range(20)]
        answers = {q.id: 0 for q in questions}
        answers[questions[0].id] = 1

        card = score_submission(questions, answers)

        assert card.score == 95
        assert card.passed is False

    def test_unanswered_counts_as_wrong(self) -> None:
        questions = [make_question(0), make_question(1)]
        card = score_submission(questions, {questions[0].id: 0})
        assert card.correct_answers == 1
        assert card.score == 50

    def test_unknown_question_ids_ignored(self) -> None:
        questions = [make_question(0)]
        card = score_submission(questions, {questions[0].id: 0, uuid4(): 2})
        assert card.correct_answers == 1
        assert card.total_questions == 1

    def test_unmigrated_question_never_matches(self) -> None:
        question = make_question()
        question.correct_answer = None
        card = score_submission([question], {question.id: 0})
        assert card.correct_answers == 0

    def test_deterministic(self) -> None:
        questions = [make_question(i % 4) for i in range(7)]
        answers = {q.id: 1 for q in questions}
        assert score_submission(questions, answers) == score_submission(questions, answers)

    def test_no_questions(self) -> None:
        with pytest.raises(ValueError):
            score_submission([], {})


class TestAssessmentResult:
    def test_passed_derived_from_score(self) -> None:
        kwargs = {"user_id": uuid4(), "section_id": uuid4(), "total_questions": 4}
        assert AssessmentResult(score=100, correct_answers=4, **kwargs).passed is True
        assert AssessmentResult(score=75, correct_answers=3, **kwargs).passed is False
