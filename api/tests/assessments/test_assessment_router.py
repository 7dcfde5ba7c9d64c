"""Tests for assessment endpoints."""

from collections.abc import Iterator
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from securelearn.assessments.models import (
    AssessmentAttempt,
    AssessmentQuestion,
    AssessmentResult,
)
from securelearn.assessments.service import (
    AlreadyPassedError,
    AttemptExpiredError,
    InvalidAnswerError,
    NoQuestionsError,
    RateLimitExceededError,
)
from securelearn.auth.models import User
from securelearn.core.rows import utcnow


@pytest.fixture
def section_id():
    return uuid4()


@pytest.fixture
def question(section_id) -> AssessmentQuestion:
    return AssessmentQuestion(
        section_id=section_id,
        question="What should you do with a suspicious attachment?",
        options=["Open it", "Report it", "Forward it"],
        correct_answer=1,
    )


@pytest.fixture
def mock_assessment_service() -> MagicMock:
    service = MagicMock()
    service.time_limit_seconds = 1800
    return service


@pytest.fixture
def assessment_client(
    api_client: TestClient, mock_assessment_service: MagicMock
) -> Iterator[TestClient]:
    from securelearn.assessments.dependencies import set_assessment_service_getter
    from securelearn.main import get_assessment_service

    set_assessment_service_getter(lambda: mock_assessment_service)
    yield api_client
    set_assessment_service_getter(get_assessment_service)


class TestTakingAssessment:
    def test_questions_hide_correct_answer(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        employee_headers: dict,
        question: AssessmentQuestion,
        section_id,
    ) -> None:
        mock_assessment_service.list_questions_for_taker = AsyncMock(return_value=[question])

        response = assessment_client.get(
            f"/api/sections/{section_id}/assessment/questions", headers=employee_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body[0]["options"] == ["Open it", "Report it", "Forward it"]
        assert "correct_answer" not in body[0]

    def test_questions_require_login(self, assessment_client: TestClient, section_id) -> None:
        response = assessment_client.get(f"/api/sections/{section_id}/assessment/questions")
        assert response.status_code == 401

    def test_start_returns_deadline(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        employee_headers: dict,
        employee_user: User,
        question: AssessmentQuestion,
        section_id,
    ) -> None:
        started_at = utcnow()
        attempt = AssessmentAttempt(
            user_id=employee_user.id,
            section_id=section_id,
            started_at=started_at,
            expires_at=started_at + timedelta(seconds=1800),
        )
        mock_assessment_service.start_attempt = AsyncMock(return_value=(attempt, [question]))

        response = assessment_client.post(
            f"/api/sections/{section_id}/assessment/start", headers=employee_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["time_limit_seconds"] == 1800
        assert "correct_answer" not in body["questions"][0]
        mock_assessment_service.start_attempt.assert_awaited_once_with(
            employee_user.id, section_id
        )

    def test_start_without_questions(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        employee_headers: dict,
        section_id,
    ) -> None:
        mock_assessment_service.start_attempt = AsyncMock(side_effect=NoQuestionsError())
        response = assessment_client.post(
            f"/api/sections/{section_id}/assessment/start", headers=employee_headers
        )
        assert response.status_code == 404

    def test_submit_grades_for_current_user(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        employee_headers: dict,
        employee_user: User,
        question: AssessmentQuestion,
        section_id,
    ) -> None:
        result = AssessmentResult(
            user_id=employee_user.id,
            section_id=section_id,
            score=100,
            total_questions=1,
            correct_answers=1,
            answers={question.id: 1},
        )
        mock_assessment_service.submit_assessment = AsyncMock(return_value=result)

        response = assessment_client.post(
            "/api/assessment/results",
            json={"section_id": str(section_id), "answers": {str(question.id): 1}},
            headers=employee_headers,
        )

        assert response.status_code == 201
        assert response.json()["passed"] is True
        kwargs = mock_assessment_service.submit_assessment.call_args.kwargs
        assert kwargs["user_id"] == employee_user.id
        assert kwargs["answers"] == {question.id: 1}

    def test_submit_rejects_negative_option(
        self, assessment_client: TestClient, employee_headers: dict, section_id
    ) -> None:
        response = assessment_client.post(
            "/api/assessment/results",
            json={"section_id": str(section_id), "answers": {str(uuid4()): -1}},
            headers=employee_headers,
        )
        assert response.status_code == 422

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (AlreadyPassedError(), 409),
            (AttemptExpiredError(), 400),
            (RateLimitExceededError(), 429),
        ],
    )
    def test_submit_error_mapping(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        employee_headers: dict,
        section_id,
        error: Exception,
        status_code: int,
    ) -> None:
        mock_assessment_service.submit_assessment = AsyncMock(side_effect=error)

        response = assessment_client.post(
            "/api/assessment/results",
            json={"section_id": str(section_id), "answers": {}},
            headers=employee_headers,
        )

        assert response.status_code == status_code
        assert response.json()["message"] == error.message


class TestQuestionManagement:
    def test_employee_cannot_list_questions(
        self, assessment_client: TestClient, employee_headers: dict
    ) -> None:
        response = assessment_client.get("/api/assessment/questions", headers=employee_headers)
        assert response.status_code == 403

    def test_admin_sees_correct_answer(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        admin_headers: dict,
        question: AssessmentQuestion,
        section_id,
    ) -> None:
        mock_assessment_service.list_questions = AsyncMock(return_value=[question])

        response = assessment_client.get(
            f"/api/assessment/questions?section_id={section_id}", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()[0]["correct_answer"] == 1
        mock_assessment_service.list_questions.assert_awaited_once_with(section_id)

    def test_create_with_unmatched_answer(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        admin_headers: dict,
        section_id,
    ) -> None:
        mock_assessment_service.create_question = AsyncMock(side_effect=InvalidAnswerError())

        response = assessment_client.post(
            "/api/assessment/questions",
            json={
                "section_id": str(section_id),
                "question": "Pick one",
                "options": ["Yes", "No"],
                "correct_answer": "Maybe",
            },
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_create_needs_two_options(
        self, assessment_client: TestClient, admin_headers: dict, section_id
    ) -> None:
        response = assessment_client.post(
            "/api/assessment/questions",
            json={
                "section_id": str(section_id),
                "question": "Pick one",
                "options": ["Only"],
                "correct_answer": 0,
            },
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_delete_question(
        self,
        assessment_client: TestClient,
        mock_assessment_service: MagicMock,
        admin_headers: dict,
        question: AssessmentQuestion,
    ) -> None:
        mock_assessment_service.delete_question = AsyncMock(return_value=None)

        response = assessment_client.delete(
            f"/api/assessment/questions/{question.id}", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Question deleted"
