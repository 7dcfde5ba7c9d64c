"""End-to-end assessment flow against an in-memory stand-in for the tables.

Start, submit, retake and certificate issuance all run through the real
services; only the Cassandra session is faked.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, Mock
from uuid import UUID

import pytest

from securelearn.assessments.models import AssessmentQuestion
from securelearn.assessments.service import (
    AlreadyPassedError,
    AssessmentService,
    AttemptNotStartedError,
)
from securelearn.auth.models import User
from securelearn.certificates.service import (
    CertificateNotAvailableError,
    CertificateService,
)
from securelearn.config import Settings
from securelearn.training.models import TrainingSection


class Rows(list):
    def one(self):
        return self[0] if self else None


class FakeTables:
    """Answers the assessment service's CQL from dicts."""

    def __init__(self, section_id: UUID, questions: list[AssessmentQuestion]):
        self.section_id = section_id
        self.questions = [
            SimpleNamespace(
                id=q.id,
                section_id=q.section_id,
                question=q.question,
                options=q.options,
                correct_answer=q.correct_answer,
                correct_answer_code=None,
                sort_order=q.order,
                created_at=q.created_at,
                updated_at=None,
            )
            for q in questions
        ]
        self.attempts: dict[tuple, SimpleNamespace] = {}
        self.results: dict[UUID, SimpleNamespace] = {}

    async def aexecute(self, statement, params=None):
        query = " ".join(statement.query_string.split())
        params = list(params or [])

        if query.startswith("SELECT id FROM test_keyspace.training_sections"):
            return Rows([SimpleNamespace(id=params[0])] if params[0] == self.section_id else [])
        if query.startswith("SELECT * FROM test_keyspace.assessment_questions WHERE section_id"):
            return Rows(q for q in self.questions if q.section_id == params[0])

        if query.startswith("INSERT INTO test_keyspace.assessment_attempts"):
            user_id, section_id, started_at, expires_at, _ttl = params
            self.attempts[(user_id, section_id)] = SimpleNamespace(
                user_id=user_id, section_id=section_id,
                started_at=started_at, expires_at=expires_at,
            )
            return Rows()
        if query.startswith("SELECT * FROM test_keyspace.assessment_attempts"):
            attempt = self.attempts.get((params[0], params[1]))
            return Rows([attempt] if attempt else [])
        if query.startswith("DELETE FROM test_keyspace.assessment_attempts") and "IF" in query:
            attempt = self.attempts.get((params[0], params[1]))
            applied = attempt is not None and attempt.started_at == params[2]
            if applied:
                del self.attempts[(params[0], params[1])]
            return Mock(was_applied=applied)

        if query.startswith("INSERT INTO test_keyspace.assessment_results"):
            columns = [
                "id", "user_id", "section_id", "score", "total_questions",
                "correct_answers", "answers", "passed", "date_taken",
                "certificate_generated",
            ]
            row = SimpleNamespace(**dict(zip(columns, params, strict=True)))
            self.results[row.id] = row
            return Rows()
        if query.startswith("SELECT * FROM test_keyspace.assessment_results WHERE user_id"):
            return Rows(r for r in self.results.values() if r.user_id == params[0])
        if query.startswith("SELECT * FROM test_keyspace.assessment_results WHERE id"):
            row = self.results.get(params[0])
            return Rows([row] if row else [])
        if query.startswith("UPDATE test_keyspace.assessment_results"):
            self.results[params[0]].certificate_generated = True
            return Rows()

        raise AssertionError(f"unexpected statement: {query}")


@pytest.fixture
def section() -> TrainingSection:
    return TrainingSection(title="Phishing Awareness", order=1)


@pytest.fixture
def questions(section: TrainingSection) -> list[AssessmentQuestion]:
    return [
        AssessmentQuestion(
            section_id=section.id,
            question=f"Which sign gives phishing email {i} away?",
            options=["Urgent tone", "Company logo", "Your name"],
            correct_answer=0,
            order=i,
        )
        for i in range(5)
    ]


@pytest.fixture
def tables(section: TrainingSection, questions: list[AssessmentQuestion]) -> FakeTables:
    return FakeTables(section.id, questions)


@pytest.fixture
def assessment_service(mock_session: Mock, tables: FakeTables) -> AssessmentService:
    mock_session.aexecute = AsyncMock(side_effect=tables.aexecute)
    return AssessmentService(
        session=mock_session,
        keyspace="test_keyspace",
        settings=Settings(environment="testing"),
    )


@pytest.fixture
def certificate_service(
    assessment_service: AssessmentService,
    mock_auth_service: MagicMock,
    section: TrainingSection,
) -> CertificateService:
    section_service = MagicMock()
    section_service.get_section = AsyncMock(return_value=section)
    return CertificateService(assessment_service, section_service, mock_auth_service)


@pytest.mark.asyncio
async def test_fail_then_retake_and_earn_certificate(
    assessment_service: AssessmentService,
    certificate_service: CertificateService,
    tables: FakeTables,
    employee_user: User,
    section: TrainingSection,
    questions: list[AssessmentQuestion],
) -> None:
    user_id = employee_user.id

    await assessment_service.start_attempt(user_id, section.id)
    four_right = {q.id: 0 for q in questions}
    four_right[questions[-1].id] = 1
    failed = await assessment_service.submit_assessment(user_id, section.id, four_right)

    assert (failed.score, failed.passed, failed.correct_answers) == (80, False, 4)
    assert tables.attempts == {}

    await assessment_service.start_attempt(user_id, section.id)
    passed = await assessment_service.submit_assessment(
        user_id, section.id, {q.id: 0 for q in questions}
    )

    assert (passed.score, passed.passed) == (100, True)
    assert await assessment_service.has_passed(user_id, section.id) is True

    certificate = await certificate_service.issue_certificate(user_id, passed.id)
    assert certificate.filename == "certificate-Phishing-Awareness.html"
    assert "Ana Souza" in certificate.html
    assert tables.results[passed.id].certificate_generated is True

    with pytest.raises(CertificateNotAvailableError):
        await certificate_service.issue_certificate(user_id, failed.id)
    assert tables.results[failed.id].certificate_generated is False

    with pytest.raises(AlreadyPassedError):
        await assessment_service.start_attempt(user_id, section.id)


@pytest.mark.asyncio
async def test_attempt_is_single_use(
    assessment_service: AssessmentService,
    tables: FakeTables,
    employee_user: User,
    section: TrainingSection,
    questions: list[AssessmentQuestion],
) -> None:
    answers = {q.id: 1 for q in questions}
    await assessment_service.start_attempt(employee_user.id, section.id)
    first = await assessment_service.submit_assessment(employee_user.id, section.id, answers)

    with pytest.raises(AttemptNotStartedError):
        await assessment_service.submit_assessment(employee_user.id, section.id, answers)

    assert first.score == 0
    assert list(tables.results) == [first.id]
