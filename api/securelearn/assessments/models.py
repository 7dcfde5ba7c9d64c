"""Database models for section assessments.

Cassandra table definitions for:
- Assessment questions: multiple choice, correct answer stored as an index
- Assessment results: one row per graded submission
- Assessment attempts: open attempt per (user, section), expires via TTL

``correct_answer_code`` only exists on rows written before answers were
normalized; the 001 migration converts and clears it.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from securelearn.assessments.scoring import is_passing
from securelearn.core.rows import ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ASSESSMENT_QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assessment_questions (
    id UUID PRIMARY KEY,
    section_id UUID,
    question TEXT,
    options LIST<TEXT>,
    correct_answer INT,
    correct_answer_code TEXT,
    sort_order INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

ASSESSMENT_QUESTIONS_SECTION_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS assessment_questions_section_idx
ON {keyspace}.assessment_questions (section_id)
"""

ASSESSMENT_RESULTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assessment_results (
    id UUID PRIMARY KEY,
    user_id UUID,
    section_id UUID,
    score INT,
    total_questions INT,
    correct_answers INT,
    answers MAP<UUID, INT>,
    passed BOOLEAN,
    date_taken TIMESTAMP,
    certificate_generated BOOLEAN
)
"""

ASSESSMENT_RESULTS_USER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS assessment_results_user_idx
ON {keyspace}.assessment_results (user_id)
"""

ASSESSMENT_RESULTS_SECTION_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS assessment_results_section_idx
ON {keyspace}.assessment_results (section_id)
"""

ASSESSMENT_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assessment_attempts (
    user_id UUID,
    section_id UUID,
    started_at TIMESTAMP,
    expires_at TIMESTAMP,
    PRIMARY KEY (user_id, section_id)
)
"""

ASSESSMENT_ATTEMPTS_SECTION_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS assessment_attempts_section_idx
ON {keyspace}.assessment_attempts (section_id)
"""

ASSESSMENT_TABLES_CQL = [
    ASSESSMENT_QUESTIONS_TABLE_CQL,
    ASSESSMENT_QUESTIONS_SECTION_INDEX_CQL,
    ASSESSMENT_RESULTS_TABLE_CQL,
    ASSESSMENT_RESULTS_USER_INDEX_CQL,
    ASSESSMENT_RESULTS_SECTION_INDEX_CQL,
    ASSESSMENT_ATTEMPTS_TABLE_CQL,
    ASSESSMENT_ATTEMPTS_SECTION_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class AssessmentQuestion:
    """Multiple-choice question belonging to a section."""

    def __init__(
        self,
        section_id: UUID,
        question: str,
        options: list[str],
        correct_answer: int | None,
        id: UUID | None = None,
        order: int = 0,
        correct_answer_code: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.section_id = section_id
        self.question = question
        self.options = list(options)
        self.correct_answer = correct_answer
        self.correct_answer_code = correct_answer_code
        self.order = order
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def needs_migration(self) -> bool:
        """Row still carries only a legacy answer code."""
        return self.correct_answer is None and bool(self.correct_answer_code)

    @classmethod
    def from_row(cls, row: Any) -> "AssessmentQuestion":
        """Create AssessmentQuestion instance from Cassandra row."""
        return cls(
            id=row.id,
            section_id=row.section_id,
            question=row.question,
            options=row.options or [],
            correct_answer=row.correct_answer,
            correct_answer_code=getattr(row, "correct_answer_code", None),
            order=row.sort_order or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "section_id": self.section_id,
            "question": self.question,
            "options": self.options,
            "correct_answer": self.correct_answer,
            "order": self.order,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<AssessmentQuestion {self.id} section={self.section_id}>"


class AssessmentResult:
    """Graded submission.

    ``passed`` is derived from ``score`` when the result is created and is
    never re-evaluated afterwards.
    """

    def __init__(
        self,
        user_id: UUID,
        section_id: UUID,
        score: int,
        total_questions: int,
        correct_answers: int,
        answers: dict[UUID, int] | None = None,
        passed: bool | None = None,
        id: UUID | None = None,
        date_taken: datetime | None = None,
        certificate_generated: bool = False,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.section_id = section_id
        self.score = score
        self.total_questions = total_questions
        self.correct_answers = correct_answers
        self.answers = dict(answers or {})
        self.passed = is_passing(score) if passed is None else passed
        self.date_taken = ensure_utc_aware(date_taken) or datetime.now(UTC)
        self.certificate_generated = certificate_generated

    @classmethod
    def from_row(cls, row: Any) -> "AssessmentResult":
        """Create AssessmentResult instance from Cassandra row."""
        return cls(
            id=row.id,
            user_id=row.user_id,
            section_id=row.section_id,
            score=row.score or 0,
            total_questions=row.total_questions or 0,
            correct_answers=row.correct_answers or 0,
            answers=dict(row.answers or {}),
            passed=bool(row.passed),
            date_taken=row.date_taken,
            certificate_generated=bool(row.certificate_generated),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "section_id": self.section_id,
            "score": self.score,
            "total_questions": self.total_questions,
            "correct_answers": self.correct_answers,
            "answers": self.answers,
            "passed": self.passed,
            "date_taken": self.date_taken,
            "certificate_generated": self.certificate_generated,
        }

    def __repr__(self) -> str:
        outcome = "passed" if self.passed else "failed"
        return f"<AssessmentResult {self.id} {self.score}% {outcome}>"


class AssessmentAttempt:
    """Open attempt; its start time is stamped by the server."""

    def __init__(
        self,
        user_id: UUID,
        section_id: UUID,
        started_at: datetime,
        expires_at: datetime,
    ):
        self.user_id = user_id
        self.section_id = section_id
        self.started_at = ensure_utc_aware(started_at)
        self.expires_at = ensure_utc_aware(expires_at)

    @classmethod
    def from_row(cls, row: Any) -> "AssessmentAttempt":
        return cls(
            user_id=row.user_id,
            section_id=row.section_id,
            started_at=row.started_at,
            expires_at=row.expires_at,
        )

    def is_expired(self, now: datetime, grace_seconds: int = 0) -> bool:
        """Check whether a submission at ``now`` is too late."""
        return (now - self.expires_at).total_seconds() > grace_seconds

    def __repr__(self) -> str:
        return f"<AssessmentAttempt user={self.user_id} section={self.section_id}>"
