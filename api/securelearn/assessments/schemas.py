"""Pydantic schemas for section assessments.

Admins see questions with their correct answer; employees taking an
assessment only ever receive ``TakerQuestionResponse``.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from securelearn.assessments.models import (
    AssessmentAttempt,
    AssessmentQuestion,
    AssessmentResult,
)
from securelearn.assessments.scoring import MAX_OPTIONS, MIN_OPTIONS


def _clean_options(options: list[str]) -> list[str]:
    cleaned = [option.strip() for option in options]
    if any(not option for option in cleaned):
        msg = "Options cannot be blank"
        raise ValueError(msg)
    return cleaned


# ==============================================================================
# Question Schemas
# ==============================================================================


class CreateQuestionRequest(BaseModel):
    """New question.

    ``correct_answer`` may be an option index, an index string, a letter
    code ("a", "b", ...) or the exact option text.
    """

    section_id: UUID
    question: str = Field(..., min_length=1, max_length=2000)
    options: list[str] = Field(..., min_length=MIN_OPTIONS, max_length=MAX_OPTIONS)
    correct_answer: int | str
    order: int = Field(0, ge=0)

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, value: list[str]) -> list[str]:
        return _clean_options(value)


class UpdateQuestionRequest(BaseModel):
    question: str | None = Field(None, min_length=1, max_length=2000)
    options: list[str] | None = Field(None, min_length=MIN_OPTIONS, max_length=MAX_OPTIONS)
    correct_answer: int | str | None = None
    order: int | None = Field(None, ge=0)

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, value: list[str] | None) -> list[str] | None:
        return _clean_options(value) if value is not None else None


class QuestionResponse(BaseModel):
    """Question as seen by admins."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID
    question: str
    options: list[str]
    correct_answer: int | None = None
    order: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: AssessmentQuestion) -> "QuestionResponse":
        return cls.model_validate(entity)


class TakerQuestionResponse(BaseModel):
    """Question as served to someone taking the assessment."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID
    question: str
    options: list[str]
    order: int

    @classmethod
    def from_entity(cls, entity: AssessmentQuestion) -> "TakerQuestionResponse":
        return cls.model_validate(entity)


# ==============================================================================
# Attempt & Result Schemas
# ==============================================================================


class StartAssessmentResponse(BaseModel):
    section_id: UUID
    started_at: datetime
    expires_at: datetime
    time_limit_seconds: int
    questions: list[TakerQuestionResponse]

    @classmethod
    def from_attempt(
        cls,
        attempt: AssessmentAttempt,
        questions: list[AssessmentQuestion],
        time_limit_seconds: int,
    ) -> "StartAssessmentResponse":
        return cls(
            section_id=attempt.section_id,
            started_at=attempt.started_at,
            expires_at=attempt.expires_at,
            time_limit_seconds=time_limit_seconds,
            questions=[TakerQuestionResponse.from_entity(q) for q in questions],
        )


class SubmitAssessmentRequest(BaseModel):
    """Answers keyed by question id, each the chosen option index."""

    section_id: UUID
    answers: dict[UUID, Annotated[int, Field(ge=0)]] = Field(default_factory=dict)


class ResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    section_id: UUID
    score: int
    total_questions: int
    correct_answers: int
    answers: dict[UUID, int] = Field(default_factory=dict)
    passed: bool
    date_taken: datetime
    certificate_generated: bool = False

    @classmethod
    def from_entity(cls, entity: AssessmentResult) -> "ResultResponse":
        return cls.model_validate(entity)
