"""FastAPI dependencies for assessments."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from securelearn.assessments.service import AssessmentError, AssessmentService


_assessment_service_getter: Callable[[], AssessmentService] | None = None


def set_assessment_service_getter(getter: Callable[[], AssessmentService]) -> None:
    """Set the assessment service getter function."""
    global _assessment_service_getter
    _assessment_service_getter = getter


def get_assessment_service() -> AssessmentService:
    """Get AssessmentService instance from app state."""
    if _assessment_service_getter is None:
        msg = "AssessmentService not configured"
        raise RuntimeError(msg)
    return _assessment_service_getter()


AssessmentServiceDep = Annotated[AssessmentService, Depends(get_assessment_service)]


def handle_assessment_error(error: AssessmentError) -> HTTPException:
    """Convert assessment errors to HTTPException."""
    status_map = {
        "section_not_found": status.HTTP_404_NOT_FOUND,
        "question_not_found": status.HTTP_404_NOT_FOUND,
        "result_not_found": status.HTTP_404_NOT_FOUND,
        "no_questions": status.HTTP_404_NOT_FOUND,
        "invalid_answer": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "already_passed": status.HTTP_409_CONFLICT,
        "attempt_not_started": status.HTTP_409_CONFLICT,
        "submission_in_progress": status.HTTP_409_CONFLICT,
        "attempt_expired": status.HTTP_400_BAD_REQUEST,
        "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
