"""Assessment API endpoints.

Provides routes for:
- Taking an assessment: questions (without answers), start, submit
- Own results
- Question management (ADMIN)
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from securelearn.assessments.dependencies import (
    AssessmentServiceDep,
    handle_assessment_error,
)
from securelearn.assessments.schemas import (
    CreateQuestionRequest,
    QuestionResponse,
    ResultResponse,
    StartAssessmentResponse,
    SubmitAssessmentRequest,
    TakerQuestionResponse,
    UpdateQuestionRequest,
)
from securelearn.assessments.service import AssessmentError
from securelearn.auth.dependencies import AdminUser, CurrentUser
from securelearn.training.schemas import MessageResponse


# ==============================================================================
# Taking an assessment
# ==============================================================================

router_section_assessment = APIRouter(prefix="/api/sections", tags=["assessments"])


@router_section_assessment.get(
    "/{section_id}/assessment/questions",
    response_model=list[TakerQuestionResponse],
    summary="Assessment questions",
)
async def get_assessment_questions(
    section_id: UUID,
    assessment_service: AssessmentServiceDep,
    user: CurrentUser,
) -> list[TakerQuestionResponse]:
    """Questions of a section, without correct answers."""
    try:
        questions = await assessment_service.list_questions_for_taker(section_id)
    except AssessmentError as e:
        raise handle_assessment_error(e) from e
    return [TakerQuestionResponse.from_entity(q) for q in questions]


@router_section_assessment.post(
    "/{section_id}/assessment/start",
    response_model=StartAssessmentResponse,
    summary="Start assessment attempt",
)
async def start_assessment(
    section_id: UUID,
    assessment_service: AssessmentServiceDep,
    user: CurrentUser,
) -> StartAssessmentResponse:
    """Open a timed attempt. Starting again restarts the clock."""
    try:
        attempt, questions = await assessment_service.start_attempt(user.id, section_id)
    except AssessmentError as e:
        raise handle_assessment_error(e) from e
    return StartAssessmentResponse.from_attempt(
        attempt, questions, assessment_service.time_limit_seconds
    )


router = APIRouter(prefix="/api/assessment", tags=["assessments"])


@router.get("/results", response_model=list[ResultResponse], summary="My results")
async def list_my_results(
    assessment_service: AssessmentServiceDep,
    user: CurrentUser,
) -> list[ResultResponse]:
    results = await assessment_service.list_user_results(user.id)
    return [ResultResponse.from_entity(r) for r in results]


@router.post(
    "/results",
    response_model=ResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit assessment",
)
async def submit_assessment(
    data: SubmitAssessmentRequest,
    assessment_service: AssessmentServiceDep,
    user: CurrentUser,
) -> ResultResponse:
    """Grade answers server-side. A score of 100% passes the section."""
    try:
        result = await assessment_service.submit_assessment(
            user_id=user.id,
            section_id=data.section_id,
            answers=data.answers,
        )
    except AssessmentError as e:
        raise handle_assessment_error(e) from e
    return ResultResponse.from_entity(result)


# ==============================================================================
# Question management
# ==============================================================================


@router.get("/questions", response_model=list[QuestionResponse])
async def list_questions(
    assessment_service: AssessmentServiceDep,
    user: AdminUser,
    section_id: UUID | None = Query(None, description="Filter by section"),
) -> list[QuestionResponse]:
    """Questions with their correct answers."""
    if section_id is not None:
        questions = await assessment_service.list_questions(section_id)
    else:
        questions = await assessment_service.list_all_questions()
    return [QuestionResponse.from_entity(q) for q in questions]


@router.post(
    "/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_question(
    data: CreateQuestionRequest,
    assessment_service: AssessmentServiceDep,
    user: AdminUser,
) -> QuestionResponse:
    try:
        question = await assessment_service.create_question(data)
    except AssessmentError as e:
        raise handle_assessment_error(e) from e
    return QuestionResponse.from_entity(question)


@router.put("/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: UUID,
    data: UpdateQuestionRequest,
    assessment_service: AssessmentServiceDep,
    user: AdminUser,
) -> QuestionResponse:
    try:
        question = await assessment_service.update_question(question_id, data)
    except AssessmentError as e:
        raise handle_assessment_error(e) from e
    return QuestionResponse.from_entity(question)


@router.delete("/questions/{question_id}", response_model=MessageResponse)
async def delete_question(
    question_id: UUID,
    assessment_service: AssessmentServiceDep,
    user: AdminUser,
) -> MessageResponse:
    try:
        await assessment_service.delete_question(question_id)
    except AssessmentError as e:
        raise handle_assessment_error(e) from e
    return MessageResponse(message="Question deleted")
