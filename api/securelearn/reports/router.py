"""Admin API endpoints.

All endpoints require ADMIN.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from securelearn.assessments.dependencies import AssessmentServiceDep
from securelearn.auth.dependencies import AdminUser, AuthServiceDep
from securelearn.auth.router import handle_auth_error
from securelearn.auth.schemas import UpdateRoleRequest, UserListResponse, UserResponse
from securelearn.auth.service import AuthError
from securelearn.core.logging import get_logger
from securelearn.reports.dependencies import ReportServiceDep
from securelearn.reports.schemas import (
    DashboardStats,
    ProgressReportItem,
    ResetResultsResponse,
    ResultReportItem,
)


logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/progress", response_model=list[ProgressReportItem], summary="All progress")
async def get_all_progress(
    report_service: ReportServiceDep,
    admin: AdminUser,
) -> list[ProgressReportItem]:
    """Every employee's module progress with user and module details."""
    return await report_service.progress_report()


@router.get(
    "/assessment/results",
    response_model=list[ResultReportItem],
    summary="All assessment results",
)
async def get_all_results(
    report_service: ReportServiceDep,
    admin: AdminUser,
) -> list[ResultReportItem]:
    """Every graded submission, newest first."""
    return await report_service.results_report()


@router.delete("/assessment/results/{user_id}", response_model=ResetResultsResponse)
async def reset_user_results(
    user_id: UUID,
    assessment_service: AssessmentServiceDep,
    auth_service: AuthServiceDep,
    admin: AdminUser,
    section_id: UUID | None = Query(None, description="Only reset this section"),
) -> ResetResultsResponse:
    """Delete a user's results and open attempts so they can retake."""
    if await auth_service.get_user_by_id(user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    deleted = await assessment_service.reset_results(user_id, section_id)
    logger.info(
        "admin_reset_assessment_results",
        admin_id=str(admin.id),
        user_id=str(user_id),
        deleted=deleted,
    )
    return ResetResultsResponse(
        message="Assessment results reset successfully",
        deleted_results=deleted,
    )


@router.get("/stats", response_model=DashboardStats, summary="Dashboard statistics")
async def get_stats(
    report_service: ReportServiceDep,
    admin: AdminUser,
) -> DashboardStats:
    return await report_service.dashboard_stats()


@router.get("/users", response_model=UserListResponse)
async def list_users(
    auth_service: AuthServiceDep,
    admin: AdminUser,
) -> UserListResponse:
    users = await auth_service.list_users()
    return UserListResponse(
        items=[UserResponse.from_user(u) for u in users],
        total=len(users),
    )


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: UUID,
    data: UpdateRoleRequest,
    auth_service: AuthServiceDep,
    admin: AdminUser,
) -> UserResponse:
    """Promote or demote a user. Admins cannot change their own role."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change your own role",
        )
    try:
        user = await auth_service.update_user_role(user_id, data.role)
    except AuthError as e:
        raise handle_auth_error(e) from e

    logger.info(
        "admin_role_changed",
        admin_id=str(admin.id),
        user_id=str(user_id),
        role=user.role,
    )
    return UserResponse.from_user(user)
