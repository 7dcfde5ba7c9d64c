"""Pydantic schemas for admin compliance reports."""

from pydantic import BaseModel, Field

from securelearn.assessments.schemas import ResultResponse
from securelearn.auth.schemas import UserResponse
from securelearn.progress.schemas import ProgressResponse
from securelearn.training.schemas import ModuleResponse


class ProgressReportItem(ProgressResponse):
    """Progress row with its employee and module."""

    user: UserResponse
    module: ModuleResponse


class ResultReportItem(ResultResponse):
    """Assessment result with the employee who took it."""

    user: UserResponse
    section_title: str | None = None


class ResetResultsResponse(BaseModel):
    message: str
    deleted_results: int


class DashboardStats(BaseModel):
    """Headline numbers for the admin dashboard."""

    total_users: int = 0
    total_admins: int = 0
    total_sections: int = 0
    total_modules: int = 0
    total_questions: int = 0
    modules_in_progress: int = Field(0, description="In-progress (user, module) rows")
    modules_completed: int = Field(0, description="Completed (user, module) rows")
    assessment_attempts: int = Field(0, description="Graded submissions")
    assessments_passed: int = 0
    pass_rate: int = Field(0, description="Passed submissions, 0-100")
    average_score: int = Field(0, description="Mean score, 0-100")
    certificates_generated: int = 0
