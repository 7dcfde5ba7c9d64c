"""Admin compliance reports.

Joins progress and results with the users, modules and sections they
reference. Rows pointing at a deleted user (or module) are left out of
the reports.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

from securelearn.assessments.schemas import ResultResponse
from securelearn.assessments.scoring import percentage
from securelearn.auth.schemas import UserResponse
from securelearn.progress.schemas import ProgressResponse
from securelearn.reports.schemas import DashboardStats, ProgressReportItem, ResultReportItem
from securelearn.training.schemas import ModuleResponse


if TYPE_CHECKING:
    from securelearn.assessments.models import AssessmentResult
    from securelearn.assessments.service import AssessmentService
    from securelearn.auth.models import User
    from securelearn.auth.service import AuthService
    from securelearn.progress.models import EmployeeProgress
    from securelearn.progress.service import ProgressService
    from securelearn.training.models import TrainingModule, TrainingSection
    from securelearn.training.service import ModuleService, SectionService


# ==============================================================================
# Joins
# ==============================================================================


def join_progress(
    progress: Iterable["EmployeeProgress"],
    users: dict[UUID, "User"],
    modules: dict[UUID, "TrainingModule"],
) -> list[ProgressReportItem]:
    """Attach user and module to each progress row, dropping orphans."""
    items = []
    for row in progress:
        user = users.get(row.user_id)
        module = modules.get(row.module_id)
        if user is None or module is None:
            continue
        items.append(
            ProgressReportItem(
                **ProgressResponse.from_entity(row).model_dump(),
                user=UserResponse.from_user(user),
                module=ModuleResponse.from_entity(module),
            )
        )
    return sorted(items, key=lambda i: i.updated_at or i.created_at, reverse=True)


def join_results(
    results: Iterable["AssessmentResult"],
    users: dict[UUID, "User"],
    sections: dict[UUID, "TrainingSection"],
) -> list[ResultReportItem]:
    """Attach the user (and section title) to each result, dropping orphans."""
    items = []
    for result in results:
        user = users.get(result.user_id)
        if user is None:
            continue
        section = sections.get(result.section_id)
        items.append(
            ResultReportItem(
                **ResultResponse.from_entity(result).model_dump(),
                user=UserResponse.from_user(user),
                section_title=section.title if section else None,
            )
        )
    return items


# ==============================================================================
# Report Service
# ==============================================================================


class ReportService:
    """Read-only views across users, content, progress and results."""

    def __init__(
        self,
        auth_service: "AuthService",
        section_service: "SectionService",
        module_service: "ModuleService",
        progress_service: "ProgressService",
        assessment_service: "AssessmentService",
    ):
        self.auth_service = auth_service
        self.section_service = section_service
        self.module_service = module_service
        self.progress_service = progress_service
        self.assessment_service = assessment_service

    async def progress_report(self) -> list[ProgressReportItem]:
        progress = await self.progress_service.list_all_progress()
        users = await self.auth_service.get_users_by_ids(p.user_id for p in progress)
        modules = {m.id: m for m in await self.module_service.list_modules()}
        return join_progress(progress, users, modules)

    async def results_report(self) -> list[ResultReportItem]:
        results = await self.assessment_service.list_all_results()
        users = await self.auth_service.get_users_by_ids(r.user_id for r in results)
        sections = {s.id: s for s in await self.section_service.list_sections()}
        return join_results(results, users, sections)

    async def dashboard_stats(self) -> DashboardStats:
        users = await self.auth_service.list_users()
        sections = await self.section_service.list_sections()
        modules = await self.module_service.list_modules()
        questions = await self.assessment_service.list_all_questions()
        progress = await self.progress_service.list_all_progress()
        results = await self.assessment_service.list_all_results()

        passed = [r for r in results if r.passed]
        completed = sum(1 for p in progress if p.is_completed)
        return DashboardStats(
            total_users=len(users),
            total_admins=sum(1 for u in users if u.is_admin),
            total_sections=len(sections),
            total_modules=len(modules),
            total_questions=len(questions),
            modules_in_progress=len(progress) - completed,
            modules_completed=completed,
            assessment_attempts=len(results),
            assessments_passed=len(passed),
            pass_rate=percentage(len(passed), len(results)),
            average_score=percentage(sum(r.score for r in results), len(results) * 100),
            certificates_generated=sum(1 for r in results if r.certificate_generated),
        )
