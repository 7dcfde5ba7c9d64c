"""FastAPI dependencies for admin reports."""

from typing import Annotated

from fastapi import Depends

from securelearn.assessments.dependencies import AssessmentServiceDep
from securelearn.auth.dependencies import AuthServiceDep
from securelearn.progress.dependencies import ProgressServiceDep
from securelearn.reports.service import ReportService
from securelearn.training.dependencies import ModuleServiceDep, SectionServiceDep


def get_report_service(
    auth_service: AuthServiceDep,
    section_service: SectionServiceDep,
    module_service: ModuleServiceDep,
    progress_service: ProgressServiceDep,
    assessment_service: AssessmentServiceDep,
) -> ReportService:
    return ReportService(
        auth_service=auth_service,
        section_service=section_service,
        module_service=module_service,
        progress_service=progress_service,
        assessment_service=assessment_service,
    )


ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]
