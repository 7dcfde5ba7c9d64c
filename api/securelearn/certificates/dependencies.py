"""FastAPI dependencies for certificate issuance."""

from typing import Annotated

from fastapi import Depends, HTTPException, status

from securelearn.assessments.dependencies import AssessmentServiceDep
from securelearn.auth.dependencies import AuthServiceDep
from securelearn.certificates.service import CertificateError, CertificateService
from securelearn.training.dependencies import SectionServiceDep


def get_certificate_service(
    assessment_service: AssessmentServiceDep,
    section_service: SectionServiceDep,
    auth_service: AuthServiceDep,
) -> CertificateService:
    return CertificateService(assessment_service, section_service, auth_service)


CertificateServiceDep = Annotated[CertificateService, Depends(get_certificate_service)]


def handle_certificate_error(error: CertificateError) -> HTTPException:
    """Convert certificate errors to HTTPException."""
    status_map = {
        "result_not_found": status.HTTP_404_NOT_FOUND,
        "recipient_not_found": status.HTTP_404_NOT_FOUND,
        "not_passed": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
