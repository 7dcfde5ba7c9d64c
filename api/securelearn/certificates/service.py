"""Certificate issuance for passed assessments."""

from typing import TYPE_CHECKING, NamedTuple
from uuid import UUID

import structlog

from securelearn.assessments.service import ResultNotFoundError
from securelearn.certificates.templates import (
    certificate_filename,
    recipient_name,
    render_certificate,
)


if TYPE_CHECKING:
    from securelearn.assessments.service import AssessmentService
    from securelearn.auth.service import AuthService
    from securelearn.training.service import SectionService

logger = structlog.get_logger(__name__)


class CertificateError(Exception):
    """Base certificate error."""

    def __init__(self, message: str, code: str = "certificate_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CertificateNotAvailableError(CertificateError):
    def __init__(self, message: str = "Certificate only available for passed assessments"):
        super().__init__(message, "not_passed")


class IssuedCertificate(NamedTuple):
    filename: str
    html: str


class CertificateService:
    """Renders certificates from stored results."""

    def __init__(
        self,
        assessment_service: "AssessmentService",
        section_service: "SectionService",
        auth_service: "AuthService",
    ):
        self.assessment_service = assessment_service
        self.section_service = section_service
        self.auth_service = auth_service

    async def issue_certificate(self, user_id: UUID, result_id: UUID) -> IssuedCertificate:
        """Render the certificate for one of the user's passed results.

        Results owned by someone else are reported as missing.

        Raises:
            CertificateError: result_not_found, not_passed or
                recipient_not_found
        """
        try:
            result = await self.assessment_service.get_result(result_id)
        except ResultNotFoundError as e:
            raise CertificateError(e.message, "result_not_found") from e
        if result.user_id != user_id:
            raise CertificateError("Assessment result not found", "result_not_found")

        if not result.passed:
            raise CertificateNotAvailableError

        user = await self.auth_service.get_user_by_id(user_id)
        section = await self.section_service.get_section(result.section_id)
        if user is None or section is None:
            raise CertificateError("User or section not found", "recipient_not_found")

        html = render_certificate(
            recipient=recipient_name(user.first_name, user.last_name, user.email),
            section_title=section.title,
            score=result.score,
            correct_answers=result.correct_answers,
            total_questions=result.total_questions,
            date_taken=result.date_taken,
            certificate_id=f"{result.id}-{result.section_id}",
        )
        await self.assessment_service.mark_certificate_generated(result.id)

        logger.info(
            "certificate_issued",
            user_id=str(user_id),
            result_id=str(result.id),
            section_id=str(result.section_id),
        )
        return IssuedCertificate(filename=certificate_filename(section.title), html=html)
