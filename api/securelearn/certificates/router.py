"""Certificate download endpoint."""

from uuid import UUID

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from securelearn.auth.dependencies import CurrentUser
from securelearn.certificates.dependencies import (
    CertificateServiceDep,
    handle_certificate_error,
)
from securelearn.certificates.service import CertificateError


router = APIRouter(prefix="/api/certificate", tags=["certificates"])


@router.get("/{result_id}", response_class=HTMLResponse, summary="Download certificate")
async def download_certificate(
    result_id: UUID,
    certificate_service: CertificateServiceDep,
    user: CurrentUser,
) -> HTMLResponse:
    """HTML certificate for one of the caller's passed results."""
    try:
        certificate = await certificate_service.issue_certificate(user.id, result_id)
    except CertificateError as e:
        raise handle_certificate_error(e) from e

    return HTMLResponse(
        content=certificate.html,
        headers={
            "Content-Disposition": f'attachment; filename="{certificate.filename}"',
        },
    )
