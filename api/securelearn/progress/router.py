"""Employee progress API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from securelearn.auth.dependencies import CurrentUser
from securelearn.progress.dependencies import ProgressServiceDep, handle_progress_error
from securelearn.progress.schemas import (
    PageViewRequest,
    ProgressResponse,
    SectionProgressResponse,
    UpsertProgressRequest,
)
from securelearn.progress.service import ProgressError
from securelearn.training.dependencies import ModuleServiceDep, SectionServiceDep


router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("", response_model=list[ProgressResponse], summary="My progress")
async def get_my_progress(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> list[ProgressResponse]:
    """All progress rows of the signed-in user."""
    rows = await progress_service.get_user_progress(user.id)
    return [ProgressResponse.from_entity(p) for p in rows]


@router.get(
    "/sections",
    response_model=list[SectionProgressResponse],
    summary="My section completion",
)
async def get_my_section_progress(
    progress_service: ProgressServiceDep,
    section_service: SectionServiceDep,
    module_service: ModuleServiceDep,
    user: CurrentUser,
) -> list[SectionProgressResponse]:
    """Completion percentage per section, derived from module statuses."""
    sections = await section_service.list_sections()
    modules = await module_service.list_modules()
    summaries = await progress_service.get_section_summaries(user.id, sections, modules)
    return [SectionProgressResponse.from_entity(s) for s in summaries]


@router.get("/{module_id}", response_model=ProgressResponse | None)
async def get_module_progress(
    module_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ProgressResponse | None:
    """Progress for one module; ``null`` when the module was never opened."""
    progress = await progress_service.get_module_progress(user.id, module_id)
    return ProgressResponse.from_entity(progress) if progress else None


@router.post("", response_model=ProgressResponse, summary="Record progress")
async def upsert_progress(
    data: UpsertProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ProgressResponse:
    """Write ``in_progress`` or ``completed`` for a module, overwriting its row."""
    try:
        progress = await progress_service.upsert_progress(
            user_id=user.id,
            module_id=data.module_id,
            status=data.status,
            page_id=data.last_viewed_page_id,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return ProgressResponse.from_entity(progress)


@router.post(
    "/{module_id}/view",
    response_model=ProgressResponse,
    summary="Record a page view",
)
async def record_page_view(
    module_id: UUID,
    data: PageViewRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ProgressResponse:
    """Move the resume page; a completed module stays completed."""
    try:
        progress = await progress_service.record_page_view(
            user_id=user.id,
            module_id=module_id,
            page_id=data.last_viewed_page_id,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return ProgressResponse.from_entity(progress)
