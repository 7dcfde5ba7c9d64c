"""Training content API endpoints.

Provides routes for:
- Sections: list, CRUD, modules of a section
- Modules: list, CRUD, section assignment, pages of a module
- Pages: update and delete

Any signed-in user can read; mutations require ADMIN.
"""

from uuid import UUID

from fastapi import APIRouter, status

from securelearn.auth.dependencies import AdminUser, CurrentUser
from securelearn.training.dependencies import (
    ModuleServiceDep,
    PageServiceDep,
    SectionServiceDep,
    handle_training_error,
)
from securelearn.training.schemas import (
    AssignSectionRequest,
    CreateModuleRequest,
    CreatePageRequest,
    CreateSectionRequest,
    MessageResponse,
    ModuleResponse,
    PageResponse,
    SectionResponse,
    UpdateModuleRequest,
    UpdatePageRequest,
    UpdateSectionRequest,
)
from securelearn.training.service import ModuleNotFoundError, TrainingError


# ==============================================================================
# Sections Router
# ==============================================================================

router_sections = APIRouter(prefix="/api/sections", tags=["sections"])


@router_sections.get("", response_model=list[SectionResponse], summary="List sections")
async def list_sections(
    section_service: SectionServiceDep,
    user: CurrentUser,
) -> list[SectionResponse]:
    """All sections ordered by ``order``."""
    sections = await section_service.list_sections()
    return [SectionResponse.from_entity(s) for s in sections]


@router_sections.post(
    "",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create section",
)
async def create_section(
    data: CreateSectionRequest,
    section_service: SectionServiceDep,
    user: AdminUser,
) -> SectionResponse:
    section = await section_service.create_section(data)
    return SectionResponse.from_entity(section)


@router_sections.put("/{section_id}", response_model=SectionResponse)
async def update_section(
    section_id: UUID,
    data: UpdateSectionRequest,
    section_service: SectionServiceDep,
    user: AdminUser,
) -> SectionResponse:
    try:
        section = await section_service.update_section(section_id, data)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return SectionResponse.from_entity(section)


@router_sections.delete("/{section_id}", response_model=MessageResponse)
async def delete_section(
    section_id: UUID,
    section_service: SectionServiceDep,
    user: AdminUser,
) -> MessageResponse:
    """Delete a section with its modules, pages, progress, questions and results."""
    try:
        await section_service.delete_section(section_id)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return MessageResponse(message="Section deleted successfully")


@router_sections.get("/{section_id}/modules", response_model=list[ModuleResponse])
async def list_section_modules(
    section_id: UUID,
    module_service: ModuleServiceDep,
    user: CurrentUser,
) -> list[ModuleResponse]:
    """Modules assigned to a section, in order."""
    modules = await module_service.list_modules_by_section(section_id)
    return [ModuleResponse.from_entity(m) for m in modules]


# ==============================================================================
# Modules Router
# ==============================================================================

router_modules = APIRouter(prefix="/api/modules", tags=["modules"])


@router_modules.get("", response_model=list[ModuleResponse], summary="List modules")
async def list_modules(
    module_service: ModuleServiceDep,
    user: CurrentUser,
) -> list[ModuleResponse]:
    modules = await module_service.list_modules()
    return [ModuleResponse.from_entity(m) for m in modules]


@router_modules.get("/{module_id}", response_model=ModuleResponse)
async def get_module(
    module_id: UUID,
    module_service: ModuleServiceDep,
    user: CurrentUser,
) -> ModuleResponse:
    module = await module_service.get_module(module_id)
    if not module:
        raise handle_training_error(ModuleNotFoundError())
    return ModuleResponse.from_entity(module)


@router_modules.post(
    "",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create module",
)
async def create_module(
    data: CreateModuleRequest,
    module_service: ModuleServiceDep,
    user: AdminUser,
) -> ModuleResponse:
    try:
        module = await module_service.create_module(data)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return ModuleResponse.from_entity(module)


@router_modules.put("/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: UUID,
    data: UpdateModuleRequest,
    module_service: ModuleServiceDep,
    user: AdminUser,
) -> ModuleResponse:
    try:
        module = await module_service.update_module(module_id, data)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return ModuleResponse.from_entity(module)


@router_modules.put("/{module_id}/section", response_model=ModuleResponse)
async def assign_module_section(
    module_id: UUID,
    data: AssignSectionRequest,
    module_service: ModuleServiceDep,
    user: AdminUser,
) -> ModuleResponse:
    """Assign a module to a section, or unassign it with ``null``."""
    try:
        module = await module_service.assign_section(module_id, data.section_id)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return ModuleResponse.from_entity(module)


@router_modules.delete("/{module_id}", response_model=MessageResponse)
async def delete_module(
    module_id: UUID,
    module_service: ModuleServiceDep,
    user: AdminUser,
) -> MessageResponse:
    """Delete a module with its progress rows and pages."""
    try:
        await module_service.delete_module(module_id)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return MessageResponse(message="Module deleted successfully")


@router_modules.get("/{module_id}/pages", response_model=list[PageResponse])
async def list_module_pages(
    module_id: UUID,
    page_service: PageServiceDep,
    user: CurrentUser,
) -> list[PageResponse]:
    pages = await page_service.list_pages(module_id)
    return [PageResponse.from_entity(p) for p in pages]


@router_modules.post(
    "/{module_id}/pages",
    response_model=PageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_module_page(
    module_id: UUID,
    data: CreatePageRequest,
    page_service: PageServiceDep,
    user: AdminUser,
) -> PageResponse:
    try:
        page = await page_service.create_page(module_id, data)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return PageResponse.from_entity(page)


# ==============================================================================
# Pages Router
# ==============================================================================

router_pages = APIRouter(prefix="/api/pages", tags=["pages"])


@router_pages.put("/{page_id}", response_model=PageResponse)
async def update_page(
    page_id: UUID,
    data: UpdatePageRequest,
    page_service: PageServiceDep,
    user: AdminUser,
) -> PageResponse:
    try:
        page = await page_service.update_page(page_id, data)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return PageResponse.from_entity(page)


@router_pages.delete("/{page_id}", response_model=MessageResponse)
async def delete_page(
    page_id: UUID,
    page_service: PageServiceDep,
    user: AdminUser,
) -> MessageResponse:
    try:
        await page_service.delete_page(page_id)
    except TrainingError as e:
        raise handle_training_error(e) from e
    return MessageResponse(message="Page deleted successfully")
