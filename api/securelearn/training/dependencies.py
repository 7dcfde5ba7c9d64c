"""FastAPI dependencies for training content.

Provides dependency injection for:
- Section, module and page services
- Error handlers
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from securelearn.training.service import (
    ModuleService,
    PageService,
    SectionService,
    TrainingError,
)


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_section_service_getter: Callable[[], SectionService] | None = None
_module_service_getter: Callable[[], ModuleService] | None = None
_page_service_getter: Callable[[], PageService] | None = None


def set_section_service_getter(getter: Callable[[], SectionService]) -> None:
    """Set the section service getter function."""
    global _section_service_getter
    _section_service_getter = getter


def set_module_service_getter(getter: Callable[[], ModuleService]) -> None:
    """Set the module service getter function."""
    global _module_service_getter
    _module_service_getter = getter


def set_page_service_getter(getter: Callable[[], PageService]) -> None:
    """Set the page service getter function."""
    global _page_service_getter
    _page_service_getter = getter


def get_section_service() -> SectionService:
    """Get SectionService instance from app state."""
    if _section_service_getter is None:
        msg = "SectionService not configured"
        raise RuntimeError(msg)
    return _section_service_getter()


def get_module_service() -> ModuleService:
    """Get ModuleService instance from app state."""
    if _module_service_getter is None:
        msg = "ModuleService not configured"
        raise RuntimeError(msg)
    return _module_service_getter()


def get_page_service() -> PageService:
    """Get PageService instance from app state."""
    if _page_service_getter is None:
        msg = "PageService not configured"
        raise RuntimeError(msg)
    return _page_service_getter()


SectionServiceDep = Annotated[SectionService, Depends(get_section_service)]
ModuleServiceDep = Annotated[ModuleService, Depends(get_module_service)]
PageServiceDep = Annotated[PageService, Depends(get_page_service)]


# ==============================================================================
# Error Handlers
# ==============================================================================


def handle_training_error(error: TrainingError) -> HTTPException:
    """Convert training content errors to HTTPException."""
    status_map = {
        "section_not_found": status.HTTP_404_NOT_FOUND,
        "module_not_found": status.HTTP_404_NOT_FOUND,
        "page_not_found": status.HTTP_404_NOT_FOUND,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
