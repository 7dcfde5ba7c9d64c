"""Pydantic schemas for training content.

Request and response models for sections, modules and pages.
Update requests are partial: only fields sent by the client change.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from securelearn.training.models import ModulePage, PageType, TrainingModule, TrainingSection


# ==============================================================================
# Section Schemas
# ==============================================================================


class CreateSectionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    order: int = Field(0, ge=0)


class UpdateSectionRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    order: int | None = Field(None, ge=0)


class SectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    order: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: TrainingSection) -> "SectionResponse":
        return cls.model_validate(entity)


# ==============================================================================
# Module Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    section_id: UUID | None = None
    order: int = Field(0, ge=0)
    estimated_duration: int | None = Field(None, ge=0, description="Minutes")


class UpdateModuleRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    section_id: UUID | None = None
    order: int | None = Field(None, ge=0)
    estimated_duration: int | None = Field(None, ge=0)


class AssignSectionRequest(BaseModel):
    """Move a module into a section (``null`` unassigns it)."""

    section_id: UUID | None


class ModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    section_id: UUID | None = None
    title: str
    description: str | None = None
    order: int
    estimated_duration: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: TrainingModule) -> "ModuleResponse":
        return cls.model_validate(entity)


# ==============================================================================
# Page Schemas
# ==============================================================================


class CreatePageRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    page_type: PageType = PageType.TEXT
    page_order: int = Field(0, ge=0)
    content: str | None = None


class UpdatePageRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    page_type: PageType | None = None
    page_order: int | None = Field(None, ge=0)
    content: str | None = None


class PageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    module_id: UUID
    page_order: int
    page_type: PageType
    title: str
    content: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: ModulePage) -> "PageResponse":
        return cls.model_validate(entity)


class MessageResponse(BaseModel):
    message: str
