"""Pydantic schemas for employee progress tracking."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from securelearn.progress.models import EmployeeProgress, ProgressStatus, SectionProgress


class UpsertProgressRequest(BaseModel):
    """Status write sent by the client."""

    module_id: UUID = Field(..., description="Module UUID")
    status: ProgressStatus = Field(
        ProgressStatus.IN_PROGRESS, description="in_progress or completed"
    )
    last_viewed_page_id: UUID | None = Field(None, description="Currently viewed page")

    @field_validator("status")
    @classmethod
    def status_is_stored_state(cls, value: ProgressStatus) -> ProgressStatus:
        if value == ProgressStatus.NOT_STARTED:
            msg = "not_started cannot be written"
            raise ValueError(msg)
        return value


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    module_id: UUID
    status: ProgressStatus
    last_viewed_page_id: UUID | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: EmployeeProgress) -> "ProgressResponse":
        return cls(
            user_id=entity.user_id,
            module_id=entity.module_id,
            status=ProgressStatus(entity.status),
            last_viewed_page_id=entity.last_viewed_page_id,
            completed_at=entity.completed_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class SectionProgressResponse(BaseModel):
    """Section completion derived from module statuses."""

    section_id: UUID
    total_modules: int
    completed_modules: int
    percentage: int = Field(description="0-100")
    is_completed: bool

    @classmethod
    def from_entity(cls, entity: SectionProgress) -> "SectionProgressResponse":
        return cls(
            section_id=entity.section_id,
            total_modules=entity.total_modules,
            completed_modules=entity.completed_modules,
            percentage=entity.percentage,
            is_completed=entity.is_completed,
        )


class PageViewRequest(BaseModel):
    """Page the client is currently showing."""

    last_viewed_page_id: UUID | None = Field(None, description="Currently viewed page")
