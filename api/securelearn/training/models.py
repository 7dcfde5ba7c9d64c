"""Database models for training content.

Cassandra table definitions for:
- Training sections: top-level groups of modules (one assessment each)
- Training modules: optionally assigned to a section
- Module pages: ordered content pages inside a module

Foreign-key lookups (modules of a section, pages of a module) use
secondary indexes; listings are sorted in Python by their order column.
``order`` is a reserved CQL word, so the column is ``sort_order``.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from securelearn.core.rows import ensure_utc_aware


class PageType(str, Enum):
    """Kind of content a module page holds."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    PPT_SLIDE = "ppt_slide"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

TRAINING_SECTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.training_sections (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    sort_order INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

TRAINING_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.training_modules (
    id UUID PRIMARY KEY,
    section_id UUID,
    title TEXT,
    description TEXT,
    sort_order INT,
    estimated_duration INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

TRAINING_MODULES_SECTION_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS training_modules_section_idx
ON {keyspace}.training_modules (section_id)
"""

MODULE_PAGES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_pages (
    id UUID PRIMARY KEY,
    module_id UUID,
    page_order INT,
    page_type TEXT,
    title TEXT,
    content TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULE_PAGES_MODULE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS module_pages_module_idx
ON {keyspace}.module_pages (module_id)
"""

TRAINING_TABLES_CQL = [
    TRAINING_SECTIONS_TABLE_CQL,
    TRAINING_MODULES_TABLE_CQL,
    TRAINING_MODULES_SECTION_INDEX_CQL,
    MODULE_PAGES_TABLE_CQL,
    MODULE_PAGES_MODULE_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class TrainingSection:
    """Group of modules that ends in one assessment."""

    def __init__(
        self,
        title: str,
        id: UUID | None = None,
        description: str | None = None,
        order: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title
        self.description = description
        self.order = order
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "TrainingSection":
        """Create TrainingSection instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            order=row.sort_order or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<TrainingSection {self.order}: {self.title}>"


class TrainingModule:
    """Unit of training content.

    Attributes:
        section_id: Owning section, or None while unassigned
        estimated_duration: Expected reading time in minutes (optional)
    """

    def __init__(
        self,
        title: str,
        id: UUID | None = None,
        section_id: UUID | None = None,
        description: str | None = None,
        order: int = 0,
        estimated_duration: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.section_id = section_id
        self.title = title
        self.description = description
        self.order = order
        self.estimated_duration = estimated_duration
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "TrainingModule":
        """Create TrainingModule instance from Cassandra row."""
        return cls(
            id=row.id,
            section_id=row.section_id,
            title=row.title,
            description=row.description,
            order=row.sort_order or 0,
            estimated_duration=row.estimated_duration,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "section_id": self.section_id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "estimated_duration": self.estimated_duration,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<TrainingModule {self.title} section={self.section_id}>"


class ModulePage:
    """One page of a module; ``content`` is stored as-is."""

    def __init__(
        self,
        module_id: UUID,
        title: str,
        id: UUID | None = None,
        page_order: int = 0,
        page_type: str = PageType.TEXT.value,
        content: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.module_id = module_id
        self.page_order = page_order
        self.page_type = page_type
        self.title = title
        self.content = content
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "ModulePage":
        """Create ModulePage instance from Cassandra row."""
        return cls(
            id=row.id,
            module_id=row.module_id,
            page_order=row.page_order or 0,
            page_type=row.page_type or PageType.TEXT.value,
            title=row.title,
            content=row.content,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "module_id": self.module_id,
            "page_order": self.page_order,
            "page_type": self.page_type,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<ModulePage {self.page_order} of {self.module_id} ({self.page_type})>"
