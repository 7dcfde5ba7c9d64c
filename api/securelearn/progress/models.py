"""Database models for employee progress tracking.

Cassandra table definitions for:
- Employee progress: one row per (user, module), keyed so it is unique
- Progress by module: lookup table for module-wide queries (cascades)

Architecture: dual-write so rows can be found from both the user and the
module side. The primary key makes every write an upsert.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from securelearn.assessments.scoring import percentage
from securelearn.core.rows import ensure_utc_aware


class ProgressStatus(str, Enum):
    """Module progress status. ``not_started`` is never stored."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition by user: "what has this employee done?"
EMPLOYEE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employee_progress (
    user_id UUID,
    module_id UUID,
    status TEXT,
    last_viewed_page_id UUID,
    completed_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (user_id, module_id)
)
"""

# Partition by module: "who has progress on this module?"
PROGRESS_BY_MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.progress_by_module (
    module_id UUID,
    user_id UUID,
    status TEXT,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (module_id, user_id)
)
"""

PROGRESS_TABLES_CQL = [
    EMPLOYEE_PROGRESS_TABLE_CQL,
    PROGRESS_BY_MODULE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class EmployeeProgress:
    """Progress of one employee through one module.

    Attributes:
        user_id: Employee UUID
        module_id: Module UUID
        status: in_progress or completed
        last_viewed_page_id: Page to resume from
        completed_at: Set once, when the module is first completed
        created_at: First page view
        updated_at: Last write
    """

    def __init__(
        self,
        user_id: UUID,
        module_id: UUID,
        status: str = ProgressStatus.IN_PROGRESS.value,
        last_viewed_page_id: UUID | None = None,
        completed_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.module_id = module_id
        self.status = status
        self.last_viewed_page_id = last_viewed_page_id
        self.completed_at = ensure_utc_aware(completed_at)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    @property
    def is_completed(self) -> bool:
        return self.status == ProgressStatus.COMPLETED.value

    @classmethod
    def from_row(cls, row: Any) -> "EmployeeProgress":
        """Create EmployeeProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            module_id=row.module_id,
            status=row.status or ProgressStatus.IN_PROGRESS.value,
            last_viewed_page_id=row.last_viewed_page_id,
            completed_at=row.completed_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "module_id": self.module_id,
            "status": self.status,
            "last_viewed_page_id": self.last_viewed_page_id,
            "completed_at": self.completed_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<EmployeeProgress user={self.user_id} module={self.module_id} {self.status}>"


class SectionProgress:
    """Derived completion of a section for one employee (never stored)."""

    def __init__(
        self,
        section_id: UUID,
        total_modules: int,
        completed_modules: int,
    ):
        self.section_id = section_id
        self.total_modules = total_modules
        self.completed_modules = completed_modules

    @property
    def percentage(self) -> int:
        """Whole-number completion percentage (0 for empty sections)."""
        return percentage(self.completed_modules, self.total_modules)

    @property
    def is_completed(self) -> bool:
        return self.total_modules > 0 and self.completed_modules >= self.total_modules

    def __repr__(self) -> str:
        return (
            f"<SectionProgress {self.section_id} "
            f"{self.completed_modules}/{self.total_modules}>"
        )
