"""Employee progress tracking service layer.

Business logic for:
- Page views (in_progress upserts with the viewed page)
- Module completion (idempotent, keeps the first completion time)
- Section completion percentages, derived on read
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from securelearn.core.batch import execute_logged_batch
from securelearn.core.rows import utcnow
from securelearn.progress.models import EmployeeProgress, ProgressStatus, SectionProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from securelearn.training.models import TrainingModule, TrainingSection

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ProgressModuleNotFoundError(ProgressError):
    """Progress written for a module that does not exist."""

    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


# ==============================================================================
# Derivations
# ==============================================================================


def summarize_sections(
    sections: Iterable["TrainingSection"],
    modules: Iterable["TrainingModule"],
    progress: Iterable[EmployeeProgress],
) -> list[SectionProgress]:
    """Aggregate module statuses into per-section completion.

    Unassigned modules count toward no section.
    """
    completed = {p.module_id for p in progress if p.is_completed}
    modules_by_section: dict[UUID, list[UUID]] = {}
    for module in modules:
        if module.section_id is not None:
            modules_by_section.setdefault(module.section_id, []).append(module.id)

    summaries = []
    for section in sections:
        module_ids = modules_by_section.get(section.id, [])
        summaries.append(
            SectionProgress(
                section_id=section.id,
                total_modules=len(module_ids),
                completed_modules=sum(1 for m in module_ids if m in completed),
            )
        )
    return summaries


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for employee progress tracking."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.employee_progress
            WHERE user_id = ? AND module_id = ?
        """)
        self._get_user_progress = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.employee_progress WHERE user_id = ?"
        )
        self._list_all_progress = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.employee_progress"
        )
        self._upsert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.employee_progress
            (user_id, module_id, status, last_viewed_page_id, completed_at,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._upsert_progress_by_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.progress_by_module
            (module_id, user_id, status, completed_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._module_exists = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.training_modules WHERE id = ?"
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_module_progress(
        self, user_id: UUID, module_id: UUID
    ) -> EmployeeProgress | None:
        """Progress row for (user, module), None when not started."""
        result = await self.session.aexecute(self._get_progress, [user_id, module_id])
        row = result.one()
        return EmployeeProgress.from_row(row) if row else None

    async def get_user_progress(self, user_id: UUID) -> list[EmployeeProgress]:
        """All progress rows of a user."""
        rows = await self.session.aexecute(self._get_user_progress, [user_id])
        return [EmployeeProgress.from_row(row) for row in rows]

    async def list_all_progress(self) -> list[EmployeeProgress]:
        """Every progress row (admin compliance report)."""
        rows = await self.session.aexecute(self._list_all_progress)
        return [EmployeeProgress.from_row(row) for row in rows]

    async def get_section_summaries(
        self,
        user_id: UUID,
        sections: Iterable["TrainingSection"],
        modules: Iterable["TrainingModule"],
    ) -> list[SectionProgress]:
        """Section completion for a user, computed from current module statuses."""
        progress = await self.get_user_progress(user_id)
        return summarize_sections(sections, modules, progress)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _ensure_module(self, module_id: UUID) -> None:
        result = await self.session.aexecute(self._module_exists, [module_id])
        if not result.one():
            raise ProgressModuleNotFoundError

    async def save_progress(self, progress: EmployeeProgress) -> None:
        """Raw upsert of a progress row into both tables.

        Writes whatever status it is given; transition rules live in
        ``record_page_view``, ``complete_module`` and ``upsert_progress``.
        """
        await execute_logged_batch(
            self.session,
            [
                (
                    self._upsert_progress,
                    [
                        progress.user_id,
                        progress.module_id,
                        progress.status,
                        progress.last_viewed_page_id,
                        progress.completed_at,
                        progress.created_at,
                        progress.updated_at,
                    ],
                ),
                (
                    self._upsert_progress_by_module,
                    [
                        progress.module_id,
                        progress.user_id,
                        progress.status,
                        progress.completed_at,
                        progress.updated_at,
                    ],
                ),
            ],
        )

    async def record_page_view(
        self,
        user_id: UUID,
        module_id: UUID,
        page_id: UUID | None,
    ) -> EmployeeProgress:
        """Mark a module in progress at the viewed page.

        A completed module stays completed; only the resume page moves.

        Raises:
            ProgressModuleNotFoundError: If the module doesn't exist
        """
        await self._ensure_module(module_id)

        now = utcnow()
        existing = await self.get_module_progress(user_id, module_id)

        if existing:
            existing.last_viewed_page_id = page_id or existing.last_viewed_page_id
            existing.updated_at = now
            progress = existing
        else:
            progress = EmployeeProgress(
                user_id=user_id,
                module_id=module_id,
                status=ProgressStatus.IN_PROGRESS.value,
                last_viewed_page_id=page_id,
                created_at=now,
                updated_at=now,
            )
            logger.info(
                "module_started",
                user_id=str(user_id),
                module_id=str(module_id),
            )

        await self.save_progress(progress)
        return progress

    async def complete_module(
        self,
        user_id: UUID,
        module_id: UUID,
        page_id: UUID | None = None,
    ) -> EmployeeProgress:
        """Mark a module completed.

        Idempotent: completing twice keeps the original ``completed_at``.

        Raises:
            ProgressModuleNotFoundError: If the module doesn't exist
        """
        await self._ensure_module(module_id)

        existing = await self.get_module_progress(user_id, module_id)
        if existing and existing.is_completed:
            return existing

        now = utcnow()
        progress = EmployeeProgress(
            user_id=user_id,
            module_id=module_id,
            status=ProgressStatus.COMPLETED.value,
            last_viewed_page_id=page_id or (existing.last_viewed_page_id if existing else None),
            completed_at=now,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self.save_progress(progress)

        logger.info(
            "module_completed",
            user_id=str(user_id),
            module_id=str(module_id),
        )
        return progress

    async def upsert_progress(
        self,
        user_id: UUID,
        module_id: UUID,
        status: ProgressStatus,
        page_id: UUID | None = None,
    ) -> EmployeeProgress:
        """Write the requested status for a module.

        Unlike ``record_page_view`` this overwrites a completed row:
        ``in_progress`` clears ``completed_at``.

        Raises:
            ProgressModuleNotFoundError: If the module doesn't exist
        """
        if status == ProgressStatus.COMPLETED:
            return await self.complete_module(user_id, module_id, page_id)

        await self._ensure_module(module_id)

        now = utcnow()
        existing = await self.get_module_progress(user_id, module_id)
        progress = EmployeeProgress(
            user_id=user_id,
            module_id=module_id,
            status=status.value,
            last_viewed_page_id=page_id or (existing.last_viewed_page_id if existing else None),
            completed_at=None,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self.save_progress(progress)

        if existing and existing.is_completed:
            logger.info(
                "module_reopened",
                user_id=str(user_id),
                module_id=str(module_id),
            )
        return progress
