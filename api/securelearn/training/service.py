"""Training content service layer.

Business logic for:
- Sections: CRUD, delete cascades through modules, questions and results
- Modules: CRUD, section assignment, delete cascades through progress and pages
- Pages: CRUD within a module

Cascades are collected as a list of mutations and applied in one logged
batch, so a delete either removes the whole subtree or nothing.
"""

from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from securelearn.core.batch import Mutation, execute_logged_batch
from securelearn.core.rows import sort_by_order, utcnow
from securelearn.training.models import ModulePage, TrainingModule, TrainingSection
from securelearn.training.schemas import (
    CreateModuleRequest,
    CreatePageRequest,
    CreateSectionRequest,
    UpdateModuleRequest,
    UpdatePageRequest,
    UpdateSectionRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class TrainingError(Exception):
    """Base training content error."""

    def __init__(self, message: str, code: str = "training_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class SectionNotFoundError(TrainingError):
    def __init__(self, message: str = "Section not found"):
        super().__init__(message, "section_not_found")


class ModuleNotFoundError(TrainingError):
    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class PageNotFoundError(TrainingError):
    def __init__(self, message: str = "Page not found"):
        super().__init__(message, "page_not_found")


# ==============================================================================
# Module Service
# ==============================================================================


class ModuleService:
    """Service for training modules."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.training_modules WHERE id = ?"
        )
        self._list_modules = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.training_modules"
        )
        self._list_modules_by_section = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.training_modules WHERE section_id = ?"
        )
        self._section_exists = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.training_sections WHERE id = ?"
        )
        self._upsert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.training_modules
            (id, section_id, title, description, sort_order, estimated_duration,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_module = self.session.prepare(
            f"DELETE FROM {self.keyspace}.training_modules WHERE id = ?"
        )

        # Cascade targets
        self._list_module_progress_users = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.progress_by_module WHERE module_id = ?"
        )
        self._delete_user_progress = self.session.prepare(
            f"DELETE FROM {self.keyspace}.employee_progress "
            "WHERE user_id = ? AND module_id = ?"
        )
        self._delete_module_progress = self.session.prepare(
            f"DELETE FROM {self.keyspace}.progress_by_module WHERE module_id = ?"
        )
        self._list_page_ids = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.module_pages WHERE module_id = ?"
        )
        self._delete_page = self.session.prepare(
            f"DELETE FROM {self.keyspace}.module_pages WHERE id = ?"
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_module(self, module_id: UUID) -> TrainingModule | None:
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return TrainingModule.from_row(row) if row else None

    async def list_modules(self) -> list[TrainingModule]:
        """All modules ordered by their order column."""
        rows = await self.session.aexecute(self._list_modules)
        return sort_by_order(TrainingModule.from_row(row) for row in rows)

    async def list_modules_by_section(self, section_id: UUID) -> list[TrainingModule]:
        """Modules assigned to a section, in order."""
        rows = await self.session.aexecute(self._list_modules_by_section, [section_id])
        return sort_by_order(TrainingModule.from_row(row) for row in rows)

    async def _ensure_section(self, section_id: UUID | None) -> None:
        if section_id is None:
            return
        result = await self.session.aexecute(self._section_exists, [section_id])
        if not result.one():
            raise SectionNotFoundError

    async def _save(self, module: TrainingModule) -> None:
        await self.session.aexecute(
            self._upsert_module,
            [
                module.id,
                module.section_id,
                module.title,
                module.description,
                module.order,
                module.estimated_duration,
                module.created_at,
                module.updated_at,
            ],
        )

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def create_module(self, data: CreateModuleRequest) -> TrainingModule:
        """Create a module.

        Raises:
            SectionNotFoundError: If ``section_id`` names no section
        """
        await self._ensure_section(data.section_id)

        now = utcnow()
        module = TrainingModule(
            title=data.title,
            description=data.description,
            section_id=data.section_id,
            order=data.order,
            estimated_duration=data.estimated_duration,
            created_at=now,
            updated_at=now,
        )
        await self._save(module)
        logger.info("module_created", module_id=str(module.id))
        return module

    async def update_module(
        self, module_id: UUID, data: UpdateModuleRequest
    ) -> TrainingModule:
        """Apply a partial update.

        Raises:
            ModuleNotFoundError: If module doesn't exist
            SectionNotFoundError: If a new ``section_id`` names no section
        """
        module = await self.get_module(module_id)
        if not module:
            raise ModuleNotFoundError

        changes = data.model_dump(exclude_unset=True)
        if "section_id" in changes:
            await self._ensure_section(changes["section_id"])

        for field, value in changes.items():
            if field in ("title", "order") and value is None:
                continue
            setattr(module, field, value)
        module.updated_at = utcnow()

        await self._save(module)
        logger.info("module_updated", module_id=str(module_id), fields=sorted(changes))
        return module

    async def assign_section(
        self, module_id: UUID, section_id: UUID | None
    ) -> TrainingModule:
        """Move a module to another section, or unassign it with None."""
        return await self.update_module(
            module_id, UpdateModuleRequest(section_id=section_id)
        )

    async def build_delete_cascade(self, module_id: UUID) -> list[Mutation]:
        """Mutations that remove a module: progress, then pages, then the module."""
        mutations: list[Mutation] = []

        progress_rows = await self.session.aexecute(
            self._list_module_progress_users, [module_id]
        )
        for row in progress_rows:
            mutations.append((self._delete_user_progress, [row.user_id, module_id]))
        mutations.append((self._delete_module_progress, [module_id]))

        page_rows = await self.session.aexecute(self._list_page_ids, [module_id])
        for row in page_rows:
            mutations.append((self._delete_page, [row.id]))

        mutations.append((self._delete_module, [module_id]))
        return mutations

    async def delete_module(self, module_id: UUID) -> None:
        """Delete a module with its progress rows and pages.

        Raises:
            ModuleNotFoundError: If module doesn't exist
        """
        if not await self.get_module(module_id):
            raise ModuleNotFoundError

        mutations = await self.build_delete_cascade(module_id)
        await execute_logged_batch(self.session, mutations)
        logger.info("module_deleted", module_id=str(module_id), mutations=len(mutations))


# ==============================================================================
# Section Service
# ==============================================================================


class SectionService:
    """Service for training sections."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        module_service: ModuleService | None = None,
    ):
        self.session = session
        self.keyspace = keyspace
        self.module_service = module_service or ModuleService(session, keyspace)
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_section = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.training_sections WHERE id = ?"
        )
        self._list_sections = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.training_sections"
        )
        self._upsert_section = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.training_sections
            (id, title, description, sort_order, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._delete_section = self.session.prepare(
            f"DELETE FROM {self.keyspace}.training_sections WHERE id = ?"
        )

        # Cascade targets
        self._list_question_ids = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.assessment_questions WHERE section_id = ?"
        )
        self._delete_question = self.session.prepare(
            f"DELETE FROM {self.keyspace}.assessment_questions WHERE id = ?"
        )
        self._list_result_ids = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.assessment_results WHERE section_id = ?"
        )
        self._delete_result = self.session.prepare(
            f"DELETE FROM {self.keyspace}.assessment_results WHERE id = ?"
        )
        self._list_attempt_users = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.assessment_attempts WHERE section_id = ?"
        )
        self._delete_attempt = self.session.prepare(
            f"DELETE FROM {self.keyspace}.assessment_attempts WHERE user_id = ? AND section_id = ?"
        )

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_section(self, section_id: UUID) -> TrainingSection | None:
        result = await self.session.aexecute(self._get_section, [section_id])
        row = result.one()
        return TrainingSection.from_row(row) if row else None

    async def list_sections(self) -> list[TrainingSection]:
        """All sections ordered by their order column."""
        rows = await self.session.aexecute(self._list_sections)
        return sort_by_order(TrainingSection.from_row(row) for row in rows)

    async def _save(self, section: TrainingSection) -> None:
        await self.session.aexecute(
            self._upsert_section,
            [
                section.id,
                section.title,
                section.description,
                section.order,
                section.created_at,
                section.updated_at,
            ],
        )

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def create_section(self, data: CreateSectionRequest) -> TrainingSection:
        now = utcnow()
        section = TrainingSection(
            title=data.title,
            description=data.description,
            order=data.order,
            created_at=now,
            updated_at=now,
        )
        await self._save(section)
        logger.info("section_created", section_id=str(section.id))
        return section

    async def update_section(
        self, section_id: UUID, data: UpdateSectionRequest
    ) -> TrainingSection:
        """Apply a partial update.

        Raises:
            SectionNotFoundError: If section doesn't exist
        """
        section = await self.get_section(section_id)
        if not section:
            raise SectionNotFoundError

        changes: dict[str, Any] = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if field in ("title", "order") and value is None:
                continue
            setattr(section, field, value)
        section.updated_at = utcnow()

        await self._save(section)
        logger.info("section_updated", section_id=str(section_id), fields=sorted(changes))
        return section

    async def build_delete_cascade(self, section_id: UUID) -> list[Mutation]:
        """Mutations that remove a section and everything under it.

        Order: each module's cascade, then questions, results and open
        attempts, then the section row.
        """
        mutations: list[Mutation] = []

        for module in await self.module_service.list_modules_by_section(section_id):
            mutations.extend(await self.module_service.build_delete_cascade(module.id))

        question_rows = await self.session.aexecute(self._list_question_ids, [section_id])
        for row in question_rows:
            mutations.append((self._delete_question, [row.id]))

        result_rows = await self.session.aexecute(self._list_result_ids, [section_id])
        for row in result_rows:
            mutations.append((self._delete_result, [row.id]))

        attempt_rows = await self.session.aexecute(self._list_attempt_users, [section_id])
        for row in attempt_rows:
            mutations.append((self._delete_attempt, [row.user_id, section_id]))

        mutations.append((self._delete_section, [section_id]))
        return mutations

    async def delete_section(self, section_id: UUID) -> None:
        """Delete a section with its modules, questions, results and attempts.

        Raises:
            SectionNotFoundError: If section doesn't exist
        """
        if not await self.get_section(section_id):
            raise SectionNotFoundError

        mutations = await self.build_delete_cascade(section_id)
        await execute_logged_batch(self.session, mutations)
        logger.info(
            "section_deleted", section_id=str(section_id), mutations=len(mutations)
        )


# ==============================================================================
# Page Service
# ==============================================================================


class PageService:
    """Service for module pages."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_page = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.module_pages WHERE id = ?"
        )
        self._list_pages = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.module_pages WHERE module_id = ?"
        )
        self._module_exists = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.training_modules WHERE id = ?"
        )
        self._upsert_page = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_pages
            (id, module_id, page_order, page_type, title, content,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_page = self.session.prepare(
            f"DELETE FROM {self.keyspace}.module_pages WHERE id = ?"
        )

    async def get_page(self, page_id: UUID) -> ModulePage | None:
        result = await self.session.aexecute(self._get_page, [page_id])
        row = result.one()
        return ModulePage.from_row(row) if row else None

    async def list_pages(self, module_id: UUID) -> list[ModulePage]:
        """Pages of a module ordered by page_order."""
        rows = await self.session.aexecute(self._list_pages, [module_id])
        return sort_by_order((ModulePage.from_row(row) for row in rows), "page_order")

    async def _save(self, page: ModulePage) -> None:
        await self.session.aexecute(
            self._upsert_page,
            [
                page.id,
                page.module_id,
                page.page_order,
                page.page_type,
                page.title,
                page.content,
                page.created_at,
                page.updated_at,
            ],
        )

    async def create_page(self, module_id: UUID, data: CreatePageRequest) -> ModulePage:
        """Add a page to a module.

        Raises:
            ModuleNotFoundError: If module doesn't exist
        """
        result = await self.session.aexecute(self._module_exists, [module_id])
        if not result.one():
            raise ModuleNotFoundError

        now = utcnow()
        page = ModulePage(
            module_id=module_id,
            title=data.title,
            page_order=data.page_order,
            page_type=data.page_type.value,
            content=data.content,
            created_at=now,
            updated_at=now,
        )
        await self._save(page)
        logger.info("page_created", page_id=str(page.id), module_id=str(module_id))
        return page

    async def update_page(self, page_id: UUID, data: UpdatePageRequest) -> ModulePage:
        """Apply a partial update.

        Raises:
            PageNotFoundError: If page doesn't exist
        """
        page = await self.get_page(page_id)
        if not page:
            raise PageNotFoundError

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if field in ("title", "page_order", "page_type") and value is None:
                continue
            setattr(page, field, value.value if field == "page_type" else value)
        page.updated_at = utcnow()

        await self._save(page)
        logger.info("page_updated", page_id=str(page_id))
        return page

    async def delete_page(self, page_id: UUID) -> None:
        """Delete a page.

        Raises:
            PageNotFoundError: If page doesn't exist
        """
        if not await self.get_page(page_id):
            raise PageNotFoundError
        await self.session.aexecute(self._delete_page, [page_id])
        logger.info("page_deleted", page_id=str(page_id))
