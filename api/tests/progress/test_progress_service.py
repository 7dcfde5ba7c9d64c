"""Tests for progress tracking."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from securelearn.progress.models import EmployeeProgress, ProgressStatus, SectionProgress
from securelearn.progress.service import (
    ProgressModuleNotFoundError,
    ProgressService,
    summarize_sections,
)
from securelearn.training.models import TrainingModule, TrainingSection


@pytest.fixture
def service(mock_session: Mock) -> ProgressService:
    return ProgressService(session=mock_session, keyspace="test_keyspace")


@pytest.fixture
def batch(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    batch_mock = AsyncMock()
    monkeypatch.setattr("securelearn.progress.service.execute_logged_batch", batch_mock)
    return batch_mock


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def module_id() -> UUID:
    return uuid4()


def written_row(batch: AsyncMock) -> list:
    """Values written to employee_progress by the last save."""
    mutations = batch.call_args.args[1]
    return mutations[0][1]


class TestSectionProgress:
    @pytest.mark.parametrize(
        "completed,total,expected",
        [(0, 0, 0), (0, 3, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 3, 100)],
    )
    def test_percentage_rounds_half_up(self, completed: int, total: int, expected: int) -> None:
        summary = SectionProgress(uuid4(), total_modules=total, completed_modules=completed)
        assert summary.percentage == expected

    def test_empty_section_never_complete(self) -> None:
        assert SectionProgress(uuid4(), 0, 0).is_completed is False

    def test_summaries_count_completed_modules_only(self, user_id: UUID) -> None:
        passwords = TrainingSection(title="Password & Authentication", order=1)
        email = TrainingSection(title="Email Security", order=2)
        modules = [
            TrainingModule(title="Strong passwords", section_id=passwords.id),
            TrainingModule(title="MFA", section_id=passwords.id),
            TrainingModule(title="Phishing", section_id=email.id),
            TrainingModule(title="Draft module"),
        ]
        progress = [
            EmployeeProgress(user_id, modules[0].id, ProgressStatus.COMPLETED.value),
            EmployeeProgress(user_id, modules[1].id, ProgressStatus.IN_PROGRESS.value),
            EmployeeProgress(user_id, modules[3].id, ProgressStatus.COMPLETED.value),
        ]

        summaries = summarize_sections([passwords, email], modules, progress)

        by_section = {s.section_id: s for s in summaries}
        assert by_section[passwords.id].completed_modules == 1
        assert by_section[passwords.id].total_modules == 2
        assert by_section[passwords.id].percentage == 50
        assert by_section[email.id].percentage == 0


class TestRecordPageView:
    @pytest.mark.asyncio
    async def test_first_view_starts_module(
        self, service: ProgressService, batch: AsyncMock, user_id: UUID, module_id: UUID
    ) -> None:
        service.get_module_progress = AsyncMock(return_value=None)
        page_id = uuid4()

        progress = await service.record_page_view(user_id, module_id, page_id)

        assert progress.status == ProgressStatus.IN_PROGRESS.value
        assert progress.last_viewed_page_id == page_id
        assert written_row(batch)[:4] == [user_id, module_id, "in_progress", page_id]

    @pytest.mark.asyncio
    async def test_page_view_keeps_completed_status(
        self, service: ProgressService, batch: AsyncMock, user_id: UUID, module_id: UUID
    ) -> None:
        completed_at = datetime(2020, 3, 1, 9, 30, tzinfo=UTC)
        service.get_module_progress = AsyncMock(
            return_value=EmployeeProgress(
                user_id,
                module_id,
                ProgressStatus.COMPLETED.value,
                completed_at=completed_at,
                created_at=completed_at,
            )
        )
        page_id = uuid4()

        progress = await service.record_page_view(user_id, module_id, page_id)

        assert progress.status == ProgressStatus.COMPLETED.value
        assert progress.completed_at == completed_at
        assert progress.last_viewed_page_id == page_id
        assert progress.updated_at > completed_at

    @pytest.mark.asyncio
    async def test_unknown_module(
        self, service: ProgressService, mock_session: Mock, user_id: UUID
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=Mock(one=Mock(return_value=None)))
        with pytest.raises(ProgressModuleNotFoundError) as exc_info:
            await service.record_page_view(user_id, uuid4(), None)
        assert exc_info.value.code == "module_not_found"


class TestCompleteModule:
    @pytest.mark.asyncio
    async def test_complete_in_progress_module(
        self, service: ProgressService, batch: AsyncMock, user_id: UUID, module_id: UUID
    ) -> None:
        page_id = uuid4()
        started = datetime(2020, 3, 1, 9, 0, tzinfo=UTC)
        service.get_module_progress = AsyncMock(
            return_value=EmployeeProgress(
                user_id, module_id, last_viewed_page_id=page_id, created_at=started
            )
        )

        progress = await service.complete_module(user_id, module_id)

        assert progress.is_completed
        assert progress.completed_at is not None
        assert progress.created_at == started
        assert progress.last_viewed_page_id == page_id
        by_module_values = batch.call_args.args[1][1][1]
        assert by_module_values[:3] == [module_id, user_id, "completed"]

    @pytest.mark.asyncio
    async def test_completing_twice_keeps_first_time(
        self, service: ProgressService, batch: AsyncMock, user_id: UUID, module_id: UUID
    ) -> None:
        completed_at = datetime(2020, 3, 1, 10, 0, tzinfo=UTC)
        existing = EmployeeProgress(
            user_id, module_id, ProgressStatus.COMPLETED.value, completed_at=completed_at
        )
        service.get_module_progress = AsyncMock(return_value=existing)

        progress = await service.complete_module(user_id, module_id)

        assert progress.completed_at == completed_at
        batch.assert_not_called()


class TestUpsertProgress:
    @pytest.mark.asyncio
    async def test_in_progress_overwrites_completed_row(
        self, service: ProgressService, batch: AsyncMock, user_id: UUID, module_id: UUID
    ) -> None:
        completed_at = datetime(2020, 3, 1, 10, 0, tzinfo=UTC)
        page_id = uuid4()
        service.get_module_progress = AsyncMock(
            return_value=EmployeeProgress(
                user_id,
                module_id,
                ProgressStatus.COMPLETED.value,
                last_viewed_page_id=page_id,
                completed_at=completed_at,
                created_at=completed_at,
            )
        )

        progress = await service.upsert_progress(user_id, module_id, ProgressStatus.IN_PROGRESS)

        assert progress.status == ProgressStatus.IN_PROGRESS.value
        assert progress.completed_at is None
        assert progress.created_at == completed_at
        assert written_row(batch)[:5] == [user_id, module_id, "in_progress", page_id, None]
        by_module_values = batch.call_args.args[1][1][1]
        assert by_module_values[2:4] == ["in_progress", None]

    @pytest.mark.asyncio
    async def test_completed_then_in_progress_then_completed(
        self, service: ProgressService, user_id: UUID, module_id: UUID
    ) -> None:
        stored: list[EmployeeProgress] = []

        async def latest(*_args):
            return stored[-1] if stored else None

        async def save(progress: EmployeeProgress) -> None:
            stored.append(progress)

        service.get_module_progress = AsyncMock(side_effect=latest)
        service.save_progress = AsyncMock(side_effect=save)

        await service.upsert_progress(user_id, module_id, ProgressStatus.COMPLETED)
        await service.upsert_progress(user_id, module_id, ProgressStatus.IN_PROGRESS)
        final = await service.upsert_progress(user_id, module_id, ProgressStatus.COMPLETED)

        assert [p.status for p in stored] == ["completed", "in_progress", "completed"]
        assert final.completed_at is not None

    @pytest.mark.asyncio
    async def test_unknown_module(
        self, service: ProgressService, mock_session: Mock, batch: AsyncMock, user_id: UUID
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=Mock(one=Mock(return_value=None)))
        with pytest.raises(ProgressModuleNotFoundError):
            await service.upsert_progress(user_id, uuid4(), ProgressStatus.IN_PROGRESS)
        batch.assert_not_called()
