"""Tests for ProgressService.

Covers:
- Merging lesson progress reports and auto-completion
- Enrollment aggregate recomputation
- Enrollment management
- Device switch sync
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock, patch
from uuid import UUID, uuid4

import pytest

from src.catalog.models import Course
from src.catalog.service import CatalogService
from src.progress.models import Enrollment, LessonProgress
from src.progress.schemas import ReportProgressRequest
from src.progress.service import (
    AlreadyEnrolledError,
    CourseUnavailableError,
    NotEnrolledError,
    ProgressService,
)


@pytest.fixture
def catalog_service() -> Mock:
    service = Mock(spec=CatalogService)
    service.get_total_lessons = AsyncMock(return_value=4)
    service.get_course = AsyncMock(return_value=Course(title="Python alapok", lesson_count=4))
    service.increment_enrollment_count = AsyncMock()
    return service


@pytest.fixture
def progress_service(mock_session: Mock, catalog_service: Mock) -> ProgressService:
    return ProgressService(
        session=mock_session,
        keyspace="test_keyspace",
        catalog_service=catalog_service,
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def course_id() -> UUID:
    return uuid4()


class TestReportLessonProgress:
    """Tests for report_lesson_progress."""

    @pytest.mark.asyncio
    async def test_new_record_completes_at_threshold(
        self, progress_service: ProgressService, mock_session: Mock, user_id: UUID
    ) -> None:
        lesson_id = uuid4()
        with patch.object(
            progress_service, "get_lesson_progress", AsyncMock(return_value=None)
        ):
            progress = await progress_service.report_lesson_progress(
                user_id,
                ReportProgressRequest(lesson_id=lesson_id, watch_percentage=95),
            )

        assert progress.progress_id == f"{user_id}_{lesson_id}"
        assert progress.completed is True
        assert progress.completed_at is not None
        assert progress.sync_version is not None
        # Dual-write: lesson_progress + lesson_progress_by_user
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_below_threshold_not_completed(
        self, progress_service: ProgressService, user_id: UUID
    ) -> None:
        with patch.object(
            progress_service, "get_lesson_progress", AsyncMock(return_value=None)
        ):
            progress = await progress_service.report_lesson_progress(
                user_id,
                ReportProgressRequest(lesson_id=uuid4(), watch_percentage=89),
            )

        assert progress.completed is False
        assert progress.completed_at is None

    @pytest.mark.asyncio
    async def test_only_present_fields_are_merged(
        self, progress_service: ProgressService, user_id: UUID
    ) -> None:
        lesson_id = uuid4()
        existing = LessonProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            watch_percentage=30,
            time_spent=120,
            resume_position=45,
            device_id="phone",
        )
        with patch.object(
            progress_service, "get_lesson_progress", AsyncMock(return_value=existing)
        ):
            progress = await progress_service.report_lesson_progress(
                user_id,
                ReportProgressRequest(lesson_id=lesson_id, watch_percentage=50),
            )

        assert progress.watch_percentage == 50
        assert progress.time_spent == 120
        assert progress.resume_position == 45
        assert progress.device_id == "phone"

    @pytest.mark.asyncio
    async def test_completion_is_sticky(
        self, progress_service: ProgressService, user_id: UUID
    ) -> None:
        lesson_id = uuid4()
        completed_at = datetime.now(UTC) - timedelta(days=3)
        existing = LessonProgress(
            user_id=user_id,
            lesson_id=lesson_id,
            watch_percentage=100,
            completed=True,
            completed_at=completed_at,
        )
        with patch.object(
            progress_service, "get_lesson_progress", AsyncMock(return_value=existing)
        ):
            progress = await progress_service.report_lesson_progress(
                user_id,
                ReportProgressRequest(lesson_id=lesson_id, watch_percentage=5),
            )

        assert progress.completed is True
        assert progress.completed_at == completed_at

    @pytest.mark.asyncio
    async def test_course_id_triggers_aggregate(
        self, progress_service: ProgressService, user_id: UUID, course_id: UUID
    ) -> None:
        lesson_id = uuid4()
        aggregate = AsyncMock()
        with (
            patch.object(
                progress_service, "get_lesson_progress", AsyncMock(return_value=None)
            ),
            patch.object(progress_service, "_update_enrollment_aggregate", aggregate),
        ):
            await progress_service.report_lesson_progress(
                user_id,
                ReportProgressRequest(
                    lesson_id=lesson_id, course_id=course_id, watch_percentage=40
                ),
            )

        aggregate.assert_awaited_once_with(
            user_id, course_id, current_lesson_id=lesson_id
        )

    @pytest.mark.asyncio
    async def test_without_course_id_aggregate_skipped(
        self, progress_service: ProgressService, user_id: UUID
    ) -> None:
        aggregate = AsyncMock()
        with (
            patch.object(
                progress_service, "get_lesson_progress", AsyncMock(return_value=None)
            ),
            patch.object(progress_service, "_update_enrollment_aggregate", aggregate),
        ):
            await progress_service.report_lesson_progress(
                user_id, ReportProgressRequest(lesson_id=uuid4(), watch_percentage=40)
            )

        aggregate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_aggregate_failure_does_not_fail_report(
        self, progress_service: ProgressService, user_id: UUID, course_id: UUID
    ) -> None:
        with (
            patch.object(
                progress_service, "get_lesson_progress", AsyncMock(return_value=None)
            ),
            patch.object(
                progress_service,
                "_update_enrollment_aggregate",
                AsyncMock(side_effect=RuntimeError("cassandra timeout")),
            ),
        ):
            progress = await progress_service.report_lesson_progress(
                user_id,
                ReportProgressRequest(
                    lesson_id=uuid4(), course_id=course_id, watch_percentage=95
                ),
            )

        assert progress.completed is True

    @pytest.mark.asyncio
    async def test_mark_lesson_complete(
        self, progress_service: ProgressService, user_id: UUID, course_id: UUID
    ) -> None:
        with (
            patch.object(
                progress_service, "get_lesson_progress", AsyncMock(return_value=None)
            ),
            patch.object(progress_service, "_update_enrollment_aggregate", AsyncMock()),
        ):
            progress = await progress_service.mark_lesson_complete(
                user_id, uuid4(), course_id, time_spent=300
            )

        assert progress.watch_percentage == 100
        assert progress.completed is True
        assert progress.time_spent == 300


class TestEnrollmentAggregate:
    """Tests for _update_enrollment_aggregate."""

    @pytest.mark.asyncio
    async def test_partial_progress(
        self,
        progress_service: ProgressService,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        enrollment = Enrollment(course_id=course_id, user_id=user_id)
        lesson_id = uuid4()
        with (
            patch.object(
                progress_service, "get_enrollment", AsyncMock(return_value=enrollment)
            ),
            patch.object(
                progress_service, "count_completed_lessons", AsyncMock(return_value=1)
            ),
            patch.object(progress_service, "_save_enrollment", AsyncMock()) as save,
        ):
            result = await progress_service._update_enrollment_aggregate(
                user_id, course_id, current_lesson_id=lesson_id
            )

        assert result is enrollment
        assert enrollment.progress == 25
        assert enrollment.status == "in_progress"
        assert enrollment.lessons_completed == 1
        assert enrollment.lessons_total == 4
        assert enrollment.current_lesson_id == lesson_id
        assert enrollment.completed_at is None
        save.assert_awaited_once_with(enrollment)

    @pytest.mark.asyncio
    async def test_all_lessons_completes_course(
        self,
        progress_service: ProgressService,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        enrollment = Enrollment(course_id=course_id, user_id=user_id, progress=75)
        with (
            patch.object(
                progress_service, "get_enrollment", AsyncMock(return_value=enrollment)
            ),
            patch.object(
                progress_service, "count_completed_lessons", AsyncMock(return_value=4)
            ),
            patch.object(progress_service, "_save_enrollment", AsyncMock()),
        ):
            await progress_service._update_enrollment_aggregate(user_id, course_id)

        assert enrollment.progress == 100
        assert enrollment.status == "completed"
        assert enrollment.completed_at is not None

    @pytest.mark.asyncio
    async def test_course_without_lessons_is_left_untouched(
        self,
        progress_service: ProgressService,
        catalog_service: Mock,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        catalog_service.get_total_lessons.return_value = 0
        enrollment = Enrollment(course_id=course_id, user_id=user_id, progress=10)
        with (
            patch.object(
                progress_service, "get_enrollment", AsyncMock(return_value=enrollment)
            ),
            patch.object(progress_service, "_save_enrollment", AsyncMock()) as save,
        ):
            result = await progress_service._update_enrollment_aggregate(
                user_id, course_id
            )

        assert result is enrollment
        assert enrollment.progress == 10
        save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_enrolled_returns_none(
        self, progress_service: ProgressService, user_id: UUID, course_id: UUID
    ) -> None:
        with patch.object(
            progress_service, "get_enrollment", AsyncMock(return_value=None)
        ):
            assert (
                await progress_service._update_enrollment_aggregate(user_id, course_id)
                is None
            )

    @pytest.mark.asyncio
    async def test_recalculate_not_enrolled_raises(
        self, progress_service: ProgressService, user_id: UUID, course_id: UUID
    ) -> None:
        with (
            patch.object(
                progress_service, "get_enrollment", AsyncMock(return_value=None)
            ),
            pytest.raises(NotEnrolledError),
        ):
            await progress_service.recalculate_enrollment_progress(user_id, course_id)

    @pytest.mark.asyncio
    async def test_count_completed_lessons_filters_by_course(
        self,
        progress_service: ProgressService,
        mock_session: Mock,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        other_course = uuid4()
        mock_session.aexecute.return_value = [
            Mock(course_id=course_id, completed=True),
            Mock(course_id=course_id, completed=False),
            Mock(course_id=course_id, completed=True),
            Mock(course_id=other_course, completed=True),
        ]

        assert await progress_service.count_completed_lessons(user_id, course_id) == 2


class TestEnrollments:
    @pytest.mark.asyncio
    async def test_enroll_user(
        self,
        progress_service: ProgressService,
        catalog_service: Mock,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        company_id = uuid4()
        with (
            patch.object(
                progress_service, "get_enrollment", AsyncMock(return_value=None)
            ),
            patch.object(progress_service, "_save_enrollment", AsyncMock()) as save,
        ):
            enrollment = await progress_service.enroll_user(
                user_id, course_id, enrolled_by_company=company_id
            )

        assert enrollment.status == "not_started"
        assert enrollment.progress == 0
        assert enrollment.lessons_total == 4
        assert enrollment.enrolled_by_company == company_id
        save.assert_awaited_once()
        catalog_service.increment_enrollment_count.assert_awaited_once_with(course_id)

    @pytest.mark.asyncio
    async def test_enroll_missing_course(
        self,
        progress_service: ProgressService,
        catalog_service: Mock,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        catalog_service.get_course.return_value = None
        with pytest.raises(CourseUnavailableError):
            await progress_service.enroll_user(user_id, course_id)

    @pytest.mark.asyncio
    async def test_enroll_twice(
        self,
        progress_service: ProgressService,
        catalog_service: Mock,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        existing = Enrollment(course_id=course_id, user_id=user_id)
        with (
            patch.object(
                progress_service, "get_enrollment", AsyncMock(return_value=existing)
            ),
            pytest.raises(AlreadyEnrolledError),
        ):
            await progress_service.enroll_user(user_id, course_id)

        catalog_service.increment_enrollment_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unenroll_not_enrolled(
        self, progress_service: ProgressService, user_id: UUID, course_id: UUID
    ) -> None:
        with (
            patch.object(
                progress_service, "get_enrollment", AsyncMock(return_value=None)
            ),
            pytest.raises(NotEnrolledError),
        ):
            await progress_service.unenroll(user_id, course_id)

    @pytest.mark.asyncio
    async def test_unenroll_decrements_count(
        self,
        progress_service: ProgressService,
        catalog_service: Mock,
        user_id: UUID,
        course_id: UUID,
    ) -> None:
        existing = Enrollment(course_id=course_id, user_id=user_id)
        with patch.object(
            progress_service, "get_enrollment", AsyncMock(return_value=existing)
        ):
            await progress_service.unenroll(user_id, course_id)

        catalog_service.increment_enrollment_count.assert_awaited_once_with(
            course_id, by=-1
        )


class TestDeviceSync:
    @pytest.mark.asyncio
    async def test_sync_progress_on_device_switch(
        self, progress_service: ProgressService, user_id: UUID, course_id: UUID
    ) -> None:
        records = [
            LessonProgress(
                user_id=user_id, lesson_id=uuid4(), course_id=course_id, watch_percentage=p
            )
            for p in (20, 100)
        ]
        with patch.object(
            progress_service,
            "list_user_lesson_progress",
            AsyncMock(return_value=records),
        ):
            result = await progress_service.sync_progress_on_device_switch(
                user_id, "tablet-1", course_id
            )

        assert result.success is True
        assert result.device_id == "tablet-1"
        assert [s.progress for s in result.synced_lessons] == [20, 100]
        assert result.message == "Successfully synced 2 lessons to device tablet-1"

    @pytest.mark.asyncio
    async def test_synced_progress_missing(
        self, progress_service: ProgressService, user_id: UUID
    ) -> None:
        with patch.object(
            progress_service, "get_lesson_progress", AsyncMock(return_value=None)
        ):
            result = await progress_service.get_synced_lesson_progress(user_id, uuid4())

        assert result.progress is None
        assert result.message == "No progress found for this lesson"
