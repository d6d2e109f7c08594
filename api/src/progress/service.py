"""Learner progress tracking service layer.

Business logic for:
- Lesson progress reports with auto-completion at the watch threshold
- Enrollment aggregate recomputation (completed lessons / total lessons)
- Cross-device resume and device switch
- Course enrollment management
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.errors import ALREADY_EXISTS, NOT_FOUND, ServiceError

from .calculations import (
    LESSON_COMPLETION_THRESHOLD,
    EnrollmentStatus,
    calculate_course_progress,
    get_status_from_progress,
    is_lesson_complete,
)
from .models import Enrollment, LessonProgress, make_progress_id, sync_version_now
from .schemas import (
    DeviceSyncResponse,
    LessonProgressResponse,
    ReportProgressRequest,
    SyncedLesson,
    SyncedLessonProgressResponse,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.catalog.service import CatalogService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(ServiceError):
    """Base progress error."""


class NotEnrolledError(ProgressError):
    """User not enrolled in course."""

    def __init__(self, message: str = "User is not enrolled in this course"):
        super().__init__(message, NOT_FOUND)


class AlreadyEnrolledError(ProgressError):
    """User already enrolled."""

    def __init__(self, message: str = "User is already enrolled in this course"):
        super().__init__(message, ALREADY_EXISTS)


class CourseUnavailableError(ProgressError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, NOT_FOUND)


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for lesson progress and enrollments."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        catalog_service: "CatalogService",
        completion_threshold: int = LESSON_COMPLETION_THRESHOLD,
    ):
        """Initialize with Cassandra session and the catalog (lesson totals)."""
        self.session = session
        self.keyspace = keyspace
        self.catalog_service = catalog_service
        self.completion_threshold = completion_threshold
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        ks = self.keyspace

        # Lesson progress
        self._get_lesson_progress = self.session.prepare(
            f"SELECT * FROM {ks}.lesson_progress WHERE progress_id = ?"
        )
        self._upsert_lesson_progress = self.session.prepare(f"""
            INSERT INTO {ks}.lesson_progress
            (progress_id, user_id, lesson_id, course_id, watch_percentage,
             completed, time_spent, resume_position, quiz_score, device_id,
             session_id, completed_at, last_watched_at, updated_at, sync_version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_device = self.session.prepare(f"""
            UPDATE {ks}.lesson_progress
            SET device_id = ?, sync_version = ?, updated_at = ?
            WHERE progress_id = ?
        """)

        # Lesson progress by user (lookup)
        self._get_user_lessons = self.session.prepare(
            f"SELECT * FROM {ks}.lesson_progress_by_user WHERE user_id = ?"
        )
        self._upsert_user_lesson = self.session.prepare(f"""
            INSERT INTO {ks}.lesson_progress_by_user
            (user_id, lesson_id, course_id, completed, watch_percentage)
            VALUES (?, ?, ?, ?, ?)
        """)

        # Enrollments
        enrollment_columns = """
            status, progress, lessons_completed, lessons_total, current_lesson_id,
            enrolled_at, completed_at, last_accessed_at, enrolled_by_company
        """
        self._get_enrollment = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments WHERE course_id = ? AND user_id = ?"
        )
        self._get_course_enrollments = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments WHERE course_id = ?"
        )
        self._upsert_enrollment = self.session.prepare(f"""
            INSERT INTO {ks}.enrollments
            (course_id, user_id, {enrollment_columns})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_enrollment = self.session.prepare(
            f"DELETE FROM {ks}.enrollments WHERE course_id = ? AND user_id = ?"
        )

        # Enrollments by user (lookup)
        self._get_user_enrollments = self.session.prepare(
            f"SELECT * FROM {ks}.enrollments_by_user WHERE user_id = ?"
        )
        self._upsert_enrollment_by_user = self.session.prepare(f"""
            INSERT INTO {ks}.enrollments_by_user
            (user_id, course_id, {enrollment_columns})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_enrollment_by_user = self.session.prepare(
            f"DELETE FROM {ks}.enrollments_by_user WHERE user_id = ? AND course_id = ?"
        )

    # ==========================================================================
    # Lesson Progress
    # ==========================================================================

    async def get_lesson_progress(
        self, user_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        result = await self.session.aexecute(
            self._get_lesson_progress, [make_progress_id(user_id, lesson_id)]
        )
        row = result.one()
        return LessonProgress.from_row(row) if row else None

    async def report_lesson_progress(
        self, user_id: UUID, data: ReportProgressRequest
    ) -> LessonProgress:
        """Merge a progress report into the user's lesson record.

        Only fields present in the report overwrite stored values.
        ``completed`` flips to true once a report reaches the completion
        threshold and is never cleared afterwards. When ``course_id`` is
        given, the enrollment aggregate is recomputed; failures there are
        logged and do not fail the report.
        """
        now = datetime.now(UTC)

        progress = await self.get_lesson_progress(user_id, data.lesson_id)
        if progress is None:
            progress = LessonProgress(user_id=user_id, lesson_id=data.lesson_id)

        if data.course_id is not None:
            progress.course_id = data.course_id
        if data.watch_percentage is not None:
            progress.watch_percentage = data.watch_percentage
        if data.time_spent is not None:
            progress.time_spent = data.time_spent
        if data.resume_position is not None:
            progress.resume_position = data.resume_position
        if data.quiz_score is not None:
            progress.quiz_score = data.quiz_score
        if data.device_id is not None:
            progress.device_id = data.device_id
        if data.session_id is not None:
            progress.session_id = data.session_id

        if not progress.completed and is_lesson_complete(
            data.watch_percentage, threshold=self.completion_threshold
        ):
            progress.completed = True
            progress.completed_at = now
            logger.info(
                "lesson_completed",
                user_id=str(user_id),
                lesson_id=str(data.lesson_id),
                watch_percentage=data.watch_percentage,
            )

        progress.last_watched_at = now
        progress.updated_at = now
        progress.sync_version = sync_version_now()

        await self._save_lesson_progress(progress)

        if data.course_id is not None:
            try:
                await self._update_enrollment_aggregate(
                    user_id, data.course_id, current_lesson_id=data.lesson_id
                )
            except Exception:
                logger.exception(
                    "enrollment_aggregate_failed",
                    user_id=str(user_id),
                    course_id=str(data.course_id),
                )

        return progress

    async def mark_lesson_complete(
        self,
        user_id: UUID,
        lesson_id: UUID,
        course_id: UUID,
        time_spent: int | None = None,
    ) -> LessonProgress:
        """Mark a lesson fully watched."""
        return await self.report_lesson_progress(
            user_id,
            ReportProgressRequest(
                lesson_id=lesson_id,
                course_id=course_id,
                watch_percentage=100,
                time_spent=time_spent,
            ),
        )

    async def list_user_lesson_progress(
        self, user_id: UUID, course_id: UUID | None = None
    ) -> list[LessonProgress]:
        """All progress records of a user, optionally for one course."""
        rows = await self.session.aexecute(self._get_user_lessons, [user_id])
        records = []
        for row in rows:
            if course_id is not None and row.course_id != course_id:
                continue
            progress = await self.get_lesson_progress(user_id, row.lesson_id)
            if progress:
                records.append(progress)
        return records

    async def count_completed_lessons(self, user_id: UUID, course_id: UUID) -> int:
        rows = await self.session.aexecute(self._get_user_lessons, [user_id])
        return sum(1 for row in rows if row.course_id == course_id and row.completed)

    async def _save_lesson_progress(self, progress: LessonProgress) -> None:
        """Write lesson progress to both tables (dual-write)."""
        await self.session.aexecute(
            self._upsert_lesson_progress,
            [
                progress.progress_id,
                progress.user_id,
                progress.lesson_id,
                progress.course_id,
                progress.watch_percentage,
                progress.completed,
                progress.time_spent,
                progress.resume_position,
                progress.quiz_score,
                progress.device_id,
                progress.session_id,
                progress.completed_at,
                progress.last_watched_at,
                progress.updated_at,
                progress.sync_version,
            ],
        )
        await self.session.aexecute(
            self._upsert_user_lesson,
            [
                progress.user_id,
                progress.lesson_id,
                progress.course_id,
                progress.completed,
                progress.watch_percentage,
            ],
        )

    # ==========================================================================
    # Enrollment Aggregate
    # ==========================================================================

    async def _update_enrollment_aggregate(
        self,
        user_id: UUID,
        course_id: UUID,
        current_lesson_id: UUID | None = None,
    ) -> Enrollment | None:
        """Recompute progress/status of an enrollment from scratch.

        Skipped (returns the enrollment untouched, or None) when the user is
        not enrolled or the course has no lessons. Read-modify-write without
        a transaction: concurrent reports can race, the last write wins.
        """
        enrollment = await self.get_enrollment(user_id, course_id)
        if enrollment is None:
            logger.warning(
                "enrollment_not_found_for_progress",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            return None

        total = await self.catalog_service.get_total_lessons(course_id)
        if total <= 0:
            logger.warning("course_has_no_lessons", course_id=str(course_id))
            return enrollment

        completed = await self.count_completed_lessons(user_id, course_id)
        progress = calculate_course_progress(completed, total)
        status = get_status_from_progress(progress)
        now = datetime.now(UTC)

        enrollment.progress = progress
        enrollment.status = status.value
        enrollment.lessons_completed = completed
        enrollment.lessons_total = total
        enrollment.last_accessed_at = now
        if current_lesson_id is not None:
            enrollment.current_lesson_id = current_lesson_id
        if status == EnrollmentStatus.COMPLETED and enrollment.completed_at is None:
            enrollment.completed_at = now
            logger.info("course_completed", user_id=str(user_id), course_id=str(course_id))

        await self._save_enrollment(enrollment)

        logger.debug(
            "enrollment_progress_updated",
            user_id=str(user_id),
            course_id=str(course_id),
            completed=completed,
            total=total,
            progress=progress,
        )
        return enrollment

    async def recalculate_enrollment_progress(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment:
        """Recompute an enrollment aggregate on demand.

        Raises:
            NotEnrolledError: If user is not enrolled
        """
        enrollment = await self._update_enrollment_aggregate(user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError
        return enrollment

    # ==========================================================================
    # Cross-device Sync
    # ==========================================================================

    async def get_synced_lesson_progress(
        self, user_id: UUID, lesson_id: UUID, course_id: UUID | None = None
    ) -> SyncedLessonProgressResponse:
        """Latest progress for a lesson, whichever device wrote it."""
        progress = await self.get_lesson_progress(user_id, lesson_id)
        if progress is None:
            return SyncedLessonProgressResponse(
                progress=None, message="No progress found for this lesson"
            )

        if progress.course_id is None:
            progress.course_id = course_id
        if progress.sync_version is None:
            progress.sync_version = sync_version_now()

        return SyncedLessonProgressResponse(
            progress=LessonProgressResponse.from_entity(progress)
        )

    async def sync_progress_on_device_switch(
        self, user_id: UUID, device_id: str, course_id: UUID | None = None
    ) -> DeviceSyncResponse:
        """Stamp the user's progress records with a new device and sync version."""
        logger.info(
            "device_switch_sync_started",
            user_id=str(user_id),
            device_id=device_id,
            course_id=str(course_id) if course_id else None,
        )

        records = await self.list_user_lesson_progress(user_id, course_id)
        now = datetime.now(UTC)
        synced: list[SyncedLesson] = []

        for record in records:
            await self.session.aexecute(
                self._update_device,
                [device_id, sync_version_now(), now, record.progress_id],
            )
            synced.append(
                SyncedLesson(
                    lesson_id=record.lesson_id,
                    course_id=record.course_id,
                    progress=record.watch_percentage,
                )
            )

        return DeviceSyncResponse(
            device_id=device_id,
            synced_lessons=synced,
            sync_time=now,
            message=f"Successfully synced {len(synced)} lessons to device {device_id}",
        )

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll_user(
        self,
        user_id: UUID,
        course_id: UUID,
        enrolled_by_company: UUID | None = None,
    ) -> Enrollment:
        """Enroll user in a course.

        Raises:
            CourseUnavailableError: If course doesn't exist
            AlreadyEnrolledError: If user already enrolled
        """
        course = await self.catalog_service.get_course(course_id)
        if not course:
            raise CourseUnavailableError

        if await self.get_enrollment(user_id, course_id):
            raise AlreadyEnrolledError

        enrollment = Enrollment(
            course_id=course_id,
            user_id=user_id,
            lessons_total=course.lesson_count,
            last_accessed_at=datetime.now(UTC),
            enrolled_by_company=enrolled_by_company,
        )
        await self._save_enrollment(enrollment)
        await self.catalog_service.increment_enrollment_count(course_id)

        logger.info(
            "user_enrolled",
            user_id=str(user_id),
            course_id=str(course_id),
            enrolled_by_company=str(enrolled_by_company) if enrolled_by_company else None,
        )
        return enrollment

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        """Get enrollment by user and course."""
        result = await self.session.aexecute(self._get_enrollment, [course_id, user_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def list_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """Get all enrollments of a user, most recent first."""
        rows = await self.session.aexecute(self._get_user_enrollments, [user_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        return sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._get_course_enrollments, [course_id])
        return [Enrollment.from_row(row) for row in rows]

    async def unenroll(self, user_id: UUID, course_id: UUID) -> None:
        """Remove an enrollment. Lesson progress records are kept.

        Raises:
            NotEnrolledError: If user is not enrolled
        """
        if not await self.get_enrollment(user_id, course_id):
            raise NotEnrolledError

        await self.session.aexecute(self._delete_enrollment, [course_id, user_id])
        await self.session.aexecute(self._delete_enrollment_by_user, [user_id, course_id])
        await self.catalog_service.increment_enrollment_count(course_id, by=-1)

        logger.info("user_unenrolled", user_id=str(user_id), course_id=str(course_id))

    async def _save_enrollment(self, enrollment: Enrollment) -> None:
        """Write enrollment to both tables (dual-write)."""
        values = [
            enrollment.status,
            enrollment.progress,
            enrollment.lessons_completed,
            enrollment.lessons_total,
            enrollment.current_lesson_id,
            enrollment.enrolled_at,
            enrollment.completed_at,
            enrollment.last_accessed_at,
            enrollment.enrolled_by_company,
        ]
        await self.session.aexecute(
            self._upsert_enrollment, [enrollment.course_id, enrollment.user_id, *values]
        )
        await self.session.aexecute(
            self._upsert_enrollment_by_user,
            [enrollment.user_id, enrollment.course_id, *values],
        )
