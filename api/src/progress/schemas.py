"""Pydantic schemas for learner progress tracking.

Request and response models for:
- Lesson progress reports (merged, partial updates)
- Cross-device resume and device switch
- Course enrollment
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from src.core.schemas import ApiModel

from .calculations import EnrollmentStatus
from .models import Enrollment, LessonProgress


# ==============================================================================
# Lesson Progress Schemas
# ==============================================================================


class ReportProgressRequest(ApiModel):
    """Progress report from the player.

    Absent fields leave the stored values untouched.
    """

    lesson_id: UUID = Field(..., description="Lesson UUID")
    course_id: UUID | None = Field(None, description="Course UUID (enables aggregation)")
    watch_percentage: int | None = Field(None, ge=0, le=100)
    time_spent: int | None = Field(None, ge=0, description="Seconds spent")
    resume_position: int | None = Field(None, ge=0, description="Seconds")
    quiz_score: int | None = Field(None, ge=0, le=100)
    device_id: str | None = Field(None, max_length=200)
    session_id: str | None = Field(None, max_length=200)


class MarkLessonCompleteRequest(ApiModel):
    course_id: UUID
    time_spent: int | None = Field(None, ge=0)


class LessonProgressResponse(ApiModel):
    """Lesson progress record."""

    id: str
    lesson_id: UUID
    course_id: UUID | None = None
    watch_percentage: int
    completed: bool
    time_spent: int
    resume_position: int
    quiz_score: int | None = None
    device_id: str | None = None
    session_id: str | None = None
    completed_at: datetime | None = None
    last_watched_at: datetime | None = None
    sync_version: int | None = None

    @classmethod
    def from_entity(cls, entity: LessonProgress) -> "LessonProgressResponse":
        return cls(
            id=entity.progress_id,
            lesson_id=entity.lesson_id,
            course_id=entity.course_id,
            watch_percentage=entity.watch_percentage,
            completed=entity.completed,
            time_spent=entity.time_spent,
            resume_position=entity.resume_position,
            quiz_score=entity.quiz_score,
            device_id=entity.device_id,
            session_id=entity.session_id,
            completed_at=entity.completed_at,
            last_watched_at=entity.last_watched_at,
            sync_version=entity.sync_version,
        )


# ==============================================================================
# Device Sync Schemas
# ==============================================================================


class SyncedLessonProgressResponse(ApiModel):
    """Resume data for a lesson, as last written by any device."""

    success: bool = True
    progress: LessonProgressResponse | None = None
    message: str | None = None


class DeviceSyncRequest(ApiModel):
    device_id: str = Field(..., min_length=1, max_length=200)
    course_id: UUID | None = None


class SyncedLesson(ApiModel):
    lesson_id: UUID
    course_id: UUID | None = None
    progress: int = Field(description="Watch percentage")


class DeviceSyncResponse(ApiModel):
    success: bool = True
    device_id: str
    synced_lessons: list[SyncedLesson]
    sync_time: datetime
    message: str


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollmentResponse(ApiModel):
    """Enrollment with its progress aggregate."""

    course_id: UUID
    user_id: UUID
    status: EnrollmentStatus
    progress: int = Field(description="0-100 percentage")
    lessons_completed: int = 0
    lessons_total: int = 0
    current_lesson_id: UUID | None = None
    enrolled_at: datetime | None = None
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    enrolled_by_company: UUID | None = None

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        return cls(
            course_id=entity.course_id,
            user_id=entity.user_id,
            status=EnrollmentStatus(entity.status),
            progress=entity.progress,
            lessons_completed=entity.lessons_completed,
            lessons_total=entity.lessons_total,
            current_lesson_id=entity.current_lesson_id,
            enrolled_at=entity.enrolled_at,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
            enrolled_by_company=entity.enrolled_by_company,
        )


class EnrollmentListResponse(ApiModel):
    items: list[EnrollmentResponse]
    total: int
