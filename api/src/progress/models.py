"""Database models for learner progress tracking.

Cassandra table definitions for:
- Lesson progress: one record per (user, lesson), keyed "{user_id}_{lesson_id}"
- Lesson progress by user: lookup for per-user and per-course scans
- Enrollments: course enrollment with the derived progress aggregate
- Enrollments by user: lookup for "my courses"

Architecture: Dual-write pattern so both the course and the user side can be
queried without secondary indexes.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from .calculations import EnrollmentStatus, normalize_enrollment_status


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def make_progress_id(user_id: UUID, lesson_id: UUID) -> str:
    """Progress record key."""
    return f"{user_id}_{lesson_id}"


def sync_version_now() -> int:
    """Sync version stamp (epoch milliseconds)."""
    return int(datetime.now(UTC).timestamp() * 1000)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    progress_id TEXT PRIMARY KEY,
    user_id UUID,
    lesson_id UUID,
    course_id UUID,
    watch_percentage INT,
    completed BOOLEAN,
    time_spent INT,
    resume_position INT,
    quiz_score INT,
    device_id TEXT,
    session_id TEXT,
    completed_at TIMESTAMP,
    last_watched_at TIMESTAMP,
    updated_at TIMESTAMP,
    sync_version BIGINT
)
"""

# Lookup: every lesson a user touched, with enough to count completions
LESSON_PROGRESS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress_by_user (
    user_id UUID,
    lesson_id UUID,
    course_id UUID,
    completed BOOLEAN,
    watch_percentage INT,
    PRIMARY KEY (user_id, lesson_id)
)
"""

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    status TEXT,
    progress INT,
    lessons_completed INT,
    lessons_total INT,
    current_lesson_id UUID,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    enrolled_by_company UUID,
    PRIMARY KEY (course_id, user_id)
)
"""

ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    status TEXT,
    progress INT,
    lessons_completed INT,
    lessons_total INT,
    current_lesson_id UUID,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    enrolled_by_company UUID,
    PRIMARY KEY (user_id, course_id)
)
"""

PROGRESS_TABLES_CQL = [
    LESSON_PROGRESS_TABLE_CQL,
    LESSON_PROGRESS_BY_USER_TABLE_CQL,
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class LessonProgress:
    """Progress of one user on one lesson.

    Attributes:
        user_id: User UUID
        lesson_id: Lesson UUID
        course_id: Course UUID (None if never reported with a course)
        watch_percentage: Last reported watch percentage (0-100)
        completed: Sticky completion flag; never cleared once set
        time_spent: Seconds spent on the lesson
        resume_position: Video position to resume from (seconds)
        quiz_score: Last quiz score, if the lesson has a quiz
        device_id / session_id: Last reporting client
        completed_at: First completion timestamp
        last_watched_at: Last report timestamp
        sync_version: Epoch ms of the last write, for cross-device resume
    """

    def __init__(
        self,
        user_id: UUID,
        lesson_id: UUID,
        course_id: UUID | None = None,
        watch_percentage: int = 0,
        completed: bool = False,
        time_spent: int = 0,
        resume_position: int = 0,
        quiz_score: int | None = None,
        device_id: str | None = None,
        session_id: str | None = None,
        completed_at: datetime | None = None,
        last_watched_at: datetime | None = None,
        updated_at: datetime | None = None,
        sync_version: int | None = None,
    ):
        self.user_id = user_id
        self.lesson_id = lesson_id
        self.course_id = course_id
        self.watch_percentage = watch_percentage
        self.completed = completed
        self.time_spent = time_spent
        self.resume_position = resume_position
        self.quiz_score = quiz_score
        self.device_id = device_id
        self.session_id = session_id
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_watched_at = ensure_utc_aware(last_watched_at)
        self.updated_at = ensure_utc_aware(updated_at)
        self.sync_version = sync_version

    @property
    def progress_id(self) -> str:
        return make_progress_id(self.user_id, self.lesson_id)

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        """Create LessonProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            lesson_id=row.lesson_id,
            course_id=row.course_id,
            watch_percentage=row.watch_percentage or 0,
            completed=bool(row.completed),
            time_spent=row.time_spent or 0,
            resume_position=row.resume_position or 0,
            quiz_score=row.quiz_score,
            device_id=row.device_id,
            session_id=row.session_id,
            completed_at=row.completed_at,
            last_watched_at=row.last_watched_at,
            updated_at=row.updated_at,
            sync_version=row.sync_version,
        )

    def __repr__(self) -> str:
        return (
            f"<LessonProgress {self.progress_id} {self.watch_percentage}%"
            f"{' completed' if self.completed else ''}>"
        )


class Enrollment:
    """Course enrollment with its derived progress aggregate.

    Attributes:
        course_id: Course UUID
        user_id: User UUID
        status: not_started, in_progress or completed (derived from progress)
        progress: Completion percentage (0-100)
        lessons_completed / lessons_total: Inputs of the last recomputation
        current_lesson_id: Last lesson the learner reported progress on
        enrolled_by_company: Company that enrolled the user, if any
    """

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        status: str = EnrollmentStatus.NOT_STARTED.value,
        progress: int = 0,
        lessons_completed: int = 0,
        lessons_total: int = 0,
        current_lesson_id: UUID | None = None,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
        enrolled_by_company: UUID | None = None,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.status = status
        self.progress = progress
        self.lessons_completed = lessons_completed
        self.lessons_total = lessons_total
        self.current_lesson_id = current_lesson_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at)
        self.enrolled_by_company = enrolled_by_company

    @property
    def is_completed(self) -> bool:
        return self.status == EnrollmentStatus.COMPLETED.value

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment from a row of either enrollment table."""
        progress = row.progress or 0
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            status=normalize_enrollment_status(row.status, progress).value,
            progress=progress,
            lessons_completed=row.lessons_completed or 0,
            lessons_total=row.lessons_total or 0,
            current_lesson_id=row.current_lesson_id,
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
            last_accessed_at=row.last_accessed_at,
            enrolled_by_company=row.enrolled_by_company,
        )

    def __repr__(self) -> str:
        return (
            f"<Enrollment user={self.user_id} course={self.course_id} "
            f"{self.status} {self.progress}%>"
        )
