"""Learner progress tracking module.

Provides:
- Lesson progress reports with completion at 90% watched
- Enrollment progress aggregation
- Cross-device resume
- Course enrollment management

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .calculations import (
    LESSON_COMPLETION_THRESHOLD,
    EnrollmentStatus,
    calculate_course_progress,
    get_status_from_progress,
    is_lesson_complete,
    normalize_enrollment_status,
)
from .models import PROGRESS_TABLES_CQL, Enrollment, LessonProgress
from .service import ProgressService


__all__ = [
    "LESSON_COMPLETION_THRESHOLD",
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "EnrollmentStatus",
    "LessonProgress",
    "ProgressService",
    "calculate_course_progress",
    "get_status_from_progress",
    "is_lesson_complete",
    "normalize_enrollment_status",
]
