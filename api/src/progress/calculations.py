"""Pure progress calculations.

No I/O here: these helpers are shared by the progress service, the company
dashboard and the entity loaders.
"""

import math
from enum import Enum


# Lesson counts as completed once this much of the video was watched
LESSON_COMPLETION_THRESHOLD = 90


class EnrollmentStatus(str, Enum):
    """Derived course enrollment status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up.

    ``round()`` rounds halves to even, so 12.5 would become 12.
    """
    return math.floor(value + 0.5)


def calculate_course_progress(completed_lessons: int, total_lessons: int) -> int:
    """Course completion percentage, rounded half up and capped at 100.

    Returns 0 when the course has no lessons.
    """
    if total_lessons <= 0:
        return 0
    return min(round_half_up(completed_lessons * 100 / total_lessons), 100)


def get_status_from_progress(progress: int) -> EnrollmentStatus:
    if progress >= 100:  # noqa: PLR2004
        return EnrollmentStatus.COMPLETED
    if progress > 0:
        return EnrollmentStatus.IN_PROGRESS
    return EnrollmentStatus.NOT_STARTED


def is_lesson_complete(
    watch_percentage: int | None,
    completed: bool | None = None,
    threshold: int = LESSON_COMPLETION_THRESHOLD,
) -> bool:
    """A lesson is complete if flagged so or watched past the threshold."""
    if completed:
        return True
    return watch_percentage is not None and watch_percentage >= threshold


def normalize_enrollment_status(status: str | None, progress: int = 0) -> EnrollmentStatus:
    """Map stored or legacy status strings onto EnrollmentStatus.

    ``active`` and ``in_progress`` both mean in progress; unknown values are
    treated as not started. A missing status is derived from ``progress``.
    """
    if status is None:
        return get_status_from_progress(progress)

    value = status.strip().lower()
    if value == EnrollmentStatus.COMPLETED.value:
        return EnrollmentStatus.COMPLETED
    if value in {"active", EnrollmentStatus.IN_PROGRESS.value}:
        return EnrollmentStatus.IN_PROGRESS
    return EnrollmentStatus.NOT_STARTED
