"""Tests for progress calculations."""

import pytest

from src.progress.calculations import (
    EnrollmentStatus,
    calculate_course_progress,
    get_status_from_progress,
    is_lesson_complete,
    normalize_enrollment_status,
    round_half_up,
)


class TestCalculateCourseProgress:
    @pytest.mark.parametrize(
        "completed,total,expected",
        [
            (0, 10, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),  # 12.5 rounds up
            (5, 8, 63),  # 62.5 rounds up
            (1, 200, 1),  # 0.5 rounds up
            (10, 10, 100),
            (12, 10, 100),  # stale counts never exceed 100
        ],
    )
    def test_percentage(self, completed: int, total: int, expected: int) -> None:
        assert calculate_course_progress(completed, total) == expected

    @pytest.mark.parametrize("total", [0, -1])
    def test_no_lessons_is_zero(self, total: int) -> None:
        assert calculate_course_progress(5, total) == 0

    def test_single_lesson_of_long_course_is_in_progress(self) -> None:
        progress = calculate_course_progress(1, 200)

        assert progress == 1
        assert get_status_from_progress(progress) is EnrollmentStatus.IN_PROGRESS


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected",
        [(0.5, 1), (2.5, 3), (12.5, 13), (12.49, 12), (0.0, 0), (99.5, 100)],
    )
    def test_halves_go_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected


class TestGetStatusFromProgress:
    @pytest.mark.parametrize(
        "progress,expected",
        [
            (0, EnrollmentStatus.NOT_STARTED),
            (1, EnrollmentStatus.IN_PROGRESS),
            (99, EnrollmentStatus.IN_PROGRESS),
            (100, EnrollmentStatus.COMPLETED),
        ],
    )
    def test_status(self, progress: int, expected: EnrollmentStatus) -> None:
        assert get_status_from_progress(progress) is expected


class TestIsLessonComplete:
    def test_threshold_reached(self) -> None:
        assert is_lesson_complete(90)
        assert is_lesson_complete(100)

    def test_below_threshold(self) -> None:
        assert not is_lesson_complete(89)
        assert not is_lesson_complete(None)

    def test_completed_flag_wins(self) -> None:
        assert is_lesson_complete(10, completed=True)

    def test_custom_threshold(self) -> None:
        assert is_lesson_complete(80, threshold=80)
        assert not is_lesson_complete(80, threshold=95)


class TestNormalizeEnrollmentStatus:
    @pytest.mark.parametrize(
        "status,expected",
        [
            ("completed", EnrollmentStatus.COMPLETED),
            ("COMPLETED", EnrollmentStatus.COMPLETED),
            ("active", EnrollmentStatus.IN_PROGRESS),
            ("in_progress", EnrollmentStatus.IN_PROGRESS),
            ("paused", EnrollmentStatus.NOT_STARTED),
            ("not_started", EnrollmentStatus.NOT_STARTED),
        ],
    )
    def test_known_and_legacy_values(self, status: str, expected: EnrollmentStatus) -> None:
        assert normalize_enrollment_status(status) is expected

    def test_missing_status_derived_from_progress(self) -> None:
        assert normalize_enrollment_status(None, 40) is EnrollmentStatus.IN_PROGRESS
        assert normalize_enrollment_status(None, 100) is EnrollmentStatus.COMPLETED
        assert normalize_enrollment_status(None) is EnrollmentStatus.NOT_STARTED
