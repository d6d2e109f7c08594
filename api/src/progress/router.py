"""Learner progress API endpoints.

Provides routes for:
- Lesson progress reports (sent periodically by the player)
- Manual lesson completion
- Cross-device resume and device switch
- Course enrollment
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser
from src.core.schemas import MessageResponse

from .dependencies import ProgressServiceDep, handle_progress_error
from .schemas import (
    DeviceSyncRequest,
    DeviceSyncResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    LessonProgressResponse,
    MarkLessonCompleteRequest,
    ReportProgressRequest,
    SyncedLessonProgressResponse,
)
from .service import NotEnrolledError, ProgressError


router = APIRouter(prefix="/v1/progress", tags=["progress"])


# ==============================================================================
# Lesson Progress Endpoints
# ==============================================================================


@router.post(
    "/lessons",
    response_model=LessonProgressResponse,
    summary="Report lesson progress",
)
async def report_lesson_progress(
    data: ReportProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> LessonProgressResponse:
    """Merge a progress report into the current user's lesson record.

    Reaching 90% watched marks the lesson completed. With ``courseId`` the
    course enrollment progress is recomputed as well.
    """
    progress = await progress_service.report_lesson_progress(user.id, data)
    return LessonProgressResponse.from_entity(progress)


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=LessonProgressResponse,
    summary="Mark lesson complete",
)
async def mark_lesson_complete(
    lesson_id: UUID,
    data: MarkLessonCompleteRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> LessonProgressResponse:
    progress = await progress_service.mark_lesson_complete(
        user.id, lesson_id, data.course_id, time_spent=data.time_spent
    )
    return LessonProgressResponse.from_entity(progress)


@router.get(
    "/lessons/{lesson_id}/synced",
    response_model=SyncedLessonProgressResponse,
    summary="Get lesson resume data",
)
async def get_synced_lesson_progress(
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
    course_id: UUID | None = None,
) -> SyncedLessonProgressResponse:
    return await progress_service.get_synced_lesson_progress(
        user.id, lesson_id, course_id
    )


@router.post(
    "/sync-device",
    response_model=DeviceSyncResponse,
    summary="Move progress to a new device",
)
async def sync_progress_on_device_switch(
    data: DeviceSyncRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> DeviceSyncResponse:
    return await progress_service.sync_progress_on_device_switch(
        user.id, data.device_id, data.course_id
    )


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@router.get("/enrollments", response_model=EnrollmentListResponse)
async def list_my_enrollments(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    """List the current user's enrollments."""
    enrollments = await progress_service.list_user_enrollments(user.id)
    items = [EnrollmentResponse.from_entity(e) for e in enrollments]
    return EnrollmentListResponse(items=items, total=len(items))


@router.post(
    "/enrollments/{course_id}",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Enroll the current user in a course."""
    try:
        enrollment = await progress_service.enroll_user(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@router.get("/enrollments/{course_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    enrollment = await progress_service.get_enrollment(user.id, course_id)
    if not enrollment:
        raise handle_progress_error(NotEnrolledError())
    return EnrollmentResponse.from_entity(enrollment)


@router.post(
    "/enrollments/{course_id}/recalculate",
    response_model=EnrollmentResponse,
)
async def recalculate_enrollment(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Recompute the enrollment progress from lesson records."""
    try:
        enrollment = await progress_service.recalculate_enrollment_progress(
            user.id, course_id
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@router.delete("/enrollments/{course_id}", response_model=MessageResponse)
async def unenroll(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    try:
        await progress_service.unenroll(user.id, course_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return MessageResponse(message="Unenrolled from course")
