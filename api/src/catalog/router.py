"""Course catalog API endpoints.

Provides routes for:
- Categories and instructors: public listing, admin management
- Courses: public listing of published courses, instructor management
- Lessons: per-course listing and management
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import AdminUser, InstructorUser
from src.catalog.dependencies import CatalogServiceDep, handle_catalog_error
from src.catalog.models import CourseStatus
from src.catalog.schemas import (
    CategoryListResponse,
    CategoryResponse,
    CourseListResponse,
    CourseResponse,
    CreateCategoryRequest,
    CreateCourseRequest,
    CreateInstructorRequest,
    CreateLessonRequest,
    InstructorListResponse,
    InstructorResponse,
    LessonListResponse,
    LessonResponse,
    UpdateCategoryRequest,
    UpdateCourseRequest,
    UpdateInstructorRequest,
    UpdateLessonRequest,
)
from src.catalog.service import CatalogError, CourseNotFoundError
from src.core.schemas import MessageResponse


router = APIRouter(prefix="/v1/catalog", tags=["catalog"])


# ==============================================================================
# Categories
# ==============================================================================


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    catalog_service: CatalogServiceDep,
    include_inactive: bool = False,
) -> CategoryListResponse:
    """List categories in display order."""
    categories = await catalog_service.list_categories(active_only=not include_inactive)
    items = [CategoryResponse.from_entity(c) for c in categories]
    return CategoryListResponse(items=items, total=len(items))


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    data: CreateCategoryRequest,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> CategoryResponse:
    """Create a category (ADMIN only)."""
    try:
        category = await catalog_service.create_category(data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return CategoryResponse.from_entity(category)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    data: UpdateCategoryRequest,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> CategoryResponse:
    try:
        category = await catalog_service.update_category(category_id, data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return CategoryResponse.from_entity(category)


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: UUID,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> MessageResponse:
    """Delete a category no course uses (ADMIN only)."""
    try:
        await catalog_service.delete_category(category_id)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return MessageResponse(message="Category deleted")


# ==============================================================================
# Instructors
# ==============================================================================


@router.get("/instructors", response_model=InstructorListResponse)
async def list_instructors(catalog_service: CatalogServiceDep) -> InstructorListResponse:
    instructors = await catalog_service.list_instructors()
    items = [InstructorResponse.from_entity(i) for i in instructors]
    return InstructorListResponse(items=items, total=len(items))


@router.post(
    "/instructors",
    response_model=InstructorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_instructor(
    data: CreateInstructorRequest,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> InstructorResponse:
    try:
        instructor = await catalog_service.create_instructor(data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return InstructorResponse.from_entity(instructor)


@router.patch("/instructors/{instructor_id}", response_model=InstructorResponse)
async def update_instructor(
    instructor_id: UUID,
    data: UpdateInstructorRequest,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> InstructorResponse:
    try:
        instructor = await catalog_service.update_instructor(instructor_id, data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return InstructorResponse.from_entity(instructor)


@router.delete("/instructors/{instructor_id}", response_model=MessageResponse)
async def delete_instructor(
    instructor_id: UUID,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> MessageResponse:
    try:
        await catalog_service.delete_instructor(instructor_id)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return MessageResponse(message="Instructor deleted")


# ==============================================================================
# Courses
# ==============================================================================


@router.get("/courses", response_model=CourseListResponse)
async def list_published_courses(catalog_service: CatalogServiceDep) -> CourseListResponse:
    """List published courses (public)."""
    courses = await catalog_service.list_courses(status=CourseStatus.PUBLISHED)
    items = [CourseResponse.from_entity(c) for c in courses]
    return CourseListResponse(items=items, total=len(items))


@router.get("/courses/admin", response_model=CourseListResponse)
async def list_all_courses(
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
    status_filter: CourseStatus | None = None,
) -> CourseListResponse:
    """List courses in any status (INSTRUCTOR or ADMIN)."""
    courses = await catalog_service.list_courses(status=status_filter)
    items = [CourseResponse.from_entity(c) for c in courses]
    return CourseListResponse(items=items, total=len(items))


@router.get("/courses/{course_id}", response_model=CourseResponse)
async def get_course(course_id: UUID, catalog_service: CatalogServiceDep) -> CourseResponse:
    """Get a published course."""
    course = await catalog_service.get_course(course_id)
    if not course or not course.is_published:
        raise handle_catalog_error(CourseNotFoundError())
    return CourseResponse.from_entity(course)


@router.post(
    "/courses",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_course(
    data: CreateCourseRequest,
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
) -> CourseResponse:
    try:
        course = await catalog_service.create_course(data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return CourseResponse.from_entity(course)


@router.patch("/courses/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
) -> CourseResponse:
    try:
        course = await catalog_service.update_course(course_id, data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return CourseResponse.from_entity(course)


@router.delete("/courses/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: UUID,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> MessageResponse:
    """Delete a course and its lessons (ADMIN only)."""
    try:
        await catalog_service.delete_course(course_id)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return MessageResponse(message="Course deleted")


# ==============================================================================
# Lessons
# ==============================================================================


@router.get("/courses/{course_id}/lessons", response_model=LessonListResponse)
async def list_lessons(course_id: UUID, catalog_service: CatalogServiceDep) -> LessonListResponse:
    lessons = await catalog_service.list_lessons(course_id)
    items = [LessonResponse.from_entity(lesson) for lesson in lessons]
    return LessonListResponse(items=items, total=len(items))


@router.post(
    "/courses/{course_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_lesson(
    course_id: UUID,
    data: CreateLessonRequest,
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    try:
        lesson = await catalog_service.create_lesson(course_id, data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return LessonResponse.from_entity(lesson)


@router.patch("/courses/{course_id}/lessons/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    course_id: UUID,
    lesson_id: UUID,
    data: UpdateLessonRequest,
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
) -> LessonResponse:
    try:
        lesson = await catalog_service.update_lesson(course_id, lesson_id, data)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return LessonResponse.from_entity(lesson)


@router.delete(
    "/courses/{course_id}/lessons/{lesson_id}", response_model=MessageResponse
)
async def delete_lesson(
    course_id: UUID,
    lesson_id: UUID,
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
) -> MessageResponse:
    try:
        await catalog_service.delete_lesson(course_id, lesson_id)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return MessageResponse(message="Lesson deleted")
