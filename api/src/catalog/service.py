"""Course catalog service layer.

Business logic for:
- Category and instructor management (unique names)
- Course CRUD and enrollment counters
- Lesson CRUD, keeping course.lesson_count in step
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.errors import ALREADY_EXISTS, FAILED_PRECONDITION, NOT_FOUND, ServiceError

from .models import (
    DEFAULT_CATEGORY_ORDER,
    Category,
    Course,
    CourseStatus,
    Instructor,
    Lesson,
    generate_slug,
)
from .schemas import (
    CreateCategoryRequest,
    CreateCourseRequest,
    CreateInstructorRequest,
    CreateLessonRequest,
    UpdateCategoryRequest,
    UpdateCourseRequest,
    UpdateInstructorRequest,
    UpdateLessonRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CatalogError(ServiceError):
    """Base catalog error."""


class CategoryNotFoundError(CatalogError):
    def __init__(self, message: str = "Category not found"):
        super().__init__(message, NOT_FOUND)


class InstructorNotFoundError(CatalogError):
    def __init__(self, message: str = "Instructor not found"):
        super().__init__(message, NOT_FOUND)


class CourseNotFoundError(CatalogError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, NOT_FOUND)


class LessonNotFoundError(CatalogError):
    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, NOT_FOUND)


class NameExistsError(CatalogError):
    """Another category/instructor already uses this name."""

    def __init__(self, message: str = "Name already in use"):
        super().__init__(message, ALREADY_EXISTS)


class CategoryInUseError(CatalogError):
    """Category still referenced by courses."""

    def __init__(self, course_count: int):
        super().__init__(
            f"Category is used by {course_count} course(s); "
            "remove it from those courses first",
            FAILED_PRECONDITION,
        )
        self.course_count = course_count


# ==============================================================================
# Catalog Service
# ==============================================================================


class CatalogService:
    """Service for categories, instructors, courses and lessons."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        # Categories
        self._list_categories = self.session.prepare(f"SELECT * FROM {ks}.categories")
        self._get_category = self.session.prepare(
            f"SELECT * FROM {ks}.categories WHERE id = ?"
        )
        self._upsert_category = self.session.prepare(f"""
            INSERT INTO {ks}.categories
            (id, name, slug, description, icon, sort_order, active,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_category = self.session.prepare(
            f"DELETE FROM {ks}.categories WHERE id = ?"
        )
        self._get_courses_by_category = self.session.prepare(
            f"SELECT id FROM {ks}.courses WHERE category_id = ?"
        )

        # Instructors
        self._list_instructors = self.session.prepare(f"SELECT * FROM {ks}.instructors")
        self._get_instructor = self.session.prepare(
            f"SELECT * FROM {ks}.instructors WHERE id = ?"
        )
        self._upsert_instructor = self.session.prepare(f"""
            INSERT INTO {ks}.instructors
            (id, name, title, bio, image_url, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_instructor = self.session.prepare(
            f"DELETE FROM {ks}.instructors WHERE id = ?"
        )

        # Courses
        self._list_courses = self.session.prepare(f"SELECT * FROM {ks}.courses")
        self._get_course = self.session.prepare(
            f"SELECT * FROM {ks}.courses WHERE id = ?"
        )
        self._upsert_course = self.session.prepare(f"""
            INSERT INTO {ks}.courses
            (id, title, slug, description, thumbnail_url, status, price,
             category_id, instructor_id, lesson_count, enrollment_count,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_lesson_count = self.session.prepare(f"""
            UPDATE {ks}.courses SET lesson_count = ?, updated_at = ? WHERE id = ?
        """)
        self._update_enrollment_count = self.session.prepare(f"""
            UPDATE {ks}.courses SET enrollment_count = ? WHERE id = ?
        """)
        self._delete_course = self.session.prepare(
            f"DELETE FROM {ks}.courses WHERE id = ?"
        )

        # Lessons
        self._list_lessons = self.session.prepare(
            f"SELECT * FROM {ks}.lessons WHERE course_id = ?"
        )
        self._get_lesson = self.session.prepare(
            f"SELECT * FROM {ks}.lessons WHERE course_id = ? AND id = ?"
        )
        self._upsert_lesson = self.session.prepare(f"""
            INSERT INTO {ks}.lessons
            (course_id, id, title, description, video_url, position,
             duration_seconds, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_lesson = self.session.prepare(
            f"DELETE FROM {ks}.lessons WHERE course_id = ? AND id = ?"
        )
        self._delete_course_lessons = self.session.prepare(
            f"DELETE FROM {ks}.lessons WHERE course_id = ?"
        )

    # ==========================================================================
    # Categories
    # ==========================================================================

    async def list_categories(self, active_only: bool = False) -> list[Category]:
        """List categories ordered by sort order, then name."""
        rows = await self.session.aexecute(self._list_categories)
        categories = [Category.from_row(row) for row in rows]
        if active_only:
            categories = [c for c in categories if c.active]
        return sorted(categories, key=lambda c: (c.sort_order, c.name.lower()))

    async def get_category(self, category_id: UUID) -> Category | None:
        result = await self.session.aexecute(self._get_category, [category_id])
        row = result.one()
        return Category.from_row(row) if row else None

    async def create_category(self, data: CreateCategoryRequest) -> Category:
        """Create a category.

        Raises:
            NameExistsError: If another category has the same name
        """
        existing = await self.list_categories()
        if any(c.name.lower() == data.name.lower() for c in existing):
            raise NameExistsError("A category with this name already exists")

        slug = data.slug or generate_slug(data.name)
        if any(c.slug == slug for c in existing):
            slug = f"{slug}-{int(datetime.now(UTC).timestamp())}"

        category = Category(
            name=data.name,
            slug=slug,
            description=data.description,
            icon=data.icon,
            sort_order=data.order if data.order is not None else DEFAULT_CATEGORY_ORDER,
        )
        await self._save_category(category)

        logger.info("category_created", category_id=str(category.id))
        return category

    async def update_category(
        self, category_id: UUID, data: UpdateCategoryRequest
    ) -> Category:
        """Update a category.

        Raises:
            CategoryNotFoundError: If category doesn't exist
            NameExistsError: If another category has the new name
        """
        category = await self.get_category(category_id)
        if not category:
            raise CategoryNotFoundError

        if data.name is not None and data.name.lower() != category.name.lower():
            existing = await self.list_categories()
            if any(
                c.id != category_id and c.name.lower() == data.name.lower()
                for c in existing
            ):
                raise NameExistsError("Another category already uses this name")
        if data.name is not None:
            category.name = data.name
        if data.slug is not None:
            category.slug = data.slug
        if data.description is not None:
            category.description = data.description or None
        if data.icon is not None:
            category.icon = data.icon or None
        if data.order is not None:
            category.sort_order = data.order
        if data.active is not None:
            category.active = data.active

        category.updated_at = datetime.now(UTC)
        await self._save_category(category)
        return category

    async def delete_category(self, category_id: UUID) -> None:
        """Delete a category that no course references.

        Raises:
            CategoryNotFoundError: If category doesn't exist
            CategoryInUseError: If courses still use it
        """
        if not await self.get_category(category_id):
            raise CategoryNotFoundError

        rows = await self.session.aexecute(self._get_courses_by_category, [category_id])
        course_count = len(list(rows))
        if course_count:
            raise CategoryInUseError(course_count)

        await self.session.aexecute(self._delete_category, [category_id])
        logger.info("category_deleted", category_id=str(category_id))

    async def _save_category(self, category: Category) -> None:
        await self.session.aexecute(
            self._upsert_category,
            [
                category.id,
                category.name,
                category.slug,
                category.description,
                category.icon,
                category.sort_order,
                category.active,
                category.created_at,
                category.updated_at,
            ],
        )

    # ==========================================================================
    # Instructors
    # ==========================================================================

    async def list_instructors(self) -> list[Instructor]:
        rows = await self.session.aexecute(self._list_instructors)
        return sorted(
            (Instructor.from_row(row) for row in rows), key=lambda i: i.name.lower()
        )

    async def get_instructor(self, instructor_id: UUID) -> Instructor | None:
        result = await self.session.aexecute(self._get_instructor, [instructor_id])
        row = result.one()
        return Instructor.from_row(row) if row else None

    async def create_instructor(self, data: CreateInstructorRequest) -> Instructor:
        """Create an instructor profile.

        Raises:
            NameExistsError: If another instructor has the same name
        """
        existing = await self.list_instructors()
        if any(i.name.lower() == data.name.lower() for i in existing):
            raise NameExistsError("An instructor with this name already exists")

        instructor = Instructor(
            name=data.name,
            title=data.title,
            bio=data.bio,
            image_url=data.image_url,
        )
        await self._save_instructor(instructor)

        logger.info("instructor_created", instructor_id=str(instructor.id))
        return instructor

    async def update_instructor(
        self, instructor_id: UUID, data: UpdateInstructorRequest
    ) -> Instructor:
        instructor = await self.get_instructor(instructor_id)
        if not instructor:
            raise InstructorNotFoundError

        if data.name is not None and data.name.lower() != instructor.name.lower():
            existing = await self.list_instructors()
            if any(
                i.id != instructor_id and i.name.lower() == data.name.lower()
                for i in existing
            ):
                raise NameExistsError("Another instructor already uses this name")
            instructor.name = data.name
        if data.title is not None:
            instructor.title = data.title
        if data.bio is not None:
            instructor.bio = data.bio
        if data.image_url is not None:
            instructor.image_url = data.image_url

        instructor.updated_at = datetime.now(UTC)
        await self._save_instructor(instructor)
        return instructor

    async def delete_instructor(self, instructor_id: UUID) -> None:
        if not await self.get_instructor(instructor_id):
            raise InstructorNotFoundError
        await self.session.aexecute(self._delete_instructor, [instructor_id])
        logger.info("instructor_deleted", instructor_id=str(instructor_id))

    async def _save_instructor(self, instructor: Instructor) -> None:
        await self.session.aexecute(
            self._upsert_instructor,
            [
                instructor.id,
                instructor.name,
                instructor.title,
                instructor.bio,
                instructor.image_url,
                instructor.created_at,
                instructor.updated_at,
            ],
        )

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def list_courses(self, status: CourseStatus | None = None) -> list[Course]:
        """List courses, newest first, optionally filtered by status."""
        rows = await self.session.aexecute(self._list_courses)
        courses = [Course.from_row(row) for row in rows]
        if status is not None:
            courses = [c for c in courses if c.status == status.value]
        return sorted(courses, key=lambda c: c.created_at, reverse=True)

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get course by ID."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def create_course(self, data: CreateCourseRequest) -> Course:
        """Create a course.

        Raises:
            CategoryNotFoundError / InstructorNotFoundError: Bad references
        """
        await self._check_references(data.category_id, data.instructor_id)

        course = Course(
            title=data.title,
            description=data.description,
            thumbnail_url=data.thumbnail_url,
            status=data.status.value,
            price=data.price,
            category_id=data.category_id,
            instructor_id=data.instructor_id,
        )
        await self._save_course(course)

        logger.info("course_created", course_id=str(course.id), title=course.title)
        return course

    async def update_course(self, course_id: UUID, data: UpdateCourseRequest) -> Course:
        """Update a course (only provided fields change)."""
        course = await self.get_course(course_id)
        if not course:
            raise CourseNotFoundError

        await self._check_references(data.category_id, data.instructor_id)

        if data.title is not None:
            course.title = data.title.strip()
            course.slug = generate_slug(course.title)
        if data.description is not None:
            course.description = data.description
        if data.thumbnail_url is not None:
            course.thumbnail_url = data.thumbnail_url
        if data.price is not None:
            course.price = data.price
        if data.category_id is not None:
            course.category_id = data.category_id
        if data.instructor_id is not None:
            course.instructor_id = data.instructor_id
        if data.status is not None:
            course.status = data.status.value

        course.updated_at = datetime.now(UTC)
        await self._save_course(course)
        return course

    async def delete_course(self, course_id: UUID) -> None:
        """Delete a course and its lessons."""
        if not await self.get_course(course_id):
            raise CourseNotFoundError
        await self.session.aexecute(self._delete_course_lessons, [course_id])
        await self.session.aexecute(self._delete_course, [course_id])
        logger.info("course_deleted", course_id=str(course_id))

    async def increment_enrollment_count(self, course_id: UUID, by: int = 1) -> int:
        """Add to a course's enrollment counter.

        Read-modify-write; concurrent increments may be lost.
        """
        course = await self.get_course(course_id)
        if not course:
            raise CourseNotFoundError
        new_count = max(course.enrollment_count + by, 0)
        await self.session.aexecute(
            self._update_enrollment_count, [new_count, course_id]
        )
        return new_count

    async def get_total_lessons(self, course_id: UUID) -> int:
        """Total lessons of a course: lesson_count, else counted lesson rows."""
        course = await self.get_course(course_id)
        if not course:
            return 0
        if course.lesson_count > 0:
            return course.lesson_count
        return len(await self.list_lessons(course_id))

    async def _check_references(
        self, category_id: UUID | None, instructor_id: UUID | None
    ) -> None:
        if category_id is not None and not await self.get_category(category_id):
            raise CategoryNotFoundError
        if instructor_id is not None and not await self.get_instructor(instructor_id):
            raise InstructorNotFoundError

    async def _save_course(self, course: Course) -> None:
        await self.session.aexecute(
            self._upsert_course,
            [
                course.id,
                course.title,
                course.slug,
                course.description,
                course.thumbnail_url,
                course.status,
                course.price,
                course.category_id,
                course.instructor_id,
                course.lesson_count,
                course.enrollment_count,
                course.created_at,
                course.updated_at,
            ],
        )

    # ==========================================================================
    # Lessons
    # ==========================================================================

    async def list_lessons(self, course_id: UUID) -> list[Lesson]:
        """List a course's lessons in position order."""
        rows = await self.session.aexecute(self._list_lessons, [course_id])
        return sorted((Lesson.from_row(row) for row in rows), key=lambda l: l.position)

    async def get_lesson(self, course_id: UUID, lesson_id: UUID) -> Lesson | None:
        result = await self.session.aexecute(self._get_lesson, [course_id, lesson_id])
        row = result.one()
        return Lesson.from_row(row) if row else None

    async def create_lesson(self, course_id: UUID, data: CreateLessonRequest) -> Lesson:
        """Add a lesson to a course and refresh its lesson_count."""
        if not await self.get_course(course_id):
            raise CourseNotFoundError

        lessons = await self.list_lessons(course_id)
        position = data.position if data.position is not None else len(lessons)

        lesson = Lesson(
            course_id=course_id,
            title=data.title,
            description=data.description,
            video_url=data.video_url,
            position=position,
            duration_seconds=data.duration_seconds,
        )
        await self._save_lesson(lesson)
        await self._set_lesson_count(course_id, len(lessons) + 1)

        logger.info("lesson_created", course_id=str(course_id), lesson_id=str(lesson.id))
        return lesson

    async def update_lesson(
        self, course_id: UUID, lesson_id: UUID, data: UpdateLessonRequest
    ) -> Lesson:
        lesson = await self.get_lesson(course_id, lesson_id)
        if not lesson:
            raise LessonNotFoundError

        if data.title is not None:
            lesson.title = data.title.strip()
        if data.description is not None:
            lesson.description = data.description
        if data.video_url is not None:
            lesson.video_url = data.video_url
        if data.position is not None:
            lesson.position = data.position
        if data.duration_seconds is not None:
            lesson.duration_seconds = data.duration_seconds

        lesson.updated_at = datetime.now(UTC)
        await self._save_lesson(lesson)
        return lesson

    async def delete_lesson(self, course_id: UUID, lesson_id: UUID) -> None:
        """Remove a lesson and refresh the course's lesson_count."""
        if not await self.get_lesson(course_id, lesson_id):
            raise LessonNotFoundError

        await self.session.aexecute(self._delete_lesson, [course_id, lesson_id])
        remaining = await self.list_lessons(course_id)
        await self._set_lesson_count(course_id, len(remaining))

        logger.info("lesson_deleted", course_id=str(course_id), lesson_id=str(lesson_id))

    async def _set_lesson_count(self, course_id: UUID, count: int) -> None:
        await self.session.aexecute(
            self._update_lesson_count, [count, datetime.now(UTC), course_id]
        )

    async def _save_lesson(self, lesson: Lesson) -> None:
        await self.session.aexecute(
            self._upsert_lesson,
            [
                lesson.course_id,
                lesson.id,
                lesson.title,
                lesson.description,
                lesson.video_url,
                lesson.position,
                lesson.duration_seconds,
                lesson.created_at,
                lesson.updated_at,
            ],
        )
