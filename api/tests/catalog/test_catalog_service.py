"""Tests for CatalogService."""

from unittest.mock import AsyncMock, Mock, patch
from uuid import uuid4

import pytest

from src.catalog.models import Category, Course, CourseStatus, Lesson, generate_slug
from src.catalog.schemas import (
    CreateCategoryRequest,
    CreateCourseRequest,
    CreateLessonRequest,
    UpdateCourseRequest,
)
from src.catalog.service import (
    CatalogService,
    CategoryInUseError,
    CategoryNotFoundError,
    CourseNotFoundError,
    LessonNotFoundError,
    NameExistsError,
)


@pytest.fixture
def catalog_service(mock_session: Mock) -> CatalogService:
    return CatalogService(session=mock_session, keyspace="test_keyspace")


class TestGenerateSlug:
    def test_strips_accents(self) -> None:
        assert generate_slug("Vezetői Kommunikáció") == "vezetoi-kommunikacio"

    def test_collapses_separators(self) -> None:
        assert generate_slug("  Sales -- 101!  ") == "sales-101"


class TestCategories:
    @pytest.mark.asyncio
    async def test_create_rejects_duplicate_name(
        self, catalog_service: CatalogService
    ) -> None:
        with (
            patch.object(
                catalog_service,
                "list_categories",
                AsyncMock(return_value=[Category(name="Marketing")]),
            ),
            pytest.raises(NameExistsError),
        ):
            await catalog_service.create_category(
                CreateCategoryRequest(name="marketing")
            )

    @pytest.mark.asyncio
    async def test_create_generates_slug(
        self, catalog_service: CatalogService, mock_session: Mock
    ) -> None:
        with patch.object(
            catalog_service, "list_categories", AsyncMock(return_value=[])
        ):
            category = await catalog_service.create_category(
                CreateCategoryRequest(name="Pénzügy", order=2)
            )

        assert category.slug == "penzugy"
        assert category.sort_order == 2
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_orders_by_sort_order_then_name(
        self, catalog_service: CatalogService, mock_session: Mock
    ) -> None:
        rows = []
        for name, order, active in [("Zeta", 1, True), ("alpha", 1, True), ("Beta", 0, False)]:
            row = Mock()
            row.id = uuid4()
            row.name = name
            row.slug = None
            row.description = None
            row.icon = None
            row.sort_order = order
            row.active = active
            row.created_at = None
            row.updated_at = None
            rows.append(row)
        mock_session.aexecute.return_value = rows

        all_categories = await catalog_service.list_categories()
        active = await catalog_service.list_categories(active_only=True)

        assert [c.name for c in all_categories] == ["Beta", "alpha", "Zeta"]
        assert [c.name for c in active] == ["alpha", "Zeta"]

    @pytest.mark.asyncio
    async def test_delete_missing(self, catalog_service: CatalogService) -> None:
        with (
            patch.object(catalog_service, "get_category", AsyncMock(return_value=None)),
            pytest.raises(CategoryNotFoundError),
        ):
            await catalog_service.delete_category(uuid4())

    @pytest.mark.asyncio
    async def test_delete_in_use(
        self, catalog_service: CatalogService, mock_session: Mock
    ) -> None:
        mock_session.aexecute.return_value = [Mock(), Mock()]
        with (
            patch.object(
                catalog_service,
                "get_category",
                AsyncMock(return_value=Category(name="Marketing")),
            ),
            pytest.raises(CategoryInUseError) as exc_info,
        ):
            await catalog_service.delete_category(uuid4())

        assert exc_info.value.course_count == 2


class TestCourses:
    @pytest.mark.asyncio
    async def test_create_checks_category(self, catalog_service: CatalogService) -> None:
        with (
            patch.object(catalog_service, "get_category", AsyncMock(return_value=None)),
            pytest.raises(CategoryNotFoundError),
        ):
            await catalog_service.create_course(
                CreateCourseRequest(title="Excel alapok", category_id=uuid4())
            )

    @pytest.mark.asyncio
    async def test_create_course(
        self, catalog_service: CatalogService, mock_session: Mock
    ) -> None:
        course = await catalog_service.create_course(
            CreateCourseRequest(title="Excel alapok", status=CourseStatus.PUBLISHED)
        )

        assert course.title == "Excel alapok"
        assert course.status == "published"
        assert course.lesson_count == 0
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_missing(self, catalog_service: CatalogService) -> None:
        with (
            patch.object(catalog_service, "get_course", AsyncMock(return_value=None)),
            pytest.raises(CourseNotFoundError),
        ):
            await catalog_service.update_course(uuid4(), UpdateCourseRequest(title="Új cím"))

    @pytest.mark.asyncio
    async def test_update_title_refreshes_slug(self, catalog_service: CatalogService) -> None:
        course = Course(title="Régi cím")
        with patch.object(catalog_service, "get_course", AsyncMock(return_value=course)):
            updated = await catalog_service.update_course(
                course.id, UpdateCourseRequest(title="  Új cím  ")
            )

        assert updated.title == "Új cím"
        assert updated.slug == "uj-cim"
        assert updated.updated_at is not None

    @pytest.mark.asyncio
    async def test_total_lessons_prefers_stored_count(
        self, catalog_service: CatalogService
    ) -> None:
        course = Course(title="Excel alapok", lesson_count=6)
        with (
            patch.object(catalog_service, "get_course", AsyncMock(return_value=course)),
            patch.object(catalog_service, "list_lessons", AsyncMock()) as list_lessons,
        ):
            assert await catalog_service.get_total_lessons(course.id) == 6

        list_lessons.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_total_lessons_counts_rows_when_unset(
        self, catalog_service: CatalogService
    ) -> None:
        course = Course(title="Excel alapok")
        lessons = [Lesson(course_id=course.id, title=f"Lecke {i}") for i in range(3)]
        with (
            patch.object(catalog_service, "get_course", AsyncMock(return_value=course)),
            patch.object(catalog_service, "list_lessons", AsyncMock(return_value=lessons)),
        ):
            assert await catalog_service.get_total_lessons(course.id) == 3

    @pytest.mark.asyncio
    async def test_total_lessons_missing_course(self, catalog_service: CatalogService) -> None:
        with patch.object(catalog_service, "get_course", AsyncMock(return_value=None)):
            assert await catalog_service.get_total_lessons(uuid4()) == 0

    @pytest.mark.asyncio
    async def test_increment_enrollment_count_never_negative(
        self, catalog_service: CatalogService
    ) -> None:
        course = Course(title="Excel alapok", enrollment_count=0)
        with patch.object(catalog_service, "get_course", AsyncMock(return_value=course)):
            assert await catalog_service.increment_enrollment_count(course.id, by=-1) == 0


class TestLessons:
    @pytest.mark.asyncio
    async def test_create_appends_and_updates_count(
        self, catalog_service: CatalogService
    ) -> None:
        course = Course(title="Excel alapok")
        existing = [Lesson(course_id=course.id, title="Bevezetés", position=0)]
        with (
            patch.object(catalog_service, "get_course", AsyncMock(return_value=course)),
            patch.object(catalog_service, "list_lessons", AsyncMock(return_value=existing)),
            patch.object(catalog_service, "_set_lesson_count", AsyncMock()) as set_count,
        ):
            lesson = await catalog_service.create_lesson(
                course.id, CreateLessonRequest(title="Képletek")
            )

        assert lesson.position == 1
        set_count.assert_awaited_once_with(course.id, 2)

    @pytest.mark.asyncio
    async def test_delete_missing(self, catalog_service: CatalogService) -> None:
        with (
            patch.object(catalog_service, "get_lesson", AsyncMock(return_value=None)),
            pytest.raises(LessonNotFoundError),
        ):
            await catalog_service.delete_lesson(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_delete_updates_count(self, catalog_service: CatalogService) -> None:
        course_id = uuid4()
        lesson = Lesson(course_id=course_id, title="Képletek")
        with (
            patch.object(catalog_service, "get_lesson", AsyncMock(return_value=lesson)),
            patch.object(catalog_service, "list_lessons", AsyncMock(return_value=[])),
            patch.object(catalog_service, "_set_lesson_count", AsyncMock()) as set_count,
        ):
            await catalog_service.delete_lesson(course_id, lesson.id)

        set_count.assert_awaited_once_with(course_id, 0)
