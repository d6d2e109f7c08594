"""Pydantic schemas for the course catalog.

Request and response models for categories, instructors, courses and lessons.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator

from src.core.schemas import ApiModel

from .models import Category, Course, CourseStatus, Instructor, Lesson


# ==============================================================================
# Category Schemas
# ==============================================================================


class CreateCategoryRequest(ApiModel):
    """Request to create a category."""

    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)
    description: str | None = None
    icon: str | None = None
    order: int | None = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class UpdateCategoryRequest(ApiModel):
    """Request to update a category (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)
    description: str | None = None
    icon: str | None = None
    order: int | None = Field(None, ge=0)
    active: bool | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class CategoryResponse(ApiModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    icon: str | None = None
    order: int
    active: bool
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Category) -> "CategoryResponse":
        return cls(
            id=entity.id,
            name=entity.name,
            slug=entity.slug,
            description=entity.description,
            icon=entity.icon,
            order=entity.sort_order,
            active=entity.active,
            created_at=entity.created_at,
        )


class CategoryListResponse(ApiModel):
    items: list[CategoryResponse]
    total: int


# ==============================================================================
# Instructor Schemas
# ==============================================================================


class CreateInstructorRequest(ApiModel):
    """Request to create an instructor profile."""

    name: str = Field(..., min_length=1, max_length=100)
    title: str | None = Field(None, max_length=200)
    bio: str | None = None
    image_url: str | None = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class UpdateInstructorRequest(ApiModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    title: str | None = Field(None, max_length=200)
    bio: str | None = None
    image_url: str | None = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class InstructorResponse(ApiModel):
    id: UUID
    name: str
    title: str | None = None
    bio: str | None = None
    image_url: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Instructor) -> "InstructorResponse":
        return cls(
            id=entity.id,
            name=entity.name,
            title=entity.title,
            bio=entity.bio,
            image_url=entity.image_url,
            created_at=entity.created_at,
        )


class InstructorListResponse(ApiModel):
    items: list[InstructorResponse]
    total: int


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(ApiModel):
    """Request to create a course."""

    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str | None = Field(None, max_length=5000)
    thumbnail_url: str | None = Field(None, max_length=500)
    price: Decimal | None = Field(None, ge=0, description="Purchase price (HUF)")
    category_id: UUID | None = None
    instructor_id: UUID | None = None
    status: CourseStatus = CourseStatus.DRAFT


class UpdateCourseRequest(ApiModel):
    """Request to update a course (all fields optional)."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    thumbnail_url: str | None = Field(None, max_length=500)
    price: Decimal | None = Field(None, ge=0)
    category_id: UUID | None = None
    instructor_id: UUID | None = None
    status: CourseStatus | None = None


class CourseResponse(ApiModel):
    id: UUID
    title: str
    slug: str
    description: str | None = None
    thumbnail_url: str | None = None
    status: CourseStatus
    price: Decimal | None = None
    category_id: UUID | None = None
    instructor_id: UUID | None = None
    lesson_count: int = 0
    enrollment_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Course) -> "CourseResponse":
        return cls(
            id=entity.id,
            title=entity.title,
            slug=entity.slug,
            description=entity.description,
            thumbnail_url=entity.thumbnail_url,
            status=CourseStatus(entity.status),
            price=entity.price,
            category_id=entity.category_id,
            instructor_id=entity.instructor_id,
            lesson_count=entity.lesson_count,
            enrollment_count=entity.enrollment_count,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class CourseListResponse(ApiModel):
    items: list[CourseResponse]
    total: int


# ==============================================================================
# Lesson Schemas
# ==============================================================================


class CreateLessonRequest(ApiModel):
    """Request to add a lesson to a course."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    video_url: str | None = Field(None, max_length=500)
    position: int | None = Field(None, ge=0, description="Defaults to end of course")
    duration_seconds: int | None = Field(None, ge=0)


class UpdateLessonRequest(ApiModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    video_url: str | None = Field(None, max_length=500)
    position: int | None = Field(None, ge=0)
    duration_seconds: int | None = Field(None, ge=0)


class LessonResponse(ApiModel):
    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    video_url: str | None = None
    position: int
    duration_seconds: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Lesson) -> "LessonResponse":
        return cls(
            id=entity.id,
            course_id=entity.course_id,
            title=entity.title,
            description=entity.description,
            video_url=entity.video_url,
            position=entity.position,
            duration_seconds=entity.duration_seconds,
            created_at=entity.created_at,
        )


class LessonListResponse(ApiModel):
    items: list[LessonResponse]
    total: int
