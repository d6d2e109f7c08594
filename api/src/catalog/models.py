"""Database models for the course catalog.

Cassandra table definitions for:
- Categories and instructors (small admin-managed tables)
- Courses: Main course table with price, lesson and enrollment counts
- Lessons: Partitioned by course, ordered by position on read
"""

import re
import unicodedata
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class CourseStatus(str, Enum):
    """Course publication status."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


DEFAULT_CATEGORY_ORDER = 999


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.categories (
    id UUID PRIMARY KEY,
    name TEXT,
    slug TEXT,
    description TEXT,
    icon TEXT,
    sort_order INT,
    active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

INSTRUCTOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.instructors (
    id UUID PRIMARY KEY,
    name TEXT,
    title TEXT,
    bio TEXT,
    image_url TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    slug TEXT,
    description TEXT,
    thumbnail_url TEXT,
    status TEXT,
    price DECIMAL,
    category_id UUID,
    instructor_id UUID,
    lesson_count INT,
    enrollment_count INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_CATEGORY_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS courses_category_idx ON {keyspace}.courses (category_id)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    course_id UUID,
    id UUID,
    title TEXT,
    description TEXT,
    video_url TEXT,
    position INT,
    duration_seconds INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, id)
)
"""

CATALOG_TABLES_CQL = [
    CATEGORY_TABLE_CQL,
    INSTRUCTOR_TABLE_CQL,
    COURSE_TABLE_CQL,
    COURSE_CATEGORY_INDEX_CQL,
    LESSON_TABLE_CQL,
]


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


def generate_slug(text: str) -> str:
    """Generate URL-friendly slug (accents stripped, hyphen separated)."""
    slug = unicodedata.normalize("NFKD", text)
    slug = slug.encode("ascii", "ignore").decode("ascii").lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s_]+", "-", slug).strip("-")


# ==============================================================================
# Entity Classes
# ==============================================================================


class Category:
    """Course category."""

    def __init__(
        self,
        id: UUID | None = None,
        name: str = "",
        slug: str | None = None,
        description: str | None = None,
        icon: str | None = None,
        sort_order: int = DEFAULT_CATEGORY_ORDER,
        active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.slug = slug or generate_slug(name)
        self.description = description
        self.icon = icon
        self.sort_order = sort_order
        self.active = active
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Category":
        return cls(
            id=row.id,
            name=row.name or "",
            slug=row.slug,
            description=row.description,
            icon=row.icon,
            sort_order=row.sort_order
            if row.sort_order is not None
            else DEFAULT_CATEGORY_ORDER,
            active=row.active if row.active is not None else True,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Instructor:
    """Course instructor profile."""

    def __init__(
        self,
        id: UUID | None = None,
        name: str = "",
        title: str | None = None,
        bio: str | None = None,
        image_url: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.title = title
        self.bio = bio
        self.image_url = image_url
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Instructor":
        return cls(
            id=row.id,
            name=row.name or "",
            title=row.title,
            bio=row.bio,
            image_url=row.image_url,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Instructor {self.name}>"


class Course:
    """Course entity.

    Attributes:
        id: Unique identifier (UUID)
        title: Course title
        slug: URL-friendly identifier
        description: Course description
        thumbnail_url: Cover image URL
        status: Publication status (draft, published, archived)
        price: One-off purchase price in the checkout currency (None = not sold)
        category_id: Category reference
        instructor_id: Instructor reference
        lesson_count: Number of lessons (kept in step by lesson create/delete)
        enrollment_count: Number of enrollments (incremented on enroll)
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        slug: str | None = None,
        description: str | None = None,
        thumbnail_url: str | None = None,
        status: str = CourseStatus.DRAFT.value,
        price: Decimal | None = None,
        category_id: UUID | None = None,
        instructor_id: UUID | None = None,
        lesson_count: int = 0,
        enrollment_count: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.slug = slug or generate_slug(title)
        self.description = description
        self.thumbnail_url = thumbnail_url
        self.status = status
        self.price = price
        self.category_id = category_id
        self.instructor_id = instructor_id
        self.lesson_count = lesson_count
        self.enrollment_count = enrollment_count
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            slug=row.slug,
            description=row.description,
            thumbnail_url=row.thumbnail_url,
            status=row.status or CourseStatus.DRAFT.value,
            price=row.price,
            category_id=row.category_id,
            instructor_id=row.instructor_id,
            lesson_count=row.lesson_count or 0,
            enrollment_count=row.enrollment_count or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED.value

    def __repr__(self) -> str:
        return f"<Course {self.title} ({self.status})>"


class Lesson:
    """Lesson entity, owned by a course."""

    def __init__(
        self,
        course_id: UUID,
        id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        video_url: str | None = None,
        position: int = 0,
        duration_seconds: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description
        self.video_url = video_url
        self.position = position
        self.duration_seconds = duration_seconds
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        return cls(
            course_id=row.course_id,
            id=row.id,
            title=row.title or "",
            description=row.description,
            video_url=row.video_url,
            position=row.position or 0,
            duration_seconds=row.duration_seconds,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Lesson {self.title} #{self.position}>"
