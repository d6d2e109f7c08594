"""Course catalog module.

Categories, instructors, courses and lessons.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .models import (
    CATALOG_TABLES_CQL,
    Category,
    Course,
    CourseStatus,
    Instructor,
    Lesson,
)
from .service import CatalogService


__all__ = [
    "CATALOG_TABLES_CQL",
    "CatalogService",
    "Category",
    "Course",
    "CourseStatus",
    "Instructor",
    "Lesson",
]
