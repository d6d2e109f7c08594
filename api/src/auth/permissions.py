"""Role-based access control (RBAC) for Elira.

Hierarchical permission system:
- ADMIN (level 4): Full platform access, catalog management
- INSTRUCTOR (level 3): Course authoring
- COMPANY_ADMIN (level 2): Manages a company's employees and enrollments
- COMPANY_EMPLOYEE (level 1): Member of a company, learns assigned courses
- STUDENT (level 0): Individual learner

Company-scoped permissions (can_manage_employees, can_enroll_courses) live on
the company admin record, not on the role.
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels."""

    STUDENT = "student"
    COMPANY_EMPLOYEE = "company_employee"
    COMPANY_ADMIN = "company_admin"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 0,
    UserRole.COMPANY_EMPLOYEE: 1,
    UserRole.COMPANY_ADMIN: 2,
    UserRole.INSTRUCTOR: 3,
    UserRole.ADMIN: 4,
}

COMPANY_ROLES = frozenset({UserRole.COMPANY_EMPLOYEE, UserRole.COMPANY_ADMIN})


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role (0 for unknown roles)."""
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission(UserRole.COMPANY_EMPLOYEE, UserRole.COMPANY_ADMIN)
        False
        >>> has_permission("admin", "student")
        True
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    return role == UserRole.ADMIN or role == UserRole.ADMIN.value


def is_company_role(role: UserRole | str | None) -> bool:
    """Check if role was granted through company membership."""
    if role is None:
        return False
    try:
        return UserRole(role) in COMPANY_ROLES
    except ValueError:
        return False


def role_after_company_exit(role: UserRole | str | None) -> str:
    """Role a user falls back to when their company membership ends.

    Company roles revert to STUDENT; platform roles (instructor, admin) are
    kept.
    """
    if role is None or is_company_role(role):
        return UserRole.STUDENT.value
    return UserRole(role).value


def role_after_company_join(
    role: UserRole | str | None,
    granted: UserRole = UserRole.COMPANY_EMPLOYEE,
) -> str:
    """Role a user holds after joining a company with the ``granted`` role.

    Platform roles (instructor, admin) and a higher company role are kept.
    """
    if role is not None and get_role_level(role) > get_role_level(granted):
        return UserRole(role).value
    return granted.value
