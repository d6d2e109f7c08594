"""Database models for company (team) accounts.

Cassandra table definitions for:
- Companies: owner, employee count, purchased courses
- Company admins: per-company permissions
- Employees: invitation and membership records, partitioned by company
- Lookups: employees by email (onboarding linker) and by invite token
- Activity log and company-level course enrollments
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EmployeeStatus(str, Enum):
    """Employee membership status."""

    INVITED = "invited"
    ACTIVE = "active"
    LEFT = "left"


class CompanyRole(str, Enum):
    """Role of a user inside their company (stored on the user profile)."""

    OWNER = "owner"
    ADMIN = "admin"
    EMPLOYEE = "employee"


class ActivityType(str, Enum):
    COMPANY_CREATED = "company_created"
    EMPLOYEE_INVITED = "employee_invited"
    EMPLOYEE_JOINED = "employee_joined"
    EMPLOYEE_REMOVED = "employee_removed"
    INVITATION_CANCELLED = "invitation_cancelled"
    COURSE_ENROLLED = "course_enrolled"


# Statuses that count towards company.employee_count
COUNTED_STATUSES = frozenset({EmployeeStatus.INVITED.value, EmployeeStatus.ACTIVE.value})


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMPANY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.companies (
    id UUID PRIMARY KEY,
    name TEXT,
    owner_id UUID,
    employee_count INT,
    purchased_masterclasses LIST<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COMPANY_ADMINS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.company_admins (
    company_id UUID,
    user_id UUID,
    role TEXT,
    can_manage_employees BOOLEAN,
    can_enroll_courses BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY (company_id, user_id)
)
"""

EMPLOYEES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees (
    company_id UUID,
    employee_id UUID,
    user_id UUID,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    full_name TEXT,
    job_title TEXT,
    status TEXT,
    invite_token TEXT,
    invite_expires_at TIMESTAMP,
    invited_by UUID,
    invited_at TIMESTAMP,
    invite_accepted_at TIMESTAMP,
    removed_at TIMESTAMP,
    removed_by UUID,
    enrolled_masterclasses LIST<UUID>,
    PRIMARY KEY (company_id, employee_id)
)
"""

# Lookup: invitations across companies by (lower-cased) email
EMPLOYEES_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees_by_email (
    email TEXT,
    company_id UUID,
    employee_id UUID,
    PRIMARY KEY (email, company_id, employee_id)
)
"""

# Lookup: pending invitation by token (row removed once the token is used)
EMPLOYEES_BY_INVITE_TOKEN_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees_by_invite_token (
    invite_token TEXT PRIMARY KEY,
    company_id UUID,
    employee_id UUID
)
"""

COMPANY_ACTIVITY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.company_activity (
    company_id UUID,
    activity_id TIMEUUID,
    type TEXT,
    performed_by UUID,
    details MAP<TEXT, TEXT>,
    created_at TIMESTAMP,
    PRIMARY KEY (company_id, activity_id)
) WITH CLUSTERING ORDER BY (activity_id DESC)
"""

COMPANY_ENROLLED_COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.company_enrolled_courses (
    company_id UUID,
    course_id UUID,
    course_title TEXT,
    enrolled_by UUID,
    employee_count INT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (company_id, course_id)
)
"""

COMPANY_TABLES_CQL = [
    COMPANY_TABLE_CQL,
    COMPANY_ADMINS_TABLE_CQL,
    EMPLOYEES_TABLE_CQL,
    EMPLOYEES_BY_EMAIL_TABLE_CQL,
    EMPLOYEES_BY_INVITE_TOKEN_TABLE_CQL,
    COMPANY_ACTIVITY_TABLE_CQL,
    COMPANY_ENROLLED_COURSES_TABLE_CQL,
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


# ==============================================================================
# Entity Classes
# ==============================================================================


class Company:
    """Company account.

    Attributes:
        id: Company UUID
        name: Display name
        owner_id: User who created the company
        employee_count: Invited + active employees (recomputed, never incremented)
        purchased_masterclasses: Course IDs new employees are auto-enrolled in
    """

    def __init__(
        self,
        name: str,
        owner_id: UUID,
        id: UUID | None = None,
        employee_count: int = 0,
        purchased_masterclasses: list[UUID] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name
        self.owner_id = owner_id
        self.employee_count = employee_count
        self.purchased_masterclasses = list(purchased_masterclasses or [])
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Company":
        return cls(
            id=row.id,
            name=row.name or "",
            owner_id=row.owner_id,
            employee_count=row.employee_count or 0,
            purchased_masterclasses=row.purchased_masterclasses,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Company {self.name} ({self.employee_count} employees)>"


class CompanyAdmin:
    """Admin membership with permissions."""

    def __init__(
        self,
        company_id: UUID,
        user_id: UUID,
        role: str = CompanyRole.ADMIN.value,
        can_manage_employees: bool = True,
        can_enroll_courses: bool = True,
        created_at: datetime | None = None,
    ):
        self.company_id = company_id
        self.user_id = user_id
        self.role = role
        self.can_manage_employees = can_manage_employees
        self.can_enroll_courses = can_enroll_courses
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "CompanyAdmin":
        return cls(
            company_id=row.company_id,
            user_id=row.user_id,
            role=row.role or CompanyRole.ADMIN.value,
            can_manage_employees=bool(row.can_manage_employees),
            can_enroll_courses=bool(row.can_enroll_courses),
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<CompanyAdmin {self.user_id} @ {self.company_id} ({self.role})>"


class Employee:
    """Employee record: an invitation that becomes a membership.

    Lifecycle: invited -> active (registration or invite acceptance) -> left.
    An invitation can also go straight from invited to left (cancelled).
    """

    def __init__(
        self,
        company_id: UUID,
        email: str,
        employee_id: UUID | None = None,
        user_id: UUID | None = None,
        first_name: str = "",
        last_name: str = "",
        full_name: str | None = None,
        job_title: str | None = None,
        status: str = EmployeeStatus.INVITED.value,
        invite_token: str | None = None,
        invite_expires_at: datetime | None = None,
        invited_by: UUID | None = None,
        invited_at: datetime | None = None,
        invite_accepted_at: datetime | None = None,
        removed_at: datetime | None = None,
        removed_by: UUID | None = None,
        enrolled_masterclasses: list[UUID] | None = None,
    ):
        self.company_id = company_id
        self.employee_id = employee_id or uuid4()
        self.user_id = user_id
        self.email = email.lower()
        self.first_name = first_name
        self.last_name = last_name
        self.full_name = full_name or f"{first_name} {last_name}".strip()
        self.job_title = job_title
        self.status = status
        self.invite_token = invite_token
        self.invite_expires_at = ensure_utc_aware(invite_expires_at)
        self.invited_by = invited_by
        self.invited_at = ensure_utc_aware(invited_at)
        self.invite_accepted_at = ensure_utc_aware(invite_accepted_at)
        self.removed_at = ensure_utc_aware(removed_at)
        self.removed_by = removed_by
        self.enrolled_masterclasses = list(enrolled_masterclasses or [])

    def is_invite_expired(self, now: datetime | None = None) -> bool:
        if self.invite_expires_at is None:
            return False
        return self.invite_expires_at < (now or datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "Employee":
        return cls(
            company_id=row.company_id,
            employee_id=row.employee_id,
            user_id=row.user_id,
            email=row.email or "",
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            full_name=row.full_name,
            job_title=row.job_title,
            status=row.status or EmployeeStatus.INVITED.value,
            invite_token=row.invite_token,
            invite_expires_at=row.invite_expires_at,
            invited_by=row.invited_by,
            invited_at=row.invited_at,
            invite_accepted_at=row.invite_accepted_at,
            removed_at=row.removed_at,
            removed_by=row.removed_by,
            enrolled_masterclasses=row.enrolled_masterclasses,
        )

    def __repr__(self) -> str:
        return f"<Employee {self.email} ({self.status})>"


class CompanyActivity:
    def __init__(
        self,
        company_id: UUID,
        activity_id: UUID,
        type: str,
        performed_by: UUID | None = None,
        details: dict[str, str] | None = None,
        created_at: datetime | None = None,
    ):
        self.company_id = company_id
        self.activity_id = activity_id
        self.type = type
        self.performed_by = performed_by
        self.details = dict(details or {})
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "CompanyActivity":
        return cls(
            company_id=row.company_id,
            activity_id=row.activity_id,
            type=row.type,
            performed_by=row.performed_by,
            details=row.details,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<CompanyActivity {self.type} @ {self.company_id}>"


class CompanyEnrolledCourse:
    """A course the company enrolled its employees in."""

    def __init__(
        self,
        company_id: UUID,
        course_id: UUID,
        course_title: str = "",
        enrolled_by: UUID | None = None,
        employee_count: int = 0,
        enrolled_at: datetime | None = None,
    ):
        self.company_id = company_id
        self.course_id = course_id
        self.course_title = course_title
        self.enrolled_by = enrolled_by
        self.employee_count = employee_count
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "CompanyEnrolledCourse":
        return cls(
            company_id=row.company_id,
            course_id=row.course_id,
            course_title=row.course_title or "",
            enrolled_by=row.enrolled_by,
            employee_count=row.employee_count or 0,
            enrolled_at=row.enrolled_at,
        )

    def __repr__(self) -> str:
        return f"<CompanyEnrolledCourse {self.course_title} @ {self.company_id}>"
