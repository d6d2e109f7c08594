"""Pydantic schemas for company management.

Request and response models for:
- Company creation
- Employee invitations, onboarding and removal
- Company-wide course enrollment and the progress dashboard
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from src.core.schemas import ApiModel

from .models import (
    Company,
    CompanyActivity,
    CompanyEnrolledCourse,
    Employee,
    EmployeeStatus,
)


# ==============================================================================
# Company Schemas
# ==============================================================================


class CreateCompanyRequest(ApiModel):
    name: str = Field(..., min_length=2, max_length=200, description="Company name")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class CompanyResponse(ApiModel):
    id: UUID
    name: str
    owner_id: UUID
    employee_count: int
    purchased_masterclasses: list[UUID] = []
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Company) -> "CompanyResponse":
        return cls(
            id=entity.id,
            name=entity.name,
            owner_id=entity.owner_id,
            employee_count=entity.employee_count,
            purchased_masterclasses=entity.purchased_masterclasses,
            created_at=entity.created_at,
        )


# ==============================================================================
# Employee Schemas
# ==============================================================================


class AddEmployeeRequest(ApiModel):
    """Invite an employee by e-mail."""

    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    job_title: str | None = Field(None, max_length=200)

    @field_validator("first_name", "last_name", "job_title")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class AddEmployeeResponse(ApiModel):
    success: bool = True
    employee_id: UUID
    invite_token: str
    message: str


class EmployeeResponse(ApiModel):
    """Employee record (the invite token is never exposed)."""

    employee_id: UUID
    company_id: UUID
    user_id: UUID | None = None
    email: str
    first_name: str
    last_name: str
    full_name: str
    job_title: str | None = None
    status: EmployeeStatus
    invited_at: datetime | None = None
    invite_expires_at: datetime | None = None
    invite_accepted_at: datetime | None = None
    removed_at: datetime | None = None
    enrolled_masterclasses: list[UUID] = []

    @classmethod
    def from_entity(cls, entity: Employee) -> "EmployeeResponse":
        return cls(
            employee_id=entity.employee_id,
            company_id=entity.company_id,
            user_id=entity.user_id,
            email=entity.email,
            first_name=entity.first_name,
            last_name=entity.last_name,
            full_name=entity.full_name,
            job_title=entity.job_title,
            status=EmployeeStatus(entity.status),
            invited_at=entity.invited_at,
            invite_expires_at=entity.invite_expires_at,
            invite_accepted_at=entity.invite_accepted_at,
            removed_at=entity.removed_at,
            enrolled_masterclasses=entity.enrolled_masterclasses,
        )


class EmployeeListResponse(ApiModel):
    items: list[EmployeeResponse]
    total: int


class InviteVerificationResponse(ApiModel):
    """Preview shown on the invitation landing page."""

    valid: bool = True
    company_name: str
    employee_email: str
    employee_name: str


class AcceptInviteRequest(ApiModel):
    token: str = Field(..., min_length=1)


class AcceptInviteResponse(ApiModel):
    success: bool = True
    company_id: UUID
    message: str


class EmployeeLinkResponse(ApiModel):
    """Outcome of linking a newly registered user to a pending invitation."""

    linked: bool
    company_id: UUID | None = None
    company_name: str | None = None
    employee_id: UUID | None = None
    message: str


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class CompanyEnrollRequest(ApiModel):
    course_id: UUID


class CompanyEnrollResponse(ApiModel):
    success: bool = True
    enrolled_count: int
    already_enrolled_count: int
    message: str


class EnrolledCourseResponse(ApiModel):
    course_id: UUID
    course_title: str
    enrolled_by: UUID | None = None
    employee_count: int
    enrolled_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: CompanyEnrolledCourse) -> "EnrolledCourseResponse":
        return cls(
            course_id=entity.course_id,
            course_title=entity.course_title,
            enrolled_by=entity.enrolled_by,
            employee_count=entity.employee_count,
            enrolled_at=entity.enrolled_at,
        )


class EnrolledCourseListResponse(ApiModel):
    success: bool = True
    courses: list[EnrolledCourseResponse]


# ==============================================================================
# Dashboard Schemas
# ==============================================================================

EmployeeProgressStatus = Literal["active", "completed", "at-risk", "not-started"]


class EmployeeProgress(ApiModel):
    employee_id: UUID
    employee_name: str
    email: str
    job_title: str | None = None
    course_id: UUID
    course_title: str
    completed_lessons: int
    total_lessons: int
    progress_percent: int
    status: EmployeeProgressStatus
    last_activity_at: datetime | None = None
    enrolled_at: datetime | None = None
    days_active: int = 0


class DashboardStats(ApiModel):
    total_employees: int = 0
    active_employees: int = 0
    completed_courses: int = 0
    average_progress: int = 0
    at_risk_count: int = 0


class DashboardCourse(ApiModel):
    id: UUID
    title: str
    total_lessons: int


class CompanyDashboardResponse(ApiModel):
    success: bool = True
    company_name: str
    stats: DashboardStats
    employees: list[EmployeeProgress]
    courses: list[DashboardCourse]


class EmployeeCourseProgress(ApiModel):
    course_id: UUID
    course_title: str
    completed_lessons: int
    total_lessons: int
    progress_percent: int
    status: str
    enrolled_at: datetime | None = None
    last_activity_at: datetime | None = None


class EmployeeProgressDetailResponse(ApiModel):
    """One employee with progress in every course the company enrolled them in."""

    success: bool = True
    employee: EmployeeResponse
    courses: list[EmployeeCourseProgress]


class ActivityResponse(ApiModel):
    activity_id: UUID
    type: str
    performed_by: UUID | None = None
    details: dict[str, str] = {}
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: CompanyActivity) -> "ActivityResponse":
        return cls(
            activity_id=entity.activity_id,
            type=entity.type,
            performed_by=entity.performed_by,
            details=entity.details,
            created_at=entity.created_at,
        )


class ActivityListResponse(ApiModel):
    items: list[ActivityResponse]
    total: int
