"""Company management API endpoints.

Provides routes for:
- Company creation and lookup
- Employee invitations: add, verify, accept, link by e-mail
- Employee listing, removal and progress detail
- Company-wide course enrollment, dashboard and activity log
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import AdminUser, CurrentUser
from src.auth.permissions import is_admin
from src.core.schemas import MessageResponse

from .dependencies import CompanyServiceDep, handle_company_error
from .models import EmployeeStatus
from .schemas import (
    AcceptInviteRequest,
    AcceptInviteResponse,
    ActivityListResponse,
    ActivityResponse,
    AddEmployeeRequest,
    AddEmployeeResponse,
    CompanyDashboardResponse,
    CompanyEnrollRequest,
    CompanyEnrollResponse,
    CompanyResponse,
    CreateCompanyRequest,
    EmployeeLinkResponse,
    EmployeeListResponse,
    EmployeeProgressDetailResponse,
    EmployeeResponse,
    EnrolledCourseListResponse,
    EnrolledCourseResponse,
    InviteVerificationResponse,
)
from .service import CompanyError, CompanyNotFoundError, CompanyPermissionError


router = APIRouter(prefix="/v1/companies", tags=["companies"])


# ==============================================================================
# Company
# ==============================================================================


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    data: CreateCompanyRequest,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> CompanyResponse:
    """Create a company owned by the current user."""
    try:
        company = await company_service.create_company(user.id, data)
    except CompanyError as e:
        raise handle_company_error(e) from e
    return CompanyResponse.from_entity(company)


@router.post("/link", response_model=EmployeeLinkResponse)
async def link_current_user(
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> EmployeeLinkResponse:
    """Join the company that invited the current user's e-mail, if any."""
    return await company_service.link_employee_by_email(user.id, user.email)


@router.get("/invites/{token}", response_model=InviteVerificationResponse)
async def verify_invite(
    token: str,
    company_service: CompanyServiceDep,
) -> InviteVerificationResponse:
    """Preview an invitation (public)."""
    try:
        return await company_service.verify_employee_invite(token)
    except CompanyError as e:
        raise handle_company_error(e) from e


@router.post("/invites/accept", response_model=AcceptInviteResponse)
async def accept_invite(
    data: AcceptInviteRequest,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> AcceptInviteResponse:
    try:
        return await company_service.accept_employee_invite(user.id, data.token)
    except CompanyError as e:
        raise handle_company_error(e) from e


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: UUID,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> CompanyResponse:
    """Get a company (its members and platform admins)."""
    if user.company_id != company_id and not is_admin(user.role):
        raise handle_company_error(
            CompanyPermissionError("You are not a member of this company")
        )
    company = await company_service.get_company(company_id)
    if not company:
        raise handle_company_error(CompanyNotFoundError())
    return CompanyResponse.from_entity(company)


@router.post("/{company_id}/reconcile", response_model=CompanyResponse)
async def reconcile_employee_count(
    company_id: UUID,
    company_service: CompanyServiceDep,
    admin: AdminUser,
) -> CompanyResponse:
    """Recompute employee_count from employee records (ADMIN only)."""
    company = await company_service.get_company(company_id)
    if not company:
        raise handle_company_error(CompanyNotFoundError())
    company.employee_count = await company_service.reconcile_employee_count(company_id)
    return CompanyResponse.from_entity(company)


# ==============================================================================
# Employees
# ==============================================================================


@router.post(
    "/{company_id}/employees",
    response_model=AddEmployeeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_employee(
    company_id: UUID,
    data: AddEmployeeRequest,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> AddEmployeeResponse:
    """Invite an employee (company admins with employee management)."""
    try:
        return await company_service.add_employee(user.id, company_id, data)
    except CompanyError as e:
        raise handle_company_error(e) from e


@router.get("/{company_id}/employees", response_model=EmployeeListResponse)
async def list_employees(
    company_id: UUID,
    company_service: CompanyServiceDep,
    user: CurrentUser,
    status_filter: EmployeeStatus | None = None,
) -> EmployeeListResponse:
    try:
        employees = await company_service.list_employees(
            user.id, company_id, status=status_filter
        )
    except CompanyError as e:
        raise handle_company_error(e) from e
    items = [EmployeeResponse.from_entity(e) for e in employees]
    return EmployeeListResponse(items=items, total=len(items))


@router.delete(
    "/{company_id}/employees/{employee_id}", response_model=MessageResponse
)
async def remove_employee(
    company_id: UUID,
    employee_id: UUID,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    """Cancel an invitation or remove an active employee."""
    try:
        message = await company_service.remove_employee(user.id, company_id, employee_id)
    except CompanyError as e:
        raise handle_company_error(e) from e
    return MessageResponse(message=message)


@router.get(
    "/{company_id}/employees/{employee_id}/progress",
    response_model=EmployeeProgressDetailResponse,
)
async def get_employee_progress_detail(
    company_id: UUID,
    employee_id: UUID,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> EmployeeProgressDetailResponse:
    """Progress of one employee in the company's courses (admins only)."""
    try:
        return await company_service.get_employee_progress_detail(
            user.id, company_id, employee_id
        )
    except CompanyError as e:
        raise handle_company_error(e) from e


# ==============================================================================
# Enrollment, Dashboard, Activity
# ==============================================================================


@router.post("/{company_id}/enrollments", response_model=CompanyEnrollResponse)
async def enroll_company_in_course(
    company_id: UUID,
    data: CompanyEnrollRequest,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> CompanyEnrollResponse:
    """Enroll all active employees in a course."""
    try:
        return await company_service.enroll_company_in_course(
            user.id, company_id, data.course_id
        )
    except CompanyError as e:
        raise handle_company_error(e) from e


@router.get("/{company_id}/enrollments", response_model=EnrolledCourseListResponse)
async def get_company_enrolled_courses(
    company_id: UUID,
    company_service: CompanyServiceDep,
    user: CurrentUser,
) -> EnrolledCourseListResponse:
    try:
        courses = await company_service.get_company_enrolled_courses(user.id, company_id)
    except CompanyError as e:
        raise handle_company_error(e) from e
    return EnrolledCourseListResponse(
        courses=[EnrolledCourseResponse.from_entity(c) for c in courses]
    )


@router.get("/{company_id}/dashboard", response_model=CompanyDashboardResponse)
async def get_company_dashboard(
    company_id: UUID,
    company_service: CompanyServiceDep,
    user: CurrentUser,
    course_id: UUID | None = None,
) -> CompanyDashboardResponse:
    try:
        return await company_service.get_company_dashboard(user.id, company_id, course_id)
    except CompanyError as e:
        raise handle_company_error(e) from e


@router.get("/{company_id}/activity", response_model=ActivityListResponse)
async def list_activity(
    company_id: UUID,
    company_service: CompanyServiceDep,
    user: CurrentUser,
    limit: int = 50,
) -> ActivityListResponse:
    try:
        activity = await company_service.list_activity(user.id, company_id, limit)
    except CompanyError as e:
        raise handle_company_error(e) from e
    items = [ActivityResponse.from_entity(a) for a in activity]
    return ActivityListResponse(items=items, total=len(items))
