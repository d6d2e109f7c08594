"""Company management service layer.

Business logic for:
- Company creation and admin permissions
- Employee invitations (add, verify, accept, link on registration)
- Employee removal
- Company-wide course enrollment and progress reporting

Side effects that follow a committed state change (claims, profile updates,
auto-enrollment, activity log, invitation e-mail) are best-effort: failures
are logged and the operation still succeeds.
"""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from cassandra.util import uuid_from_time

from src.auth.permissions import (
    UserRole,
    role_after_company_exit,
    role_after_company_join,
)
from src.core.errors import (
    ALREADY_EXISTS,
    FAILED_PRECONDITION,
    NOT_FOUND,
    PERMISSION_DENIED,
    ServiceError,
)
from src.email.schemas import EmployeeInvitationEmail
from src.progress.calculations import calculate_course_progress, round_half_up
from src.progress.service import AlreadyEnrolledError

from .models import (
    COUNTED_STATUSES,
    ActivityType,
    Company,
    CompanyActivity,
    CompanyAdmin,
    CompanyEnrolledCourse,
    CompanyRole,
    Employee,
    EmployeeStatus,
)
from .schemas import (
    AcceptInviteResponse,
    AddEmployeeRequest,
    AddEmployeeResponse,
    CompanyDashboardResponse,
    CompanyEnrollResponse,
    CreateCompanyRequest,
    DashboardCourse,
    DashboardStats,
    EmployeeCourseProgress,
    EmployeeLinkResponse,
    EmployeeProgress,
    EmployeeProgressDetailResponse,
    EmployeeResponse,
    InviteVerificationResponse,
)
from .security import build_invite_url, generate_invite_token, hash_invite_token


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.service import AuthService
    from src.catalog.service import CatalogService
    from src.config.settings import Settings
    from src.email.service import EmailService
    from src.progress.service import ProgressService


logger = structlog.get_logger(__name__)

# Enrolled employees idle for longer than this are flagged at-risk
AT_RISK_AFTER_DAYS = 7


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CompanyError(ServiceError):
    """Base company error."""


class CompanyNotFoundError(CompanyError):
    def __init__(self, message: str = "Company not found"):
        super().__init__(message, NOT_FOUND)


class EmployeeNotFoundError(CompanyError):
    def __init__(self, message: str = "Employee not found"):
        super().__init__(message, NOT_FOUND)


class CompanyCourseNotFoundError(CompanyError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, NOT_FOUND)


class CompanyPermissionError(CompanyError):
    def __init__(self, message: str = "You are not an admin of this company"):
        super().__init__(message, PERMISSION_DENIED)


class EmployeeExistsError(CompanyError):
    def __init__(
        self, message: str = "An employee with this email already exists in your company"
    ):
        super().__init__(message, ALREADY_EXISTS)


class AlreadyInCompanyError(CompanyError):
    def __init__(self, message: str = "You already belong to a company"):
        super().__init__(message, ALREADY_EXISTS)


class InviteInvalidError(CompanyError):
    def __init__(self, message: str = "Invalid invite token"):
        super().__init__(message, NOT_FOUND)


class InviteUnavailableError(CompanyError):
    """Invite expired or already used."""

    def __init__(self, message: str):
        super().__init__(message, FAILED_PRECONDITION)


class OwnerRemovalError(CompanyError):
    def __init__(self, message: str = "Cannot remove the company owner"):
        super().__init__(message, FAILED_PRECONDITION)


# ==============================================================================
# Company Service
# ==============================================================================


class CompanyService:
    """Service for companies, employees and company-wide enrollment."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        settings: "Settings",
        auth_service: "AuthService",
        progress_service: "ProgressService",
        catalog_service: "CatalogService",
        email_service: "EmailService | None" = None,
    ):
        """Initialize with Cassandra session and collaborating services."""
        self.session = session
        self.keyspace = keyspace
        self.settings = settings
        self.auth_service = auth_service
        self.progress_service = progress_service
        self.catalog_service = catalog_service
        self.email_service = email_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        # Companies
        self._get_company = self.session.prepare(
            f"SELECT * FROM {ks}.companies WHERE id = ?"
        )
        self._upsert_company = self.session.prepare(f"""
            INSERT INTO {ks}.companies
            (id, name, owner_id, employee_count, purchased_masterclasses,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_employee_count = self.session.prepare(f"""
            UPDATE {ks}.companies SET employee_count = ?, updated_at = ? WHERE id = ?
        """)

        # Admins
        self._get_admin = self.session.prepare(
            f"SELECT * FROM {ks}.company_admins WHERE company_id = ? AND user_id = ?"
        )
        self._insert_admin = self.session.prepare(f"""
            INSERT INTO {ks}.company_admins
            (company_id, user_id, role, can_manage_employees, can_enroll_courses,
             created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        # Employees
        self._get_employee = self.session.prepare(
            f"SELECT * FROM {ks}.employees WHERE company_id = ? AND employee_id = ?"
        )
        self._list_employees = self.session.prepare(
            f"SELECT * FROM {ks}.employees WHERE company_id = ?"
        )
        self._upsert_employee = self.session.prepare(f"""
            INSERT INTO {ks}.employees
            (company_id, employee_id, user_id, email, first_name, last_name,
             full_name, job_title, status, invite_token, invite_expires_at,
             invited_by, invited_at, invite_accepted_at, removed_at, removed_by,
             enrolled_masterclasses)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_employees_by_email = self.session.prepare(
            f"SELECT * FROM {ks}.employees_by_email WHERE email = ?"
        )
        self._insert_employee_email = self.session.prepare(f"""
            INSERT INTO {ks}.employees_by_email (email, company_id, employee_id)
            VALUES (?, ?, ?)
        """)
        self._get_invite_token = self.session.prepare(
            f"SELECT * FROM {ks}.employees_by_invite_token WHERE invite_token = ?"
        )
        self._insert_invite_token = self.session.prepare(f"""
            INSERT INTO {ks}.employees_by_invite_token
            (invite_token, company_id, employee_id)
            VALUES (?, ?, ?)
        """)
        self._delete_invite_token = self.session.prepare(
            f"DELETE FROM {ks}.employees_by_invite_token WHERE invite_token = ?"
        )

        # Activity
        self._insert_activity = self.session.prepare(f"""
            INSERT INTO {ks}.company_activity
            (company_id, activity_id, type, performed_by, details, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._list_activity = self.session.prepare(
            f"SELECT * FROM {ks}.company_activity WHERE company_id = ? LIMIT ?"
        )

        # Company enrolled courses
        self._upsert_enrolled_course = self.session.prepare(f"""
            INSERT INTO {ks}.company_enrolled_courses
            (company_id, course_id, course_title, enrolled_by, employee_count,
             enrolled_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._list_enrolled_courses = self.session.prepare(
            f"SELECT * FROM {ks}.company_enrolled_courses WHERE company_id = ?"
        )

    # ==========================================================================
    # Data Access
    # ==========================================================================

    async def get_company(self, company_id: UUID) -> Company | None:
        result = await self.session.aexecute(self._get_company, [company_id])
        row = result.one()
        return Company.from_row(row) if row else None

    async def save_company(self, company: Company) -> None:
        await self.session.aexecute(
            self._upsert_company,
            [
                company.id,
                company.name,
                company.owner_id,
                company.employee_count,
                company.purchased_masterclasses,
                company.created_at,
                company.updated_at,
            ],
        )

    async def get_admin(self, company_id: UUID, user_id: UUID) -> CompanyAdmin | None:
        result = await self.session.aexecute(self._get_admin, [company_id, user_id])
        row = result.one()
        return CompanyAdmin.from_row(row) if row else None

    async def get_employee(self, company_id: UUID, employee_id: UUID) -> Employee | None:
        result = await self.session.aexecute(
            self._get_employee, [company_id, employee_id]
        )
        row = result.one()
        return Employee.from_row(row) if row else None

    async def list_company_employees(self, company_id: UUID) -> list[Employee]:
        rows = await self.session.aexecute(self._list_employees, [company_id])
        return [Employee.from_row(row) for row in rows]

    async def save_employee(self, employee: Employee) -> None:
        await self.session.aexecute(
            self._upsert_employee,
            [
                employee.company_id,
                employee.employee_id,
                employee.user_id,
                employee.email,
                employee.first_name,
                employee.last_name,
                employee.full_name,
                employee.job_title,
                employee.status,
                employee.invite_token,
                employee.invite_expires_at,
                employee.invited_by,
                employee.invited_at,
                employee.invite_accepted_at,
                employee.removed_at,
                employee.removed_by,
                employee.enrolled_masterclasses,
            ],
        )

    async def find_employees_by_email(self, email: str) -> list[Employee]:
        """All employee records (any company, any status) for an e-mail."""
        rows = await self.session.aexecute(self._get_employees_by_email, [email.lower()])
        employees = []
        for row in rows:
            employee = await self.get_employee(row.company_id, row.employee_id)
            if employee:
                employees.append(employee)
        return employees

    async def find_employee_by_token(self, token: str) -> Employee | None:
        result = await self.session.aexecute(
            self._get_invite_token, [hash_invite_token(token)]
        )
        row = result.one()
        if not row:
            return None
        return await self.get_employee(row.company_id, row.employee_id)

    async def _clear_invite_token(self, employee: Employee) -> None:
        if employee.invite_token:
            await self.session.aexecute(self._delete_invite_token, [employee.invite_token])
        employee.invite_token = None
        employee.invite_expires_at = None

    async def log_activity(
        self,
        company_id: UUID,
        activity_type: ActivityType,
        performed_by: UUID | None = None,
        **details: str | None,
    ) -> None:
        """Append to the company activity log."""
        now = datetime.now(UTC)
        await self.session.aexecute(
            self._insert_activity,
            [
                company_id,
                uuid_from_time(now),
                activity_type.value,
                performed_by,
                {k: str(v) for k, v in details.items() if v is not None},
                now,
            ],
        )

    async def list_activity(
        self, caller_id: UUID, company_id: UUID, limit: int = 50
    ) -> list[CompanyActivity]:
        """Most recent activity first (company admins only)."""
        await self._require_admin(company_id, caller_id)
        rows = await self.session.aexecute(self._list_activity, [company_id, limit])
        return [CompanyActivity.from_row(row) for row in rows]

    async def reconcile_employee_count(self, company_id: UUID) -> int:
        """Recompute employee_count (invited + active) from employee records."""
        employees = await self.list_company_employees(company_id)
        count = sum(1 for e in employees if e.status in COUNTED_STATUSES)
        await self.session.aexecute(
            self._update_employee_count, [count, datetime.now(UTC), company_id]
        )
        return count

    async def _require_admin(
        self,
        company_id: UUID,
        user_id: UUID,
        can_manage_employees: bool = False,
        can_enroll_courses: bool = False,
    ) -> CompanyAdmin:
        """Check admin membership (and optional permissions).

        Raises:
            CompanyPermissionError: If not an admin or permission missing
        """
        admin = await self.get_admin(company_id, user_id)
        if admin is None:
            raise CompanyPermissionError
        if can_manage_employees and not admin.can_manage_employees:
            raise CompanyPermissionError("No permission to manage employees")
        if can_enroll_courses and not admin.can_enroll_courses:
            raise CompanyPermissionError("No permission to enroll courses")
        return admin

    # ==========================================================================
    # Company
    # ==========================================================================

    async def create_company(self, owner_id: UUID, data: CreateCompanyRequest) -> Company:
        """Create a company owned by the caller.

        The owner becomes a company admin with every permission.

        Raises:
            AlreadyInCompanyError: If the caller already belongs to a company
        """
        owner = await self.auth_service.get_user_by_id(owner_id)
        if owner and owner.company_id:
            raise AlreadyInCompanyError

        company = Company(name=data.name, owner_id=owner_id)
        await self.save_company(company)
        await self.session.aexecute(
            self._insert_admin,
            [company.id, owner_id, CompanyRole.OWNER.value, True, True, company.created_at],
        )

        role = role_after_company_join(
            owner.role if owner else None, UserRole.COMPANY_ADMIN
        )
        await self.auth_service.set_claims(
            owner_id, {"role": role, "company_id": company.id}
        )
        await self.auth_service.update_company_membership(
            owner_id, company.id, CompanyRole.OWNER.value, role
        )

        try:
            await self.log_activity(
                company.id, ActivityType.COMPANY_CREATED, owner_id, name=company.name
            )
        except Exception:
            logger.exception("company_activity_log_failed", company_id=str(company.id))

        logger.info("company_created", company_id=str(company.id), owner_id=str(owner_id))
        return company

    # ==========================================================================
    # Invitations
    # ==========================================================================

    async def add_employee(
        self, caller_id: UUID, company_id: UUID, data: AddEmployeeRequest
    ) -> AddEmployeeResponse:
        """Invite an employee by e-mail.

        Raises:
            CompanyPermissionError: Caller cannot manage employees
            CompanyNotFoundError: Company doesn't exist
            EmployeeExistsError: E-mail already invited or active in the company
        """
        await self._require_admin(company_id, caller_id, can_manage_employees=True)

        company = await self.get_company(company_id)
        if not company:
            raise CompanyNotFoundError

        email = str(data.email).lower()
        existing = await self.find_employees_by_email(email)
        if any(
            e.company_id == company_id and e.status != EmployeeStatus.LEFT.value
            for e in existing
        ):
            raise EmployeeExistsError

        token = generate_invite_token()
        now = datetime.now(UTC)
        employee = Employee(
            company_id=company_id,
            email=email,
            first_name=data.first_name,
            last_name=data.last_name,
            job_title=data.job_title,
            invite_token=hash_invite_token(token),
            invite_expires_at=now + timedelta(days=self.settings.invite_expiry_days),
            invited_by=caller_id,
            invited_at=now,
        )
        await self.save_employee(employee)
        await self.session.aexecute(
            self._insert_employee_email, [email, company_id, employee.employee_id]
        )
        await self.session.aexecute(
            self._insert_invite_token,
            [employee.invite_token, company_id, employee.employee_id],
        )
        await self.reconcile_employee_count(company_id)

        logger.info(
            "employee_invited",
            company_id=str(company_id),
            employee_id=str(employee.employee_id),
        )

        await self._send_invitation(employee, company, token)

        try:
            await self.log_activity(
                company_id,
                ActivityType.EMPLOYEE_INVITED,
                caller_id,
                employee_id=str(employee.employee_id),
                employee_email=email,
            )
        except Exception:
            logger.exception("company_activity_log_failed", company_id=str(company_id))

        return AddEmployeeResponse(
            employee_id=employee.employee_id,
            invite_token=token,
            message=f"Invitation sent to {email}",
        )

    async def _send_invitation(self, employee: Employee, company: Company, token: str) -> None:
        if self.email_service is None:
            logger.warning("invitation_email_skipped", reason="email_not_configured")
            return

        invite_url = build_invite_url(self.settings.app_url, token, employee.email)
        try:
            result = await self.email_service.send_employee_invitation(
                EmployeeInvitationEmail(
                    email=employee.email,
                    first_name=employee.first_name,
                    company_name=company.name,
                    invite_url=invite_url,
                    expiry_days=self.settings.invite_expiry_days,
                )
            )
        except Exception:
            logger.exception(
                "invitation_email_failed", employee_id=str(employee.employee_id)
            )
            return
        if not result.success:
            logger.warning(
                "invitation_email_not_delivered",
                employee_id=str(employee.employee_id),
                error=result.error,
            )

    async def verify_employee_invite(self, token: str) -> InviteVerificationResponse:
        """Preview an invitation without consuming it.

        Raises:
            InviteInvalidError: Unknown token
            InviteUnavailableError: Expired or already used
        """
        employee = await self.find_employee_by_token(token)
        if employee is None:
            raise InviteInvalidError
        if employee.is_invite_expired():
            raise InviteUnavailableError("Invite has expired")
        if employee.status != EmployeeStatus.INVITED.value:
            raise InviteUnavailableError("Invite has already been used")

        company = await self.get_company(employee.company_id)
        return InviteVerificationResponse(
            company_name=company.name if company else "Unknown Company",
            employee_email=employee.email,
            employee_name=employee.full_name,
        )

    async def accept_employee_invite(self, user_id: UUID, token: str) -> AcceptInviteResponse:
        """Accept an invitation with its token as an already registered user.

        The token is the credential: the user's e-mail may differ from the
        invited one.
        """
        employee = await self.find_employee_by_token(token)
        if employee is None:
            raise InviteInvalidError
        if employee.status != EmployeeStatus.INVITED.value:
            raise InviteUnavailableError("Invite has already been used")
        if employee.is_invite_expired():
            raise InviteUnavailableError("Invite has expired")

        user = await self.auth_service.get_user_by_id(user_id)
        if user and user.company_id and user.company_id != employee.company_id:
            raise AlreadyInCompanyError

        company = await self.get_company(employee.company_id)
        if company is None:
            raise CompanyNotFoundError

        await self._activate_employee(
            company,
            employee,
            user_id,
            joined_via="invite_link",
            current_role=user.role if user else None,
        )
        return AcceptInviteResponse(
            company_id=company.id, message="Invite accepted successfully"
        )

    async def link_employee_by_email(self, user_id: UUID, email: str) -> EmployeeLinkResponse:
        """Link a newly registered user to a pending invitation for their e-mail.

        Never raises: every failure is reported as ``linked=False``.
        """
        logger.info("employee_link_check", user_id=str(user_id))

        try:
            candidates = await self.find_employees_by_email(email)
            employee = next(
                (e for e in candidates if e.status == EmployeeStatus.INVITED.value), None
            )
            if employee is None:
                return EmployeeLinkResponse(linked=False, message="No pending invite found")

            if employee.is_invite_expired():
                logger.info(
                    "employee_invite_expired", employee_id=str(employee.employee_id)
                )
                return EmployeeLinkResponse(linked=False, message="Invite has expired")

            company = await self.get_company(employee.company_id)
            company_name = company.name if company else "Unknown Company"
            user = await self.auth_service.get_user_by_id(user_id)

            await self._activate_employee(
                company,
                employee,
                user_id,
                joined_via="registration",
                current_role=user.role if user else None,
            )
        except Exception as e:
            logger.exception("employee_link_failed", user_id=str(user_id))
            return EmployeeLinkResponse(
                linked=False, message=str(e) or "Error linking employee"
            )

        logger.info(
            "employee_linked",
            user_id=str(user_id),
            company_id=str(employee.company_id),
            employee_id=str(employee.employee_id),
        )
        return EmployeeLinkResponse(
            linked=True,
            company_id=employee.company_id,
            company_name=company_name,
            employee_id=employee.employee_id,
            message=f"Successfully joined {company_name}",
        )

    async def _activate_employee(
        self,
        company: Company | None,
        employee: Employee,
        user_id: UUID,
        joined_via: str,
        current_role: str | None = None,
    ) -> None:
        """Turn an invitation into an active membership.

        The employee write is the committed step; everything after it is
        best-effort. ``current_role`` is the user's role before joining.
        """
        company_id = employee.company_id

        employee.user_id = user_id
        employee.status = EmployeeStatus.ACTIVE.value
        employee.invite_accepted_at = datetime.now(UTC)
        await self._clear_invite_token(employee)
        await self.save_employee(employee)

        try:
            await self.reconcile_employee_count(company_id)
        except Exception:
            logger.exception("employee_count_update_failed", company_id=str(company_id))

        role = role_after_company_join(current_role)
        try:
            await self.auth_service.set_claims(
                user_id, {"role": role, "company_id": company_id}
            )
        except Exception:
            logger.exception("employee_claims_failed", user_id=str(user_id))

        try:
            await self.auth_service.update_company_membership(
                user_id, company_id, CompanyRole.EMPLOYEE.value, role
            )
        except Exception:
            logger.exception("employee_profile_update_failed", user_id=str(user_id))

        purchased = company.purchased_masterclasses if company else []
        if purchased:
            try:
                for course_id in purchased:
                    try:
                        await self.progress_service.enroll_user(
                            user_id, course_id, enrolled_by_company=company_id
                        )
                    except AlreadyEnrolledError:
                        pass
                employee.enrolled_masterclasses = list(purchased)
                await self.save_employee(employee)
                logger.info(
                    "employee_auto_enrolled",
                    user_id=str(user_id),
                    course_count=len(purchased),
                )
            except Exception:
                logger.exception("employee_auto_enroll_failed", user_id=str(user_id))

        try:
            await self.log_activity(
                company_id,
                ActivityType.EMPLOYEE_JOINED,
                user_id,
                employee_id=str(employee.employee_id),
                employee_name=employee.full_name,
                joined_via=joined_via,
            )
        except Exception:
            logger.exception("company_activity_log_failed", company_id=str(company_id))

    # ==========================================================================
    # Employees
    # ==========================================================================

    async def list_employees(
        self,
        caller_id: UUID,
        company_id: UUID,
        status: EmployeeStatus | None = None,
    ) -> list[Employee]:
        """List employees (company admins only), optionally by status."""
        await self._require_admin(company_id, caller_id)
        employees = await self.list_company_employees(company_id)
        if status is not None:
            employees = [e for e in employees if e.status == status.value]
        return sorted(employees, key=lambda e: e.full_name.lower())

    async def remove_employee(
        self, caller_id: UUID, company_id: UUID, employee_id: UUID
    ) -> str:
        """Cancel an invitation or remove an active employee.

        Returns:
            Human-readable outcome message

        Raises:
            CompanyPermissionError: Caller cannot manage employees
            EmployeeNotFoundError / CompanyNotFoundError: Missing records
            OwnerRemovalError: Target is the company owner
        """
        await self._require_admin(company_id, caller_id, can_manage_employees=True)

        employee = await self.get_employee(company_id, employee_id)
        if employee is None:
            raise EmployeeNotFoundError

        company = await self.get_company(company_id)
        if company is None:
            raise CompanyNotFoundError

        if employee.user_id and employee.user_id == company.owner_id:
            raise OwnerRemovalError

        previous_status = employee.status
        if previous_status == EmployeeStatus.LEFT.value:
            return "Employee has already been removed"

        now = datetime.now(UTC)
        employee.status = EmployeeStatus.LEFT.value
        employee.removed_at = now
        employee.removed_by = caller_id
        if previous_status == EmployeeStatus.INVITED.value:
            await self._clear_invite_token(employee)
        await self.save_employee(employee)

        if previous_status == EmployeeStatus.ACTIVE.value and employee.user_id:
            await self._detach_user(employee.user_id)

        await self.reconcile_employee_count(company_id)

        cancelled = previous_status == EmployeeStatus.INVITED.value
        try:
            await self.log_activity(
                company_id,
                ActivityType.INVITATION_CANCELLED if cancelled else ActivityType.EMPLOYEE_REMOVED,
                caller_id,
                employee_id=str(employee_id),
                employee_name=employee.full_name,
                employee_email=employee.email,
            )
        except Exception:
            logger.exception("company_activity_log_failed", company_id=str(company_id))

        logger.info(
            "employee_removed",
            company_id=str(company_id),
            employee_id=str(employee_id),
            previous_status=previous_status,
        )

        if cancelled:
            return f"Invitation for {employee.full_name} cancelled"
        return f"{employee.full_name} removed from the company"

    async def _detach_user(self, user_id: UUID) -> None:
        """Clear company fields from the user's profile and claims."""
        user = await self.auth_service.get_user_by_id(user_id)
        if user is None:
            return

        await self.auth_service.update_company_membership(
            user_id, None, None, role_after_company_exit(user.role)
        )

        try:
            claims = await self.auth_service.get_claims(user_id)
            claims.pop("company_id", None)
            claims.pop("company_role", None)
            if "role" in claims:
                claims["role"] = role_after_company_exit(claims["role"])
            await self.auth_service.set_claims(user_id, claims)
        except Exception:
            logger.exception("employee_claims_reset_failed", user_id=str(user_id))

    # ==========================================================================
    # Company Enrollment
    # ==========================================================================

    async def enroll_company_in_course(
        self, caller_id: UUID, company_id: UUID, course_id: UUID
    ) -> CompanyEnrollResponse:
        """Enroll every active employee in a course.

        Employees already enrolled are counted, not re-enrolled. The course is
        also added to the company's purchased courses so future employees are
        auto-enrolled when they join.
        """
        company = await self.get_company(company_id)
        if company is None:
            raise CompanyNotFoundError

        await self._require_admin(company_id, caller_id, can_enroll_courses=True)

        course = await self.catalog_service.get_course(course_id)
        if course is None:
            raise CompanyCourseNotFoundError

        employees = await self.list_company_employees(company_id)
        user_ids = [
            e.user_id
            for e in employees
            if e.status == EmployeeStatus.ACTIVE.value and e.user_id
        ]
        if not user_ids:
            return CompanyEnrollResponse(
                enrolled_count=0,
                already_enrolled_count=0,
                message="No active employees to enroll",
            )

        enrolled_count = 0
        already_enrolled_count = 0
        for user_id in user_ids:
            if await self.progress_service.get_enrollment(user_id, course_id):
                already_enrolled_count += 1
                continue
            try:
                await self.progress_service.enroll_user(
                    user_id, course_id, enrolled_by_company=company_id
                )
            except AlreadyEnrolledError:
                already_enrolled_count += 1
                continue
            enrolled_count += 1

        await self.session.aexecute(
            self._upsert_enrolled_course,
            [
                company_id,
                course_id,
                course.title,
                caller_id,
                enrolled_count + already_enrolled_count,
                datetime.now(UTC),
            ],
        )

        if course_id not in company.purchased_masterclasses:
            company.purchased_masterclasses.append(course_id)
            company.updated_at = datetime.now(UTC)
            await self.save_company(company)

        try:
            await self.log_activity(
                company_id,
                ActivityType.COURSE_ENROLLED,
                caller_id,
                course_id=str(course_id),
                course_title=course.title,
                enrolled_count=str(enrolled_count),
            )
        except Exception:
            logger.exception("company_activity_log_failed", company_id=str(company_id))

        logger.info(
            "company_enrolled_in_course",
            company_id=str(company_id),
            course_id=str(course_id),
            enrolled_count=enrolled_count,
            already_enrolled_count=already_enrolled_count,
        )

        message = f"{enrolled_count} employees enrolled in the course"
        if already_enrolled_count:
            message += f" ({already_enrolled_count} were already enrolled)"
        return CompanyEnrollResponse(
            enrolled_count=enrolled_count,
            already_enrolled_count=already_enrolled_count,
            message=message,
        )

    async def get_company_enrolled_courses(
        self, caller_id: UUID, company_id: UUID
    ) -> list[CompanyEnrolledCourse]:
        """Courses the company enrolled in (admins and active employees)."""
        if not await self.get_admin(company_id, caller_id):
            employees = await self.list_company_employees(company_id)
            if not any(
                e.user_id == caller_id and e.status == EmployeeStatus.ACTIVE.value
                for e in employees
            ):
                raise CompanyPermissionError("You are not a member of this company")

        rows = await self.session.aexecute(self._list_enrolled_courses, [company_id])
        return [CompanyEnrolledCourse.from_row(row) for row in rows]

    # ==========================================================================
    # Dashboard
    # ==========================================================================

    async def get_company_dashboard(
        self,
        caller_id: UUID,
        company_id: UUID,
        course_id: UUID | None = None,
    ) -> CompanyDashboardResponse:
        """Per-employee progress across the company's courses.

        Status per enrollment: completed at 100%, at-risk when idle for more
        than a week, active when progress or recent activity exists,
        otherwise not-started. At-risk rows sort first, then by progress.
        """
        company = await self.get_company(company_id)
        if company is None:
            raise CompanyNotFoundError
        await self._require_admin(company_id, caller_id)

        course_ids = [course_id] if course_id else list(company.purchased_masterclasses)
        courses: dict[UUID, DashboardCourse] = {}
        for cid in course_ids:
            course = await self.catalog_service.get_course(cid)
            if course:
                courses[cid] = DashboardCourse(
                    id=cid,
                    title=course.title,
                    total_lessons=await self.catalog_service.get_total_lessons(cid),
                )

        employees = [
            e
            for e in await self.list_company_employees(company_id)
            if e.status == EmployeeStatus.ACTIVE.value and e.user_id
        ]

        now = datetime.now(UTC)
        stats = DashboardStats(total_employees=len(employees))
        rows: list[EmployeeProgress] = []
        active_users: set[UUID] = set()
        total_progress = 0

        for employee in employees:
            for cid, course in courses.items():
                enrollment = await self.progress_service.get_enrollment(employee.user_id, cid)
                if enrollment is None:
                    continue

                completed = await self.progress_service.count_completed_lessons(
                    employee.user_id, cid
                )
                progress = enrollment.progress or calculate_course_progress(
                    completed, course.total_lessons
                )

                if enrollment.is_completed or progress >= 100:  # noqa: PLR2004
                    status = "completed"
                    stats.completed_courses += 1
                elif enrollment.last_accessed_at:
                    idle_days = (now - enrollment.last_accessed_at).days
                    if idle_days > AT_RISK_AFTER_DAYS:
                        status = "at-risk"
                        stats.at_risk_count += 1
                    else:
                        status = "active"
                        active_users.add(employee.user_id)
                elif progress > 0:
                    status = "active"
                    active_users.add(employee.user_id)
                else:
                    status = "not-started"

                rows.append(
                    EmployeeProgress(
                        employee_id=employee.employee_id,
                        employee_name=employee.full_name,
                        email=employee.email,
                        job_title=employee.job_title,
                        course_id=cid,
                        course_title=course.title,
                        completed_lessons=completed,
                        total_lessons=course.total_lessons,
                        progress_percent=progress,
                        status=status,
                        last_activity_at=enrollment.last_accessed_at,
                        enrolled_at=enrollment.enrolled_at,
                        days_active=(now - enrollment.enrolled_at).days,
                    )
                )
                total_progress += progress

        stats.active_employees = len(active_users)
        if rows:
            stats.average_progress = round_half_up(total_progress / len(rows))
        rows.sort(key=lambda r: (r.status != "at-risk", r.progress_percent))

        return CompanyDashboardResponse(
            company_name=company.name,
            stats=stats,
            employees=rows,
            courses=list(courses.values()),
        )

    async def get_employee_progress_detail(
        self,
        caller_id: UUID,
        company_id: UUID,
        employee_id: UUID,
    ) -> EmployeeProgressDetailResponse:
        """Progress of one employee in the courses the company enrolled them in.

        Employees who never joined (no user account yet) have no courses.
        Enrollments whose course no longer exists are skipped.

        Raises:
            CompanyPermissionError: If the caller is not a company admin
            EmployeeNotFoundError: If the employee is unknown
        """
        await self._require_admin(company_id, caller_id)

        employee = await self.get_employee(company_id, employee_id)
        if employee is None:
            raise EmployeeNotFoundError

        courses: list[EmployeeCourseProgress] = []
        if employee.user_id is not None:
            enrollments = await self.progress_service.list_user_enrollments(
                employee.user_id
            )
            for enrollment in enrollments:
                if enrollment.enrolled_by_company != company_id:
                    continue
                course = await self.catalog_service.get_course(enrollment.course_id)
                if course is None:
                    continue

                total = await self.catalog_service.get_total_lessons(course.id)
                completed = await self.progress_service.count_completed_lessons(
                    employee.user_id, course.id
                )
                courses.append(
                    EmployeeCourseProgress(
                        course_id=course.id,
                        course_title=course.title,
                        completed_lessons=completed,
                        total_lessons=total,
                        progress_percent=enrollment.progress,
                        status=enrollment.status,
                        enrolled_at=enrollment.enrolled_at,
                        last_activity_at=enrollment.last_accessed_at,
                    )
                )

        return EmployeeProgressDetailResponse(
            employee=EmployeeResponse.from_entity(employee),
            courses=courses,
        )
