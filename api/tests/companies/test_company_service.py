"""Tests for CompanyService.

Covers:
- Linking a newly registered user to a pending invitation
- Employee invitation and removal
- Company-wide course enrollment
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock, patch
from uuid import UUID, uuid4

import pytest

from src.auth.models import User
from src.auth.service import AuthService
from src.catalog.models import Course
from src.catalog.service import CatalogService
from src.companies.models import Company, CompanyAdmin, Employee, EmployeeStatus
from src.companies.schemas import AddEmployeeRequest, CreateCompanyRequest
from src.companies.security import hash_invite_token
from src.companies.service import (
    AlreadyInCompanyError,
    CompanyNotFoundError,
    CompanyPermissionError,
    CompanyService,
    EmployeeExistsError,
    EmployeeNotFoundError,
    InviteInvalidError,
    InviteUnavailableError,
    OwnerRemovalError,
)
from src.config.settings import get_settings
from src.email.service import EmailService
from src.progress.models import Enrollment
from src.progress.service import AlreadyEnrolledError, ProgressService


@pytest.fixture
def auth_service() -> Mock:
    service = Mock(spec=AuthService)
    service.get_user_by_id = AsyncMock(return_value=None)
    service.set_claims = AsyncMock()
    service.get_claims = AsyncMock(return_value={})
    service.update_company_membership = AsyncMock()
    return service


@pytest.fixture
def progress_service() -> Mock:
    service = Mock(spec=ProgressService)
    service.enroll_user = AsyncMock()
    service.get_enrollment = AsyncMock(return_value=None)
    return service


@pytest.fixture
def catalog_service() -> Mock:
    service = Mock(spec=CatalogService)
    service.get_course = AsyncMock(return_value=Course(title="Vezetői kommunikáció"))
    return service


@pytest.fixture
def email_service() -> Mock:
    service = Mock(spec=EmailService)
    service.send_employee_invitation = AsyncMock()
    return service


@pytest.fixture
def company_service(
    mock_session: Mock,
    auth_service: Mock,
    progress_service: Mock,
    catalog_service: Mock,
    email_service: Mock,
) -> CompanyService:
    service = CompanyService(
        session=mock_session,
        keyspace="test_keyspace",
        settings=get_settings(),
        auth_service=auth_service,
        progress_service=progress_service,
        catalog_service=catalog_service,
        email_service=email_service,
    )
    # Writes that fan out over stored rows are checked separately
    service.reconcile_employee_count = AsyncMock(return_value=1)
    service.log_activity = AsyncMock()
    service.save_employee = AsyncMock()
    service.save_company = AsyncMock()
    return service


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def company(owner_id: UUID) -> Company:
    return Company(name="Acme Kft.", owner_id=owner_id)


def make_employee(
    company: Company,
    status: EmployeeStatus = EmployeeStatus.INVITED,
    user_id: UUID | None = None,
    expires_in: timedelta = timedelta(days=3),
) -> Employee:
    return Employee(
        company_id=company.id,
        email="anna.kiss@example.com",
        first_name="Anna",
        last_name="Kiss",
        status=status.value,
        user_id=user_id,
        invite_token=hash_invite_token("raw-token")
        if status == EmployeeStatus.INVITED
        else None,
        invite_expires_at=datetime.now(UTC) + expires_in,
    )


def make_admin(company: Company, user_id: UUID, **permissions: bool) -> CompanyAdmin:
    return CompanyAdmin(company_id=company.id, user_id=user_id, **permissions)


class TestCreateCompany:
    @pytest.mark.asyncio
    async def test_owner_becomes_company_admin(
        self, company_service: CompanyService, auth_service: Mock
    ) -> None:
        owner_id = uuid4()
        auth_service.get_user_by_id.return_value = User(id=owner_id, role="student")

        company = await company_service.create_company(
            owner_id, CreateCompanyRequest(name="Acme Kft.")
        )

        auth_service.update_company_membership.assert_awaited_once_with(
            owner_id, company.id, "owner", "company_admin"
        )

    @pytest.mark.asyncio
    async def test_instructor_keeps_role(
        self, company_service: CompanyService, auth_service: Mock
    ) -> None:
        owner_id = uuid4()
        auth_service.get_user_by_id.return_value = User(id=owner_id, role="instructor")

        company = await company_service.create_company(
            owner_id, CreateCompanyRequest(name="Acme Kft.")
        )

        auth_service.set_claims.assert_awaited_once_with(
            owner_id, {"role": "instructor", "company_id": company.id}
        )
        auth_service.update_company_membership.assert_awaited_once_with(
            owner_id, company.id, "owner", "instructor"
        )


class TestLinkEmployeeByEmail:
    """Tests for link_employee_by_email (called on registration)."""

    @pytest.mark.asyncio
    async def test_no_pending_invite(self, company_service: CompanyService) -> None:
        with patch.object(
            company_service, "find_employees_by_email", AsyncMock(return_value=[])
        ):
            result = await company_service.link_employee_by_email(
                uuid4(), "new@example.com"
            )

        assert result.linked is False
        assert result.message == "No pending invite found"

    @pytest.mark.asyncio
    async def test_only_invited_records_are_linked(
        self, company_service: CompanyService, company: Company
    ) -> None:
        records = [
            make_employee(company, EmployeeStatus.LEFT),
            make_employee(company, EmployeeStatus.ACTIVE, user_id=uuid4()),
        ]
        with patch.object(
            company_service, "find_employees_by_email", AsyncMock(return_value=records)
        ):
            result = await company_service.link_employee_by_email(
                uuid4(), "anna.kiss@example.com"
            )

        assert result.linked is False
        assert result.message == "No pending invite found"

    @pytest.mark.asyncio
    async def test_expired_invite(
        self, company_service: CompanyService, company: Company
    ) -> None:
        employee = make_employee(company, expires_in=timedelta(days=-1))
        with patch.object(
            company_service, "find_employees_by_email", AsyncMock(return_value=[employee])
        ):
            result = await company_service.link_employee_by_email(
                uuid4(), employee.email
            )

        assert result.linked is False
        assert result.message == "Invite has expired"
        assert employee.status == EmployeeStatus.INVITED.value
        company_service.save_employee.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_links_and_activates(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        progress_service: Mock,
        company: Company,
    ) -> None:
        course_a, course_b = uuid4(), uuid4()
        company.purchased_masterclasses = [course_a, course_b]
        employee = make_employee(company)
        user_id = uuid4()
        progress_service.enroll_user.side_effect = [None, AlreadyEnrolledError()]

        with (
            patch.object(
                company_service,
                "find_employees_by_email",
                AsyncMock(return_value=[employee]),
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            result = await company_service.link_employee_by_email(user_id, employee.email)

        assert result.linked is True
        assert result.company_id == company.id
        assert result.company_name == "Acme Kft."
        assert result.employee_id == employee.employee_id
        assert result.message == "Successfully joined Acme Kft."

        assert employee.status == EmployeeStatus.ACTIVE.value
        assert employee.user_id == user_id
        assert employee.invite_accepted_at is not None
        assert employee.invite_token is None
        assert employee.enrolled_masterclasses == [course_a, course_b]

        auth_service.set_claims.assert_awaited_once_with(
            user_id, {"role": "company_employee", "company_id": company.id}
        )
        auth_service.update_company_membership.assert_awaited_once_with(
            user_id, company.id, "employee", "company_employee"
        )
        assert progress_service.enroll_user.await_count == 2
        company_service.reconcile_employee_count.assert_awaited_once_with(company.id)

    @pytest.mark.asyncio
    async def test_side_effect_failures_do_not_fail_link(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        auth_service.set_claims.side_effect = RuntimeError("claims store down")
        auth_service.update_company_membership.side_effect = RuntimeError("timeout")

        with (
            patch.object(
                company_service,
                "find_employees_by_email",
                AsyncMock(return_value=[employee]),
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            result = await company_service.link_employee_by_email(uuid4(), employee.email)

        assert result.linked is True
        assert employee.status == EmployeeStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_recount_failure_still_linked(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        company_service.reconcile_employee_count.side_effect = RuntimeError("timeout")

        with (
            patch.object(
                company_service,
                "find_employees_by_email",
                AsyncMock(return_value=[employee]),
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            result = await company_service.link_employee_by_email(uuid4(), employee.email)

        assert result.linked is True
        assert result.employee_id == employee.employee_id
        assert employee.status == EmployeeStatus.ACTIVE.value
        auth_service.update_company_membership.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_link_keeps_platform_role(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        user_id = uuid4()
        auth_service.get_user_by_id.return_value = User(
            id=user_id, email=employee.email, role="instructor"
        )

        with (
            patch.object(
                company_service,
                "find_employees_by_email",
                AsyncMock(return_value=[employee]),
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            result = await company_service.link_employee_by_email(user_id, employee.email)

        assert result.linked is True
        auth_service.set_claims.assert_awaited_once_with(
            user_id, {"role": "instructor", "company_id": company.id}
        )
        auth_service.update_company_membership.assert_awaited_once_with(
            user_id, company.id, "employee", "instructor"
        )

    @pytest.mark.asyncio
    async def test_lookup_failure_reported_not_raised(
        self, company_service: CompanyService
    ) -> None:
        with patch.object(
            company_service,
            "find_employees_by_email",
            AsyncMock(side_effect=RuntimeError("connection reset")),
        ):
            result = await company_service.link_employee_by_email(
                uuid4(), "anna.kiss@example.com"
            )

        assert result.linked is False
        assert result.message == "connection reset"


class TestInvitations:
    @pytest.mark.asyncio
    async def test_add_employee_returns_raw_token_and_stores_hash(
        self,
        company_service: CompanyService,
        email_service: Mock,
        company: Company,
        owner_id: UUID,
    ) -> None:
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
            patch.object(
                company_service, "find_employees_by_email", AsyncMock(return_value=[])
            ),
        ):
            result = await company_service.add_employee(
                owner_id,
                company.id,
                AddEmployeeRequest(
                    email="Anna.Kiss@Example.com", first_name="Anna", last_name="Kiss"
                ),
            )

        assert result.success is True
        assert result.message == "Invitation sent to anna.kiss@example.com"
        saved: Employee = company_service.save_employee.await_args.args[0]
        assert saved.status == EmployeeStatus.INVITED.value
        assert saved.invite_token == hash_invite_token(result.invite_token)
        assert saved.invite_expires_at is not None

        email_service.send_employee_invitation.assert_awaited_once()
        invitation = email_service.send_employee_invitation.await_args.args[0]
        assert invitation.email == "anna.kiss@example.com"
        assert f"invite={result.invite_token}" in str(invitation.invite_url)

    @pytest.mark.asyncio
    async def test_add_employee_email_failure_still_succeeds(
        self,
        company_service: CompanyService,
        email_service: Mock,
        company: Company,
        owner_id: UUID,
    ) -> None:
        email_service.send_employee_invitation.side_effect = RuntimeError("smtp")
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
            patch.object(
                company_service, "find_employees_by_email", AsyncMock(return_value=[])
            ),
        ):
            result = await company_service.add_employee(
                owner_id,
                company.id,
                AddEmployeeRequest(
                    email="anna.kiss@example.com", first_name="Anna", last_name="Kiss"
                ),
            )

        assert result.success is True

    @pytest.mark.asyncio
    async def test_add_employee_duplicate(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        existing = make_employee(company, EmployeeStatus.ACTIVE, user_id=uuid4())
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
            patch.object(
                company_service,
                "find_employees_by_email",
                AsyncMock(return_value=[existing]),
            ),
            pytest.raises(EmployeeExistsError),
        ):
            await company_service.add_employee(
                owner_id,
                company.id,
                AddEmployeeRequest(
                    email="anna.kiss@example.com", first_name="Anna", last_name="Kiss"
                ),
            )

    @pytest.mark.asyncio
    async def test_verify_unknown_token(self, company_service: CompanyService) -> None:
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=None)
            ),
            pytest.raises(InviteInvalidError),
        ):
            await company_service.verify_employee_invite("nope")

    @pytest.mark.asyncio
    async def test_verify_expired_token(
        self, company_service: CompanyService, company: Company
    ) -> None:
        employee = make_employee(company, expires_in=timedelta(hours=-1))
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=employee)
            ),
            pytest.raises(InviteUnavailableError, match="expired"),
        ):
            await company_service.verify_employee_invite("raw-token")

    @pytest.mark.asyncio
    async def test_verify_valid_token(
        self, company_service: CompanyService, company: Company
    ) -> None:
        employee = make_employee(company)
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=employee)
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            result = await company_service.verify_employee_invite("raw-token")

        assert result.valid is True
        assert result.company_name == "Acme Kft."
        assert result.employee_name == "Anna Kiss"

    @pytest.mark.asyncio
    async def test_accept_rejects_member_of_other_company(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        auth_service.get_user_by_id.return_value = User(
            id=uuid4(), email="anna.kiss@example.com", company_id=uuid4()
        )
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=employee)
            ),
            pytest.raises(AlreadyInCompanyError),
        ):
            await company_service.accept_employee_invite(uuid4(), "raw-token")

        company_service.save_employee.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_accept_activates_invitation(
        self,
        company_service: CompanyService,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        user_id = uuid4()
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=employee)
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            result = await company_service.accept_employee_invite(user_id, "raw-token")

        assert result.company_id == company.id
        assert employee.status == EmployeeStatus.ACTIVE.value
        assert employee.user_id == user_id

    @pytest.mark.asyncio
    async def test_accept_keeps_admin_role(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        user_id = uuid4()
        auth_service.get_user_by_id.return_value = User(
            id=user_id, email="anna.kiss@example.com", role="admin"
        )
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=employee)
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            await company_service.accept_employee_invite(user_id, "raw-token")

        auth_service.set_claims.assert_awaited_once_with(
            user_id, {"role": "admin", "company_id": company.id}
        )
        auth_service.update_company_membership.assert_awaited_once_with(
            user_id, company.id, "employee", "admin"
        )

    @pytest.mark.asyncio
    async def test_accept_student_becomes_employee(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        user_id = uuid4()
        auth_service.get_user_by_id.return_value = User(
            id=user_id, email="anna.kiss@example.com", role="student"
        )
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=employee)
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            await company_service.accept_employee_invite(user_id, "raw-token")

        auth_service.update_company_membership.assert_awaited_once_with(
            user_id, company.id, "employee", "company_employee"
        )

    @pytest.mark.asyncio
    async def test_accept_recount_failure_still_accepted(
        self,
        company_service: CompanyService,
        company: Company,
    ) -> None:
        employee = make_employee(company)
        company_service.reconcile_employee_count.side_effect = RuntimeError("timeout")
        with (
            patch.object(
                company_service, "find_employee_by_token", AsyncMock(return_value=employee)
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            result = await company_service.accept_employee_invite(uuid4(), "raw-token")

        assert result.message == "Invite accepted successfully"
        assert employee.status == EmployeeStatus.ACTIVE.value


class TestRemoveEmployee:
    @pytest.mark.asyncio
    async def test_requires_manage_permission(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        admin = make_admin(company, owner_id, can_manage_employees=False)
        with (
            patch.object(company_service, "get_admin", AsyncMock(return_value=admin)),
            pytest.raises(CompanyPermissionError),
        ):
            await company_service.remove_employee(owner_id, company.id, uuid4())

    @pytest.mark.asyncio
    async def test_non_admin_denied(
        self, company_service: CompanyService, company: Company
    ) -> None:
        with (
            patch.object(company_service, "get_admin", AsyncMock(return_value=None)),
            pytest.raises(CompanyPermissionError),
        ):
            await company_service.remove_employee(uuid4(), company.id, uuid4())

    @pytest.mark.asyncio
    async def test_missing_employee(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_employee", AsyncMock(return_value=None)),
            pytest.raises(EmployeeNotFoundError),
        ):
            await company_service.remove_employee(owner_id, company.id, uuid4())

    @pytest.mark.asyncio
    async def test_owner_cannot_be_removed(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        owner_record = make_employee(company, EmployeeStatus.ACTIVE, user_id=owner_id)
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(
                company_service, "get_employee", AsyncMock(return_value=owner_record)
            ),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
            pytest.raises(OwnerRemovalError),
        ):
            await company_service.remove_employee(
                owner_id, company.id, owner_record.employee_id
            )

    @pytest.mark.asyncio
    async def test_already_left_is_noop(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        employee = make_employee(company, EmployeeStatus.LEFT, user_id=uuid4())
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_employee", AsyncMock(return_value=employee)),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            message = await company_service.remove_employee(
                owner_id, company.id, employee.employee_id
            )

        assert message == "Employee has already been removed"
        company_service.save_employee.assert_not_awaited()
        company_service.reconcile_employee_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_invitation(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
        owner_id: UUID,
    ) -> None:
        employee = make_employee(company)
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_employee", AsyncMock(return_value=employee)),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            message = await company_service.remove_employee(
                owner_id, company.id, employee.employee_id
            )

        assert message == "Invitation for Anna Kiss cancelled"
        assert employee.status == EmployeeStatus.LEFT.value
        assert employee.removed_by == owner_id
        assert employee.invite_token is None
        auth_service.update_company_membership.assert_not_awaited()
        company_service.reconcile_employee_count.assert_awaited_once_with(company.id)

    @pytest.mark.asyncio
    async def test_remove_active_employee_resets_user(
        self,
        company_service: CompanyService,
        auth_service: Mock,
        company: Company,
        owner_id: UUID,
    ) -> None:
        user_id = uuid4()
        employee = make_employee(company, EmployeeStatus.ACTIVE, user_id=user_id)
        auth_service.get_user_by_id.return_value = User(
            id=user_id, email=employee.email, role="company_employee"
        )
        auth_service.get_claims.return_value = {
            "role": "company_employee",
            "company_id": str(company.id),
        }

        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_employee", AsyncMock(return_value=employee)),
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
        ):
            message = await company_service.remove_employee(
                owner_id, company.id, employee.employee_id
            )

        assert message == "Anna Kiss removed from the company"
        assert employee.status == EmployeeStatus.LEFT.value
        auth_service.update_company_membership.assert_awaited_once_with(
            user_id, None, None, "student"
        )
        auth_service.set_claims.assert_awaited_once_with(user_id, {"role": "student"})


class TestEnrollCompanyInCourse:
    @pytest.mark.asyncio
    async def test_company_not_found(self, company_service: CompanyService) -> None:
        with (
            patch.object(company_service, "get_company", AsyncMock(return_value=None)),
            pytest.raises(CompanyNotFoundError),
        ):
            await company_service.enroll_company_in_course(uuid4(), uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_requires_enroll_permission(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        admin = make_admin(company, owner_id, can_enroll_courses=False)
        with (
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
            patch.object(company_service, "get_admin", AsyncMock(return_value=admin)),
            pytest.raises(CompanyPermissionError),
        ):
            await company_service.enroll_company_in_course(owner_id, company.id, uuid4())

    @pytest.mark.asyncio
    async def test_no_active_employees(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        with (
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(
                company_service,
                "list_company_employees",
                AsyncMock(return_value=[make_employee(company)]),
            ),
        ):
            result = await company_service.enroll_company_in_course(
                owner_id, company.id, uuid4()
            )

        assert result.enrolled_count == 0
        assert result.already_enrolled_count == 0
        assert result.message == "No active employees to enroll"

    @pytest.mark.asyncio
    async def test_enrolls_active_employees(
        self,
        company_service: CompanyService,
        progress_service: Mock,
        company: Company,
        owner_id: UUID,
    ) -> None:
        course_id = uuid4()
        enrolled_user, new_user = uuid4(), uuid4()
        employees = [
            make_employee(company, EmployeeStatus.ACTIVE, user_id=enrolled_user),
            make_employee(company, EmployeeStatus.ACTIVE, user_id=new_user),
            make_employee(company),  # invited, skipped
        ]
        progress_service.get_enrollment.side_effect = lambda user_id, cid: (
            Enrollment(course_id=cid, user_id=user_id) if user_id == enrolled_user else None
        )

        with (
            patch.object(company_service, "get_company", AsyncMock(return_value=company)),
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(
                company_service,
                "list_company_employees",
                AsyncMock(return_value=employees),
            ),
        ):
            result = await company_service.enroll_company_in_course(
                owner_id, company.id, course_id
            )

        assert result.enrolled_count == 1
        assert result.already_enrolled_count == 1
        assert result.message == "1 employees enrolled in the course (1 were already enrolled)"
        progress_service.enroll_user.assert_awaited_once_with(
            new_user, course_id, enrolled_by_company=company.id
        )
        assert course_id in company.purchased_masterclasses
        company_service.save_company.assert_awaited_once_with(company)


class TestEmployeeProgressDetail:
    @pytest.mark.asyncio
    async def test_non_admin_denied(
        self, company_service: CompanyService, company: Company
    ) -> None:
        with (
            patch.object(company_service, "get_admin", AsyncMock(return_value=None)),
            pytest.raises(CompanyPermissionError),
        ):
            await company_service.get_employee_progress_detail(
                uuid4(), company.id, uuid4()
            )

    @pytest.mark.asyncio
    async def test_unknown_employee(
        self, company_service: CompanyService, company: Company, owner_id: UUID
    ) -> None:
        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(company_service, "get_employee", AsyncMock(return_value=None)),
            pytest.raises(EmployeeNotFoundError),
        ):
            await company_service.get_employee_progress_detail(
                owner_id, company.id, uuid4()
            )

    @pytest.mark.asyncio
    async def test_invited_employee_has_no_courses(
        self,
        company_service: CompanyService,
        progress_service: Mock,
        company: Company,
        owner_id: UUID,
    ) -> None:
        employee = make_employee(company)
        progress_service.list_user_enrollments = AsyncMock()

        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(
                company_service, "get_employee", AsyncMock(return_value=employee)
            ),
        ):
            result = await company_service.get_employee_progress_detail(
                owner_id, company.id, employee.employee_id
            )

        assert result.employee.employee_id == employee.employee_id
        assert result.employee.status == EmployeeStatus.INVITED
        assert result.courses == []
        progress_service.list_user_enrollments.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_company_courses_only(
        self,
        company_service: CompanyService,
        progress_service: Mock,
        catalog_service: Mock,
        company: Company,
        owner_id: UUID,
    ) -> None:
        user_id = uuid4()
        employee = make_employee(company, EmployeeStatus.ACTIVE, user_id=user_id)
        course = Course(title="Vezetői kommunikáció")
        deleted_course_id = uuid4()
        last_seen = datetime.now(UTC) - timedelta(days=1)
        progress_service.list_user_enrollments = AsyncMock(
            return_value=[
                Enrollment(
                    course_id=course.id,
                    user_id=user_id,
                    status="in_progress",
                    progress=63,
                    last_accessed_at=last_seen,
                    enrolled_by_company=company.id,
                ),
                # bought privately
                Enrollment(course_id=uuid4(), user_id=user_id, progress=10),
                # enrolled by another company
                Enrollment(
                    course_id=uuid4(), user_id=user_id, enrolled_by_company=uuid4()
                ),
                Enrollment(
                    course_id=deleted_course_id,
                    user_id=user_id,
                    enrolled_by_company=company.id,
                ),
            ]
        )
        progress_service.count_completed_lessons = AsyncMock(return_value=5)
        catalog_service.get_course.side_effect = lambda cid: (
            course if cid == course.id else None
        )
        catalog_service.get_total_lessons = AsyncMock(return_value=8)

        with (
            patch.object(
                company_service,
                "get_admin",
                AsyncMock(return_value=make_admin(company, owner_id)),
            ),
            patch.object(
                company_service, "get_employee", AsyncMock(return_value=employee)
            ),
        ):
            result = await company_service.get_employee_progress_detail(
                owner_id, company.id, employee.employee_id
            )

        assert result.employee.user_id == user_id
        assert len(result.courses) == 1
        detail = result.courses[0]
        assert detail.course_id == course.id
        assert detail.course_title == "Vezetői kommunikáció"
        assert detail.completed_lessons == 5
        assert detail.total_lessons == 8
        assert detail.progress_percent == 63
        assert detail.status == "in_progress"
        assert detail.last_activity_at == last_seen
        progress_service.count_completed_lessons.assert_awaited_once_with(
            user_id, course.id
        )
