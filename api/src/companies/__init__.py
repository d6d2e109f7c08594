"""Company (team) accounts module.

Provides:
- Company creation with owner admin permissions
- Employee invitations and onboarding at registration
- Employee removal
- Company-wide course enrollment and progress dashboard

Note: Service and router are imported directly to avoid circular imports
(auth schemas depend on this package).
"""

from .models import (
    COMPANY_TABLES_CQL,
    Company,
    CompanyAdmin,
    CompanyRole,
    Employee,
    EmployeeStatus,
)
from .schemas import EmployeeLinkResponse


__all__ = [
    "COMPANY_TABLES_CQL",
    "Company",
    "CompanyAdmin",
    "CompanyRole",
    "Employee",
    "EmployeeLinkResponse",
    "EmployeeStatus",
]
