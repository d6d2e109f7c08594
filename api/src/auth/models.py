"""Database models for authentication.

Cassandra table definitions for:
- Users: Main user table, with indexed lookups by email and Stripe customer
- UserClaims: Access-control claims per user (embedded in issued tokens)

Note: Uses cassandra-driver directly (not ORM).
Tables are created via CQL statements in the database module.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.auth.permissions import UserRole


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    name TEXT,
    password_hash TEXT,
    role TEXT,
    is_active BOOLEAN,
    company_id UUID,
    company_role TEXT,
    stripe_customer_id TEXT,
    stripe_subscription_id TEXT,
    subscription_status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

USER_EMAIL_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_email_idx ON {keyspace}.users (email)
"""

USER_STRIPE_CUSTOMER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS users_stripe_customer_idx
ON {keyspace}.users (stripe_customer_id)
"""

USER_CLAIMS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.user_claims (
    user_id UUID PRIMARY KEY,
    claims MAP<TEXT, TEXT>,
    updated_at TIMESTAMP
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_EMAIL_INDEX_CQL,
    USER_STRIPE_CUSTOMER_INDEX_CQL,
    USER_CLAIMS_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class User:
    """User entity for authentication, company membership and billing.

    Attributes:
        id: Unique identifier (UUID)
        email: Unique email address (stored lower-cased)
        name: Display name
        password_hash: Argon2id hashed password
        role: User role (see UserRole)
        is_active: Account status
        company_id: Company the user belongs to, if any
        company_role: "employee" or "admin" within that company
        stripe_customer_id: Stripe customer created at first checkout
        stripe_subscription_id: Current Stripe subscription
        subscription_status: none, trialing, active, past_due, canceled
    """

    def __init__(
        self,
        id: UUID | None = None,
        email: str = "",
        name: str = "",
        password_hash: str = "",
        role: str = UserRole.STUDENT.value,
        is_active: bool = True,
        company_id: UUID | None = None,
        company_role: str | None = None,
        stripe_customer_id: str | None = None,
        stripe_subscription_id: str | None = None,
        subscription_status: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.email = email.lower().strip()
        self.name = name
        self.password_hash = password_hash
        self.role = role
        self.is_active = is_active
        self.company_id = company_id
        self.company_role = company_role
        self.stripe_customer_id = stripe_customer_id
        self.stripe_subscription_id = stripe_subscription_id
        self.subscription_status = subscription_status
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email or "",
            name=row.name or "",
            password_hash=row.password_hash or "",
            role=row.role or UserRole.STUDENT.value,
            is_active=row.is_active if row.is_active is not None else True,
            company_id=getattr(row, "company_id", None),
            company_role=getattr(row, "company_role", None),
            stripe_customer_id=getattr(row, "stripe_customer_id", None),
            stripe_subscription_id=getattr(row, "stripe_subscription_id", None),
            subscription_status=getattr(row, "subscription_status", None),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert to dictionary (excludes password_hash by default)."""
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "company_id": self.company_id,
            "company_role": self.company_role,
            "stripe_customer_id": self.stripe_customer_id,
            "subscription_status": self.subscription_status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_password:
            data["password_hash"] = self.password_hash
        return data

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
