"""Authentication service layer.

Business logic for:
- User registration and login
- Access token issuing (with access-control claims)
- Company membership and billing fields on the user profile
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from src.auth.models import User
from src.auth.permissions import UserRole
from src.auth.schemas import RegisterRequest, UserResponse
from src.auth.security import (
    AccessClaims,
    create_access_token,
    hash_password,
    verify_password,
)
from src.core.errors import (
    ALREADY_EXISTS,
    NOT_FOUND,
    PERMISSION_DENIED,
    UNAUTHENTICATED,
    ServiceError,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(ServiceError):
    """Base authentication error."""


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, UNAUTHENTICATED)


class UserExistsError(AuthError):
    """A user with this email already exists."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, ALREADY_EXISTS)


class UserNotFoundError(AuthError):
    """User not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, NOT_FOUND)


class UserInactiveError(AuthError):
    """User account is inactive."""

    def __init__(self, message: str = "Account is inactive"):
        super().__init__(message, PERMISSION_DENIED)


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Authentication service for user management and token operations."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra session with aexecute() support
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_user_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._get_user_by_stripe_customer = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE stripe_customer_id = ?"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, email, name, password_hash, role, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_password = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET password_hash = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_company_membership = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET company_id = ?, company_role = ?, role = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_stripe_customer = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET stripe_customer_id = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_subscription = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET subscription_status = ?, stripe_subscription_id = ?, updated_at = ?
            WHERE id = ?
        """)

        # Claims
        self._get_claims = self.session.prepare(
            f"SELECT claims FROM {self.keyspace}.user_claims WHERE user_id = ?"
        )
        self._set_claims = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_claims (user_id, claims, updated_at)
            VALUES (?, ?, ?)
        """)

    # ==========================================================================
    # User Queries
    # ==========================================================================

    async def get_user_by_email(self, email: str) -> User | None:
        """Find user by email address (case-insensitive)."""
        result = await self.session.aexecute(
            self._get_user_by_email, [email.lower().strip()]
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Find user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_stripe_customer(self, customer_id: str) -> User | None:
        """Find the user owning a Stripe customer ID."""
        result = await self.session.aexecute(
            self._get_user_by_stripe_customer, [customer_id]
        )
        row = result.one()
        return User.from_row(row) if row else None

    # ==========================================================================
    # Registration & Login
    # ==========================================================================

    async def register_user(self, data: RegisterRequest) -> User:
        """Register a new student account.

        Raises:
            UserExistsError: If the email is already registered
        """
        if await self.get_user_by_email(data.email):
            raise UserExistsError

        user = User(
            email=data.email,
            name=data.name,
            password_hash=hash_password(data.password),
            role=UserRole.STUDENT.value,
        )
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.name,
                user.password_hash,
                user.role,
                user.is_active,
                user.created_at,
                user.updated_at,
            ],
        )

        logger.info("user_registered", user_id=str(user.id))
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If email or password is wrong
            UserInactiveError: If user account is inactive
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            raise InvalidCredentialsError

        if not user.is_active:
            raise UserInactiveError

        if new_hash:
            await self.session.aexecute(
                self._update_password, [new_hash, datetime.now(UTC), user.id]
            )
            user.password_hash = new_hash

        return user

    async def create_token(self, user: User) -> str:
        """Issue an access token carrying the user's current claims.

        Stored claims take precedence over the profile role so that a claim
        change is reflected in the next token without a profile write.
        """
        claims = await self.get_claims(user.id)
        company_id = claims.get("company_id")
        return create_access_token(
            AccessClaims(
                user_id=user.id,
                email=user.email,
                role=claims.get("role") or user.role,
                company_id=UUID(company_id) if company_id else user.company_id,
            )
        )

    # ==========================================================================
    # Claims
    # ==========================================================================

    async def get_claims(self, user_id: UUID) -> dict[str, str]:
        """Get a user's access-control claims (empty if none assigned)."""
        result = await self.session.aexecute(self._get_claims, [user_id])
        row = result.one()
        return dict(row.claims) if row and row.claims else {}

    async def set_claims(self, user_id: UUID, claims: dict[str, Any]) -> None:
        """Replace a user's claims. None values are dropped."""
        stored = {k: str(v) for k, v in claims.items() if v is not None}
        await self.session.aexecute(
            self._set_claims, [user_id, stored, datetime.now(UTC)]
        )
        logger.info("user_claims_set", user_id=str(user_id), role=stored.get("role"))

    # ==========================================================================
    # Profile Updates
    # ==========================================================================

    async def update_company_membership(
        self,
        user_id: UUID,
        company_id: UUID | None,
        company_role: str | None,
        role: str,
    ) -> None:
        """Set (or clear, with None) the user's company fields and role."""
        await self.session.aexecute(
            self._update_company_membership,
            [company_id, company_role, role, datetime.now(UTC), user_id],
        )

    async def set_stripe_customer_id(self, user_id: UUID, customer_id: str) -> None:
        """Store the Stripe customer ID on the user profile."""
        await self.session.aexecute(
            self._update_stripe_customer, [customer_id, datetime.now(UTC), user_id]
        )

    async def update_subscription(
        self,
        user_id: UUID,
        status: str,
        subscription_id: str | None = None,
    ) -> None:
        """Update the user's subscription status and subscription ID."""
        await self.session.aexecute(
            self._update_subscription,
            [status, subscription_id, datetime.now(UTC), user_id],
        )
        logger.info(
            "subscription_status_updated",
            user_id=str(user_id),
            status=status,
        )

    def to_response(self, user: User) -> UserResponse:
        """Convert User entity to response schema."""
        return UserResponse.from_user(user)
