"""Database models for billing.

Cassandra table definitions for:
- Checkout sessions: every Stripe Checkout session created, with its outcome
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class CheckoutMode(str, Enum):
    PAYMENT = "payment"
    SUBSCRIPTION = "subscription"


class CheckoutStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


CHECKOUT_SESSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.checkout_sessions (
    session_id TEXT PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    price_id TEXT,
    mode TEXT,
    status TEXT,
    amount BIGINT,
    currency TEXT,
    created_at TIMESTAMP,
    completed_at TIMESTAMP
)
"""

BILLING_TABLES_CQL = [
    CHECKOUT_SESSIONS_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class CheckoutSession:
    """Local record of a Stripe Checkout session."""

    def __init__(
        self,
        session_id: str,
        user_id: UUID,
        price_id: str,
        mode: str,
        course_id: UUID | None = None,
        status: str = CheckoutStatus.PENDING.value,
        amount: int | None = None,
        currency: str | None = None,
        created_at: datetime | None = None,
        completed_at: datetime | None = None,
    ):
        self.session_id = session_id
        self.user_id = user_id
        self.price_id = price_id
        self.mode = mode
        self.course_id = course_id
        self.status = status
        self.amount = amount
        self.currency = currency
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)

    @classmethod
    def from_row(cls, row: Any) -> "CheckoutSession":
        return cls(
            session_id=row.session_id,
            user_id=row.user_id,
            price_id=row.price_id or "",
            mode=row.mode,
            course_id=row.course_id,
            status=row.status or CheckoutStatus.PENDING.value,
            amount=row.amount,
            currency=row.currency,
            created_at=row.created_at,
            completed_at=row.completed_at,
        )

    def __repr__(self) -> str:
        return f"<CheckoutSession {self.session_id} {self.mode} ({self.status})>"
