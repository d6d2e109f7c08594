"""Pydantic schemas for billing.

Request and response models for:
- Stripe invoices shown on the billing page
- Checkout session creation
- Subscription status, cancellation and reactivation
- Webhook acknowledgement
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, HttpUrl

from src.core.schemas import ApiModel

from .models import CheckoutMode


InvoiceStatus = Literal["succeeded", "pending", "failed"]


class InvoiceResponse(ApiModel):
    """A Stripe invoice mapped to the billing page format.

    Timestamps are epoch milliseconds.
    """

    id: str
    course_id: str | None = None
    course_name: str
    amount: int
    currency: str
    status: InvoiceStatus
    payment_method: str = "Card"
    stripe_invoice_url: str | None = None
    invoice_pdf_url: str | None = None
    created_at: int
    paid_at: int | None = None
    number: str | None = None


class InvoiceListResponse(ApiModel):
    success: bool = True
    invoices: list[InvoiceResponse] = []


class CreateCheckoutSessionRequest(ApiModel):
    price_id: str = Field(..., min_length=1, description="Stripe price ID")
    course_id: UUID | None = None
    success_url: HttpUrl
    cancel_url: HttpUrl
    mode: CheckoutMode = CheckoutMode.SUBSCRIPTION
    metadata: dict[str, str] | None = None


class CheckoutSessionData(ApiModel):
    session_id: str
    url: str | None = None


class CheckoutSessionResponse(ApiModel):
    success: bool = True
    data: CheckoutSessionData


class WebhookResponse(ApiModel):
    received: bool = True


# ==============================================================================
# Subscription
# ==============================================================================


class SubscriptionDetails(ApiModel):
    subscription_id: str | None = None
    status: str
    plan_name: str | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    trial_end: datetime | None = None
    is_trialing: bool = False


class SubscriptionStatusResponse(ApiModel):
    success: bool = True
    has_subscription: bool
    is_active: bool
    subscription: SubscriptionDetails | None = None


class CancelSubscriptionRequest(ApiModel):
    reason: str | None = Field(None, max_length=500)


class CancelSubscriptionResponse(ApiModel):
    success: bool = True
    message: str
    canceled_at: datetime
    access_until: datetime | None = None


class ReactivateSubscriptionResponse(ApiModel):
    success: bool = True
    message: str
