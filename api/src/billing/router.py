"""Billing API endpoints.

Provides routes for:
- Invoice history
- Stripe Checkout session creation
- Subscription status, cancellation and reactivation
- Stripe webhook receiver (public, signature-verified)
"""

from fastapi import APIRouter, Header, Request

from src.auth.dependencies import CurrentUser

from .dependencies import BillingServiceDep, handle_billing_error
from .schemas import (
    CancelSubscriptionRequest,
    CancelSubscriptionResponse,
    CheckoutSessionResponse,
    CreateCheckoutSessionRequest,
    InvoiceListResponse,
    ReactivateSubscriptionResponse,
    SubscriptionStatusResponse,
    WebhookResponse,
)
from .service import BillingError


router = APIRouter(prefix="/v1/billing", tags=["billing"])


@router.get("/invoices", response_model=InvoiceListResponse)
async def get_invoices(
    billing_service: BillingServiceDep,
    user: CurrentUser,
) -> InvoiceListResponse:
    """List the current user's Stripe invoices."""
    try:
        return await billing_service.get_stripe_invoices(user.id)
    except BillingError as e:
        raise handle_billing_error(e) from e


@router.post("/checkout", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    data: CreateCheckoutSessionRequest,
    billing_service: BillingServiceDep,
    user: CurrentUser,
) -> CheckoutSessionResponse:
    try:
        return await billing_service.create_checkout_session(user.id, data)
    except BillingError as e:
        raise handle_billing_error(e) from e


@router.get("/subscription", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    billing_service: BillingServiceDep,
    user: CurrentUser,
) -> SubscriptionStatusResponse:
    try:
        return await billing_service.get_subscription_status(user.id)
    except BillingError as e:
        raise handle_billing_error(e) from e


@router.post("/subscription/cancel", response_model=CancelSubscriptionResponse)
async def cancel_subscription(
    billing_service: BillingServiceDep,
    user: CurrentUser,
    data: CancelSubscriptionRequest | None = None,
) -> CancelSubscriptionResponse:
    """Cancel the current user's subscription at the end of the period."""
    try:
        return await billing_service.cancel_subscription(
            user.id, data.reason if data else None
        )
    except BillingError as e:
        raise handle_billing_error(e) from e


@router.post("/subscription/reactivate", response_model=ReactivateSubscriptionResponse)
async def reactivate_subscription(
    billing_service: BillingServiceDep,
    user: CurrentUser,
) -> ReactivateSubscriptionResponse:
    try:
        return await billing_service.reactivate_subscription(user.id)
    except BillingError as e:
        raise handle_billing_error(e) from e


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    billing_service: BillingServiceDep,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> WebhookResponse:
    """Receive Stripe events. The raw body is needed for signature checks."""
    payload = await request.body()
    try:
        await billing_service.handle_webhook(payload, stripe_signature)
    except BillingError as e:
        raise handle_billing_error(e) from e
    return WebhookResponse()
