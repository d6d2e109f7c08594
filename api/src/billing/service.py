"""Billing service layer.

Business logic for:
- Listing a user's Stripe invoices in the billing page format
- Creating Stripe Checkout sessions (course purchase or subscription)
- Subscription status, cancellation at period end and reactivation
- Processing Stripe webhooks (enrollment and subscription status)
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

import stripe
import structlog

from src.core.context import stripe_event_context
from src.core.errors import (
    FAILED_PRECONDITION,
    INTERNAL,
    INVALID_ARGUMENT,
    NOT_FOUND,
    ServiceError,
)
from src.progress.service import AlreadyEnrolledError

from .models import CheckoutMode, CheckoutSession, CheckoutStatus
from .schemas import (
    CancelSubscriptionResponse,
    CheckoutSessionData,
    CheckoutSessionResponse,
    CreateCheckoutSessionRequest,
    InvoiceListResponse,
    InvoiceResponse,
    ReactivateSubscriptionResponse,
    SubscriptionDetails,
    SubscriptionStatusResponse,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.models import User
    from src.auth.service import AuthService
    from src.catalog.service import CatalogService
    from src.config.settings import Settings
    from src.progress.service import ProgressService

logger = structlog.get_logger(__name__)


# Stripe subscription status -> stored subscription_status
SUBSCRIPTION_STATUS_MAP = {
    "active": "active",
    "trialing": "trialing",
    "past_due": "past_due",
    "canceled": "canceled",
    "unpaid": "canceled",
    "incomplete_expired": "canceled",
}

# Checkout metadata keys read by the webhook handlers
RESERVED_METADATA_KEYS = frozenset({"userId", "priceId", "courseId"})

ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})
CANCELABLE_SUBSCRIPTION_STATUSES = ACTIVE_SUBSCRIPTION_STATUSES | {"past_due"}
DEFAULT_PLAN_NAME = "Elira Subscription"

INVOICE_STATUS_MAP = {
    "paid": "succeeded",
    "void": "failed",
    "uncollectible": "failed",
}


def map_subscription_status(stripe_status: str | None) -> str:
    return SUBSCRIPTION_STATUS_MAP.get(stripe_status or "", "none")


def map_invoice_status(stripe_status: str | None) -> str:
    return INVOICE_STATUS_MAP.get(stripe_status or "", "pending")


def to_minor_units(price: Decimal) -> int:
    """Convert a catalog price to Stripe's smallest currency unit."""
    return int(round(price * 100))


def _field(obj: Any, name: str) -> Any:
    """Read an optional attribute from a Stripe object."""
    if obj is None:
        return None
    return getattr(obj, name, None)


def _metadata(obj: Any) -> dict[str, str]:
    metadata = _field(obj, "metadata")
    if metadata is None:
        return {}
    return dict(metadata.to_dict())


def _parse_uuid(value: str | None) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        return None


def _timestamp(value: int | None) -> datetime | None:
    return datetime.fromtimestamp(value, UTC) if value else None


def _subscription_items(subscription: Any) -> list[Any]:
    # StripeObject is a dict: `.items` is the dict method, not the field
    try:
        items = subscription["items"]
    except (KeyError, TypeError):
        return []
    return _field(items, "data") or []


def _period_bound(subscription: Any, name: str) -> datetime | None:
    """Billing period start/end. Newer API versions keep it on the items."""
    value = _field(subscription, name)
    if value is None:
        items = _subscription_items(subscription)
        value = _field(items[0], name) if items else None
    return _timestamp(value)


def _subscription_details(subscription: Any, stored_status: str) -> SubscriptionDetails:
    items = _subscription_items(subscription)
    price = _field(items[0], "price") if items else None
    status = map_subscription_status(_field(subscription, "status"))
    if status == "none":
        status = stored_status
    return SubscriptionDetails(
        subscription_id=subscription.id,
        status=status,
        plan_name=_field(price, "nickname") or DEFAULT_PLAN_NAME,
        current_period_start=_period_bound(subscription, "current_period_start"),
        current_period_end=_period_bound(subscription, "current_period_end"),
        cancel_at_period_end=bool(_field(subscription, "cancel_at_period_end")),
        trial_end=_timestamp(_field(subscription, "trial_end")),
        is_trialing=status == "trialing",
    )


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class BillingError(ServiceError):
    """Base billing error."""


class BillingNotConfiguredError(BillingError):
    def __init__(self, message: str = "Payments are not configured"):
        super().__init__(message, FAILED_PRECONDITION)


class BillingUserNotFoundError(BillingError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message, NOT_FOUND)


class CheckoutCourseNotFoundError(BillingError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, NOT_FOUND)


class InvalidCheckoutError(BillingError):
    """Checkout parameters do not describe a purchasable item."""

    def __init__(self, message: str = "Invalid checkout session parameters"):
        super().__init__(message, INVALID_ARGUMENT)


class NoActiveSubscriptionError(BillingError):
    def __init__(self, message: str = "No active subscription"):
        super().__init__(message, FAILED_PRECONDITION)


class SubscriptionUpdateError(BillingError):
    """Stripe rejected a subscription change."""

    def __init__(self, message: str = "Subscription update failed"):
        super().__init__(message, INTERNAL)


class InvalidWebhookError(BillingError):
    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message, INVALID_ARGUMENT)


# ==============================================================================
# Billing Service
# ==============================================================================


class BillingService:
    """Service for Stripe checkout, invoices and webhooks."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        settings: "Settings",
        stripe_client: stripe.StripeClient | None,
        auth_service: "AuthService",
        catalog_service: "CatalogService",
        progress_service: "ProgressService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.settings = settings
        self.stripe = stripe_client
        self.auth_service = auth_service
        self.catalog_service = catalog_service
        self.progress_service = progress_service
        self._event_handlers = {
            "checkout.session.completed": self._on_checkout_completed,
            "customer.subscription.created": self._on_subscription_changed,
            "customer.subscription.updated": self._on_subscription_changed,
            "customer.subscription.deleted": self._on_subscription_deleted,
            "invoice.payment_succeeded": self._on_invoice_payment_succeeded,
            "invoice.payment_failed": self._on_invoice_payment_failed,
        }
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        ks = self.keyspace

        self._insert_checkout_session = self.session.prepare(f"""
            INSERT INTO {ks}.checkout_sessions (
                session_id, user_id, course_id, price_id, mode, status,
                amount, currency, created_at, completed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._complete_checkout_session = self.session.prepare(f"""
            UPDATE {ks}.checkout_sessions
            SET status = ?, completed_at = ?
            WHERE session_id = ?
        """)
        self._get_checkout_session = self.session.prepare(
            f"SELECT * FROM {ks}.checkout_sessions WHERE session_id = ?"
        )

    def _require_stripe(self) -> stripe.StripeClient:
        if self.stripe is None:
            raise BillingNotConfiguredError()
        return self.stripe

    # ==========================================================================
    # Checkout Session Records
    # ==========================================================================

    async def get_checkout_session(self, session_id: str) -> CheckoutSession | None:
        result = await self.session.aexecute(self._get_checkout_session, [session_id])
        row = result.one()
        return CheckoutSession.from_row(row) if row else None

    async def save_checkout_session(self, record: CheckoutSession) -> None:
        await self.session.aexecute(
            self._insert_checkout_session,
            [
                record.session_id,
                record.user_id,
                record.course_id,
                record.price_id,
                record.mode,
                record.status,
                record.amount,
                record.currency,
                record.created_at,
                record.completed_at,
            ],
        )

    async def mark_checkout_completed(self, session_id: str) -> None:
        await self.session.aexecute(
            self._complete_checkout_session,
            [CheckoutStatus.COMPLETED.value, datetime.now(UTC), session_id],
        )

    # ==========================================================================
    # Invoices
    # ==========================================================================

    async def get_stripe_invoices(self, user_id: UUID) -> InvoiceListResponse:
        """List the user's invoices, newest first.

        Users who never went through checkout have no Stripe customer and get
        an empty list. An invoice that cannot be mapped is logged and skipped.
        """
        user = await self.auth_service.get_user_by_id(user_id)
        if not user:
            raise BillingUserNotFoundError()
        if not user.stripe_customer_id:
            return InvoiceListResponse(invoices=[])

        client = self._require_stripe()
        invoices = await client.invoices.list_async(
            params={
                "customer": user.stripe_customer_id,
                "limit": self.settings.stripe_invoice_limit,
            }
        )

        items: list[InvoiceResponse] = []
        for invoice in invoices.data:
            try:
                items.append(await self._to_invoice_response(invoice))
            except Exception:
                logger.exception(
                    "invoice_mapping_failed",
                    invoice_id=_field(invoice, "id"),
                    user_id=str(user_id),
                )

        logger.info("invoices_listed", user_id=str(user_id), count=len(items))
        return InvoiceListResponse(invoices=items)

    async def _to_invoice_response(self, invoice: Any) -> InvoiceResponse:
        metadata = _metadata(invoice)
        lines = _field(_field(invoice, "lines"), "data") or []
        first_line = lines[0] if lines else None

        course_id = metadata.get("courseId") or _metadata(first_line).get("courseId")
        course_name = _field(first_line, "description")
        if not course_name and course_id:
            course_uuid = _parse_uuid(course_id)
            course = (
                await self.catalog_service.get_course(course_uuid)
                if course_uuid
                else None
            )
            course_name = course.title if course else None
        if not course_name:
            course_name = "Course" if course_id else "Subscription"

        paid_at = _field(_field(invoice, "status_transitions"), "paid_at")

        return InvoiceResponse(
            id=invoice.id,
            course_id=course_id,
            course_name=course_name,
            amount=_field(invoice, "total") or 0,
            currency=(_field(invoice, "currency") or self.settings.stripe_currency).upper(),
            status=map_invoice_status(_field(invoice, "status")),
            payment_method=await self._payment_method_label(invoice),
            stripe_invoice_url=_field(invoice, "hosted_invoice_url"),
            invoice_pdf_url=_field(invoice, "invoice_pdf"),
            created_at=(_field(invoice, "created") or 0) * 1000,
            paid_at=paid_at * 1000 if paid_at else None,
            number=_field(invoice, "number"),
        )

    async def _payment_method_label(self, invoice: Any) -> str:
        """Card brand of the invoice charge ("Visa"), or "Card"."""
        charge = _field(invoice, "charge")
        if isinstance(charge, str):
            try:
                charge = await self._require_stripe().charges.retrieve_async(charge)
            except stripe.StripeError as e:
                logger.warning("invoice_charge_lookup_failed", charge_id=charge, error=str(e))
                return "Card"

        card = _field(_field(charge, "payment_method_details"), "card")
        brand = _field(card, "brand")
        return brand.capitalize() if brand else "Card"

    # ==========================================================================
    # Checkout
    # ==========================================================================

    async def create_checkout_session(
        self,
        user_id: UUID,
        data: CreateCheckoutSessionRequest,
    ) -> CheckoutSessionResponse:
        """Create a Stripe Checkout session.

        Subscription mode bills ``price_id`` with a trial period. Payment mode
        requires ``course_id`` and charges the catalog price of that course.
        The Stripe customer is created on first checkout and stored on the user.
        """
        client = self._require_stripe()
        user = await self.auth_service.get_user_by_id(user_id)
        if not user:
            raise BillingUserNotFoundError()

        customer_id = await self._ensure_customer(client, user)

        # Server-set keys drive fulfilment and always win over client metadata
        metadata = {
            key: value
            for key, value in (data.metadata or {}).items()
            if key not in RESERVED_METADATA_KEYS
        }
        metadata["userId"] = str(user.id)
        metadata["priceId"] = data.price_id
        if data.course_id:
            metadata["courseId"] = str(data.course_id)

        params: dict[str, Any] = {
            "customer": customer_id,
            "mode": data.mode.value,
            "payment_method_types": ["card"],
            "success_url": str(data.success_url),
            "cancel_url": str(data.cancel_url),
            "locale": self.settings.stripe_locale,
            "billing_address_collection": "auto",
            "customer_update": {"address": "auto", "name": "auto"},
            "metadata": metadata,
        }

        if data.mode == CheckoutMode.SUBSCRIPTION:
            params["line_items"] = [{"price": data.price_id, "quantity": 1}]
            params["subscription_data"] = {
                "trial_period_days": self.settings.stripe_trial_period_days,
                "metadata": {"userId": str(user.id)},
            }
        elif data.course_id:
            params["line_items"] = [await self._course_line_item(data.course_id)]
            params["payment_intent_data"] = {"metadata": metadata}
        else:
            raise InvalidCheckoutError("A course is required for one-time payments")

        checkout = await client.checkout.sessions.create_async(params=params)

        await self.save_checkout_session(
            CheckoutSession(
                session_id=checkout.id,
                user_id=user.id,
                course_id=data.course_id,
                price_id=data.price_id,
                mode=data.mode.value,
                amount=_field(checkout, "amount_total"),
                currency=_field(checkout, "currency"),
            )
        )

        logger.info(
            "checkout_session_created",
            session_id=checkout.id,
            user_id=str(user.id),
            mode=data.mode.value,
            course_id=str(data.course_id) if data.course_id else None,
        )
        return CheckoutSessionResponse(
            data=CheckoutSessionData(session_id=checkout.id, url=_field(checkout, "url"))
        )

    async def _ensure_customer(self, client: stripe.StripeClient, user: "User") -> str:
        if user.stripe_customer_id:
            return user.stripe_customer_id

        customer = await client.customers.create_async(
            params={
                "email": user.email,
                "name": user.name or user.email,
                "metadata": {"userId": str(user.id)},
            }
        )
        await self.auth_service.set_stripe_customer_id(user.id, customer.id)
        logger.info("stripe_customer_created", user_id=str(user.id), customer_id=customer.id)
        return customer.id

    async def _course_line_item(self, course_id: UUID) -> dict[str, Any]:
        course = await self.catalog_service.get_course(course_id)
        if not course:
            raise CheckoutCourseNotFoundError()
        if course.price is None:
            raise InvalidCheckoutError("Course is not available for purchase")

        product_data: dict[str, Any] = {
            "name": course.title,
            "metadata": {"courseId": str(course.id)},
        }
        if course.description:
            product_data["description"] = course.description[:500]
        if course.thumbnail_url:
            product_data["images"] = [course.thumbnail_url]

        return {
            "price_data": {
                "currency": self.settings.stripe_currency,
                "product_data": product_data,
                "unit_amount": to_minor_units(course.price),
            },
            "quantity": 1,
        }

    # ==========================================================================
    # Subscription Management
    # ==========================================================================

    async def get_subscription_status(self, user_id: UUID) -> SubscriptionStatusResponse:
        """Current subscription of the user.

        Period and cancellation details come from Stripe. When Stripe cannot
        be reached, the status stored by the webhooks is returned alone.
        """
        user = await self.auth_service.get_user_by_id(user_id)
        if not user:
            raise BillingUserNotFoundError()

        status = user.subscription_status or "none"
        if status not in CANCELABLE_SUBSCRIPTION_STATUSES:
            return SubscriptionStatusResponse(has_subscription=False, is_active=False)

        details = SubscriptionDetails(
            subscription_id=user.stripe_subscription_id,
            status=status,
            is_trialing=status == "trialing",
        )
        if self.stripe is not None and user.stripe_subscription_id:
            try:
                subscription = await self.stripe.subscriptions.retrieve_async(
                    user.stripe_subscription_id
                )
            except stripe.StripeError as e:
                logger.warning(
                    "subscription_lookup_failed",
                    subscription_id=user.stripe_subscription_id,
                    error=str(e),
                )
            else:
                details = _subscription_details(subscription, status)

        return SubscriptionStatusResponse(
            has_subscription=True,
            is_active=details.status in ACTIVE_SUBSCRIPTION_STATUSES,
            subscription=details,
        )

    async def cancel_subscription(
        self, user_id: UUID, reason: str | None = None
    ) -> CancelSubscriptionResponse:
        """Cancel at the end of the current period; access continues until then."""
        user, subscription_id = await self._cancelable_subscription(user_id)

        try:
            subscription = await self._require_stripe().subscriptions.update_async(
                subscription_id,
                params={
                    "cancel_at_period_end": True,
                    "cancellation_details": {
                        "comment": reason or "User requested cancellation"
                    },
                },
            )
        except stripe.StripeError as e:
            logger.error(
                "subscription_cancel_failed", subscription_id=subscription_id, error=str(e)
            )
            raise SubscriptionUpdateError("Subscription cancellation failed") from e

        logger.info(
            "subscription_cancel_scheduled",
            user_id=str(user.id),
            subscription_id=subscription_id,
            reason=reason,
        )
        return CancelSubscriptionResponse(
            message="Subscription canceled. Access continues until the end of the current period.",
            canceled_at=datetime.now(UTC),
            access_until=_period_bound(subscription, "current_period_end"),
        )

    async def reactivate_subscription(self, user_id: UUID) -> ReactivateSubscriptionResponse:
        """Undo a scheduled cancellation."""
        user, subscription_id = await self._cancelable_subscription(user_id)

        try:
            await self._require_stripe().subscriptions.update_async(
                subscription_id, params={"cancel_at_period_end": False}
            )
        except stripe.StripeError as e:
            logger.error(
                "subscription_reactivate_failed", subscription_id=subscription_id, error=str(e)
            )
            raise SubscriptionUpdateError("Subscription reactivation failed") from e

        logger.info(
            "subscription_reactivated", user_id=str(user.id), subscription_id=subscription_id
        )
        return ReactivateSubscriptionResponse(message="Subscription reactivated")

    async def _cancelable_subscription(self, user_id: UUID) -> tuple["User", str]:
        self._require_stripe()
        user = await self.auth_service.get_user_by_id(user_id)
        if not user:
            raise BillingUserNotFoundError()
        if (
            not user.stripe_subscription_id
            or user.subscription_status not in CANCELABLE_SUBSCRIPTION_STATUSES
        ):
            raise NoActiveSubscriptionError()
        return user, user.stripe_subscription_id

    # ==========================================================================
    # Webhooks
    # ==========================================================================

    async def handle_webhook(self, payload: bytes, signature: str | None) -> str:
        """Verify and process a Stripe webhook event. Returns the event type.

        Processing errors propagate so Stripe retries the delivery.
        """
        client = self._require_stripe()
        secret = self.settings.stripe_webhook_secret
        if not secret:
            raise BillingNotConfiguredError("Webhook secret is not configured")
        if not signature:
            raise InvalidWebhookError("Missing Stripe-Signature header")

        try:
            event = client.construct_event(payload, signature, secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("webhook_verification_failed", error=str(e))
            raise InvalidWebhookError() from e

        with stripe_event_context(event.id):
            logger.info("webhook_received", event_type=event.type)

            handler = self._event_handlers.get(event.type)
            if handler is None:
                logger.debug("webhook_event_ignored", event_type=event.type)
                return event.type

            await handler(event.data.object)
        return event.type

    async def _on_checkout_completed(self, checkout: Any) -> None:
        metadata = _metadata(checkout)
        user_id = _parse_uuid(metadata.get("userId"))

        await self.mark_checkout_completed(checkout.id)

        if not user_id:
            logger.warning("checkout_without_user", session_id=checkout.id)
            return

        mode = _field(checkout, "mode")
        if mode == CheckoutMode.PAYMENT.value:
            course_id = _parse_uuid(metadata.get("courseId"))
            if not course_id:
                logger.warning("checkout_without_course", session_id=checkout.id)
                return
            try:
                await self.progress_service.enroll_user(user_id, course_id)
            except AlreadyEnrolledError:
                logger.info(
                    "checkout_user_already_enrolled",
                    user_id=str(user_id),
                    course_id=str(course_id),
                )
                return
            logger.info(
                "course_purchased",
                user_id=str(user_id),
                course_id=str(course_id),
            )

        elif mode == CheckoutMode.SUBSCRIPTION.value:
            subscription_id = _field(checkout, "subscription")
            if not isinstance(subscription_id, str):
                subscription_id = _field(subscription_id, "id")
            status = "active"
            if subscription_id:
                subscription = await self._require_stripe().subscriptions.retrieve_async(
                    subscription_id
                )
                if _field(subscription, "status") == "trialing":
                    status = "trialing"
            await self.auth_service.update_subscription(user_id, status, subscription_id)

    async def _on_subscription_changed(self, subscription: Any) -> None:
        user = await self._find_subscription_user(subscription)
        if not user:
            logger.warning("subscription_user_not_found", subscription_id=subscription.id)
            return
        status = map_subscription_status(_field(subscription, "status"))
        await self.auth_service.update_subscription(user.id, status, subscription.id)

    async def _on_subscription_deleted(self, subscription: Any) -> None:
        user = await self._find_subscription_user(subscription)
        if not user:
            logger.warning("subscription_user_not_found", subscription_id=subscription.id)
            return
        await self.auth_service.update_subscription(user.id, "canceled", subscription.id)

    async def _on_invoice_payment_succeeded(self, invoice: Any) -> None:
        await self._update_subscription_from_invoice(invoice, "active")

    async def _on_invoice_payment_failed(self, invoice: Any) -> None:
        await self._update_subscription_from_invoice(invoice, "past_due")

    async def _update_subscription_from_invoice(self, invoice: Any, status: str) -> None:
        subscription_id = self._invoice_subscription_id(invoice)
        if not subscription_id:
            return
        customer_id = _field(invoice, "customer")
        user = (
            await self.auth_service.get_user_by_stripe_customer(customer_id)
            if customer_id
            else None
        )
        if not user:
            logger.warning("invoice_customer_not_found", invoice_id=invoice.id)
            return
        await self.auth_service.update_subscription(user.id, status, subscription_id)

    @staticmethod
    def _invoice_subscription_id(invoice: Any) -> str | None:
        subscription = _field(invoice, "subscription")
        if subscription is None:
            details = _field(_field(invoice, "parent"), "subscription_details")
            subscription = _field(details, "subscription")
        if subscription is None or isinstance(subscription, str):
            return subscription
        return _field(subscription, "id")

    async def _find_subscription_user(self, subscription: Any) -> "User | None":
        user_id = _parse_uuid(_metadata(subscription).get("userId"))
        if user_id:
            user = await self.auth_service.get_user_by_id(user_id)
            if user:
                return user
        customer_id = _field(subscription, "customer")
        if isinstance(customer_id, str):
            return await self.auth_service.get_user_by_stripe_customer(customer_id)
        return None
