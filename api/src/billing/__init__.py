"""Billing module: Stripe checkout, invoices and webhooks."""

from .models import BILLING_TABLES_CQL, CheckoutMode, CheckoutSession, CheckoutStatus


__all__ = [
    "BILLING_TABLES_CQL",
    "CheckoutMode",
    "CheckoutSession",
    "CheckoutStatus",
]
