"""Stripe client construction.

The client is built once in the application lifespan and injected into
BillingService.
"""

import stripe
import structlog

from src.config.settings import Settings


logger = structlog.get_logger(__name__)


def create_stripe_client(settings: Settings) -> stripe.StripeClient | None:
    """Create a StripeClient using httpx (async-capable), or None if unconfigured."""
    if not settings.stripe_configured:
        logger.warning("stripe_not_configured")
        return None

    return stripe.StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )
