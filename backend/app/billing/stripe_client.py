"""Async Stripe API wrapper for the QR menu backend."""

import logging

import stripe
from stripe import StripeClient

from app.config import settings

logger = logging.getLogger(__name__)


def get_stripe_client() -> StripeClient:
    """Create a StripeClient instance with async HTTP support."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )


async def create_customer(email: str, name: str, user_id: str) -> stripe.Customer:
    """Create a Stripe customer linked to a local user."""
    client = get_stripe_client()
    logger.info("Creating Stripe customer for user %s (%s)", user_id, email)
    customer = await client.v1.customers.create_async(
        params={
            "email": email,
            "name": name,
            "metadata": {"userId": user_id},
        }
    )
    logger.info("Created Stripe customer %s for user %s", customer.id, user_id)
    return customer


async def create_checkout_session(
    customer_id: str,
    price_id: str,
    success_url: str,
    cancel_url: str,
    metadata: dict[str, str],
) -> stripe.checkout.Session:
    """Create a hosted Stripe Checkout Session for a subscription.

    ``metadata`` is echoed back on ``checkout.session.completed`` and is the
    only link between the payment and the local user and restaurant.
    """
    client = get_stripe_client()
    logger.info(
        "Creating checkout session for customer %s, price %s",
        customer_id,
        price_id,
    )
    return await client.v1.checkout.sessions.create_async(
        params={
            "mode": "subscription",
            "customer": customer_id,
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
    )


async def get_subscription(subscription_id: str) -> stripe.Subscription:
    """Retrieve a Stripe subscription by ID."""
    client = get_stripe_client()
    return await client.v1.subscriptions.retrieve_async(subscription_id)


async def cancel_subscription_at_period_end(subscription_id: str) -> stripe.Subscription:
    """Schedule a Stripe subscription to lapse at the end of its current period."""
    client = get_stripe_client()
    logger.info("Scheduling cancellation at period end for %s", subscription_id)
    return await client.v1.subscriptions.update_async(
        subscription_id,
        params={"cancel_at_period_end": True},
    )


async def list_invoices(customer_id: str, limit: int) -> list[stripe.Invoice]:
    """List the most recent invoices for a customer, newest first."""
    client = get_stripe_client()
    invoices = await client.v1.invoices.list_async(
        params={"customer": customer_id, "limit": limit}
    )
    return list(invoices.data)


def construct_webhook_event(payload: bytes, sig_header: str) -> stripe.Event:
    """Verify and construct a Stripe webhook event (synchronous)."""
    client = get_stripe_client()
    return client.construct_event(payload, sig_header, settings.stripe_webhook_secret)
