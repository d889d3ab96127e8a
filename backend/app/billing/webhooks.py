"""Stripe webhook event handlers: one function per event type.

Handlers receive an already signature-verified ``stripe.Event``. Events that
do not match a local record are logged and ignored so Stripe does not keep
redelivering them.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.plans import PAID_PLAN_LABEL, billing_cycle_for_interval, get_plan_by_price_id
from app.billing.stripe_client import get_subscription
from app.models.restaurant import Restaurant
from app.models.subscription import SubscriptionStatus, normalize_plan, ts_to_naive
from app.services.subscription_service import (
    get_subscription_by_stripe_customer,
    get_subscription_by_stripe_subscription,
    mark_status,
    sync_subscription_from_stripe,
    upsert_subscription_for_restaurant,
)

logger = logging.getLogger(__name__)

WebhookHandler = Callable[[AsyncSession, stripe.Event], Awaitable[None]]


def _get_first_item(stripe_sub: stripe.Subscription):
    """Get the first subscription item, using bracket notation to avoid
    collision with Python dict .items() on Stripe objects.
    """
    sub_items = stripe_sub["items"] if "items" in stripe_sub else None
    if sub_items is not None and sub_items.data:
        return sub_items.data[0]
    return None


def _get_price(stripe_sub: stripe.Subscription):
    item = _get_first_item(stripe_sub)
    return item.price if item else None


def _get_price_id(stripe_sub: stripe.Subscription) -> str | None:
    """Extract the first price ID from a Stripe subscription's items."""
    price = _get_price(stripe_sub)
    return price.id if price else None


def _get_interval(stripe_sub: stripe.Subscription) -> str | None:
    """Recurring interval (``month``/``year``) of the first price."""
    price = _get_price(stripe_sub)
    recurring = getattr(price, "recurring", None) if price else None
    return getattr(recurring, "interval", None) if recurring else None


def _get_period(stripe_sub: stripe.Subscription) -> tuple[datetime | None, datetime | None]:
    """Extract current period start/end.

    Older API versions put the period on the subscription; since 2025-08-27
    (basil) it lives on the subscription item.
    """
    start = getattr(stripe_sub, "current_period_start", None)
    end = getattr(stripe_sub, "current_period_end", None)
    if start is None or end is None:
        item = _get_first_item(stripe_sub)
        if item:
            start = getattr(item, "current_period_start", None)
            end = getattr(item, "current_period_end", None)
    return ts_to_naive(start), ts_to_naive(end)


def _metadata_value(metadata, key: str) -> str | None:
    """Read a metadata key from a dict or a ``StripeObject`` (which has no ``.get``)."""
    return metadata[key] if key in metadata else None


def _is_stale(subscription, event_at: datetime | None) -> bool:
    """True when an event predates the last one applied to ``subscription``."""
    return (
        event_at is not None
        and subscription.last_event_at is not None
        and event_at < subscription.last_event_at
    )


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


async def handle_checkout_session_completed(
    db: AsyncSession, event: stripe.Event
) -> None:
    """Handle checkout.session.completed: activate the restaurant's subscription."""
    session = event.data.object
    subscription_id = session.subscription

    if not subscription_id:
        logger.info("Checkout session %s has no subscription (one-time?), skipping", session.id)
        return

    metadata = getattr(session, "metadata", None) or {}
    restaurant_id = _parse_uuid(_metadata_value(metadata, "restaurantId"))
    user_id = _parse_uuid(_metadata_value(metadata, "userId"))
    if restaurant_id is None or user_id is None:
        logger.warning(
            "Checkout session %s is missing userId/restaurantId metadata, skipping",
            session.id,
        )
        return

    if await db.get(Restaurant, restaurant_id) is None:
        logger.warning(
            "Checkout session %s references unknown restaurant %s",
            session.id,
            restaurant_id,
        )
        return

    # Fetch full subscription from Stripe to get price and period info
    stripe_sub = await get_subscription(subscription_id)
    price_id = _get_price_id(stripe_sub)

    # A configured price is authoritative; the metadata label is the fallback
    if get_plan_by_price_id(price_id) is not None:
        plan = PAID_PLAN_LABEL
    else:
        plan = normalize_plan(_metadata_value(metadata, "plan"))

    period_start, period_end = _get_period(stripe_sub)
    await upsert_subscription_for_restaurant(
        db,
        restaurant_id,
        user_id,
        stripe_subscription_id=subscription_id,
        stripe_customer_id=session.customer,
        stripe_price_id=price_id,
        plan=plan,
        billing_cycle=billing_cycle_for_interval(_get_interval(stripe_sub)),
        status=SubscriptionStatus.ACTIVE,
        current_period_start=period_start,
        current_period_end=period_end,
    )
    logger.info(
        "Checkout completed: subscription %s activated for restaurant %s",
        subscription_id,
        restaurant_id,
    )


async def handle_subscription_updated(
    db: AsyncSession, event: stripe.Event
) -> None:
    """Handle customer.subscription.updated: sync status and billing period."""
    stripe_sub = event.data.object
    subscription_id = stripe_sub.id

    subscription = await get_subscription_by_stripe_subscription(db, subscription_id)
    if subscription is None:
        logger.warning(
            "No local subscription found for Stripe subscription %s (update event)",
            subscription_id,
        )
        return

    event_at = ts_to_naive(getattr(event, "created", None))
    if _is_stale(subscription, event_at):
        logger.info(
            "Skipping stale update for %s (event %s older than last applied %s)",
            subscription_id,
            event_at,
            subscription.last_event_at,
        )
        return

    # Stripe never reactivates a canceled subscription; a later checkout creates a new one
    if (
        subscription.status == SubscriptionStatus.CANCELED
        and stripe_sub.status != SubscriptionStatus.CANCELED
    ):
        logger.info(
            "Ignoring update for canceled subscription %s (status %s)",
            subscription_id,
            stripe_sub.status,
        )
        return

    price_id = _get_price_id(stripe_sub)
    billing_plan = get_plan_by_price_id(price_id)

    period_start, period_end = _get_period(stripe_sub)
    await sync_subscription_from_stripe(
        db,
        subscription,
        status=stripe_sub.status,
        current_period_start=period_start,
        current_period_end=period_end,
        cancel_at_period_end=bool(getattr(stripe_sub, "cancel_at_period_end", False)),
        stripe_price_id=price_id if billing_plan else None,
        plan=PAID_PLAN_LABEL if billing_plan else None,
        billing_cycle=billing_plan.billing_cycle if billing_plan else None,
        event_at=event_at,
    )
    logger.info(
        "Subscription updated: %s → status=%s, cancel_at_period_end=%s",
        subscription_id,
        stripe_sub.status,
        subscription.cancel_at_period_end,
    )


async def handle_subscription_deleted(
    db: AsyncSession, event: stripe.Event
) -> None:
    """Handle customer.subscription.deleted: the paid period has ended."""
    stripe_sub = event.data.object
    subscription_id = stripe_sub.id

    subscription = await get_subscription_by_stripe_subscription(db, subscription_id)
    if subscription is None:
        logger.warning(
            "No local subscription found for Stripe subscription %s (delete event)",
            subscription_id,
        )
        return

    # Terminal: applied even when late, and stamped so older updates cannot revive it
    await mark_status(
        db,
        subscription,
        SubscriptionStatus.CANCELED,
        event_at=ts_to_naive(getattr(event, "created", None)),
    )


async def handle_invoice_payment_failed(
    db: AsyncSession, event: stripe.Event
) -> None:
    """Handle invoice.payment_failed: mark the customer's subscription past_due."""
    invoice = event.data.object
    customer_id = getattr(invoice, "customer", None)

    if not customer_id:
        logger.info("Invoice %s has no customer, skipping payment failure", invoice.id)
        return

    subscription = await get_subscription_by_stripe_customer(db, customer_id)
    if subscription is None:
        logger.warning(
            "No local subscription found for Stripe customer %s (payment failed)",
            customer_id,
        )
        return

    event_at = ts_to_naive(getattr(event, "created", None))
    if _is_stale(subscription, event_at):
        logger.info(
            "Skipping stale payment failure for customer %s (event %s older than last applied %s)",
            customer_id,
            event_at,
            subscription.last_event_at,
        )
        return

    await mark_status(db, subscription, SubscriptionStatus.PAST_DUE, event_at=event_at)


# Map event types to handler functions
EVENT_HANDLERS: dict[str, WebhookHandler] = {
    "checkout.session.completed": handle_checkout_session_completed,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
    "invoice.payment_failed": handle_invoice_payment_failed,
}


async def dispatch_event(db: AsyncSession, event: stripe.Event) -> bool:
    """Run the handler registered for ``event.type``.

    Returns False for event types nobody handles.
    """
    handler = EVENT_HANDLERS.get(event.type)
    if handler is None:
        logger.debug("Unhandled webhook event type: %s", event.type)
        return False

    logger.info("Processing webhook event: %s (id=%s)", event.type, event.id)
    await handler(db, event)
    return True
