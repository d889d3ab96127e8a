"""Subscription service: trial provisioning, checkout, status and repair.

Every function takes the request's ``AsyncSession`` and only flushes, so the
caller's transaction decides whether the work is committed. The one
exception is ``ensure_stripe_customer``, which commits the customer link as
soon as Stripe has created the customer.
"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.billing.errors import (
    AlreadySubscribedError,
    InvalidPlanError,
    NothingToCancelError,
    RestaurantNotFoundError,
    RestaurantRequiredError,
    SubscriptionNotFoundError,
)
from app.billing.plans import PAID_PLAN_LABEL, get_billing_plan
from app.billing.stripe_client import (
    cancel_subscription_at_period_end,
    create_checkout_session,
    create_customer,
    list_invoices,
)
from app.config import settings
from app.models.restaurant import Restaurant
from app.models.subscription import (
    BillingCycle,
    Plan,
    Subscription,
    SubscriptionStatus,
    ts_to_naive,
    utcnow,
)
from app.models.user import User
from app.schemas.subscription import (
    InvoiceResponse,
    ReconcileResponse,
    SubscriptionStatusResponse,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_restaurant_for_owner(db: AsyncSession, user: User) -> Restaurant | None:
    """Return the restaurant owned by ``user``, if any."""
    result = await db.execute(
        select(Restaurant).where(Restaurant.owner_id == user.id).limit(1)
    )
    return result.scalar_one_or_none()


async def get_subscription_for_restaurant(
    db: AsyncSession, restaurant_id: uuid.UUID
) -> Subscription | None:
    result = await db.execute(
        select(Subscription).where(Subscription.restaurant_id == restaurant_id)
    )
    return result.scalar_one_or_none()


async def get_subscription_by_stripe_customer(
    db: AsyncSession, stripe_customer_id: str
) -> Subscription | None:
    """Look up subscription by Stripe customer ID (used by webhooks)."""
    result = await db.execute(
        select(Subscription).where(
            Subscription.stripe_customer_id == stripe_customer_id
        )
    )
    return result.scalars().first()


async def get_subscription_by_stripe_subscription(
    db: AsyncSession, stripe_subscription_id: str
) -> Subscription | None:
    """Look up subscription by Stripe subscription ID (used by webhooks)."""
    result = await db.execute(
        select(Subscription).where(
            Subscription.stripe_subscription_id == stripe_subscription_id
        )
    )
    return result.scalars().first()


async def _require_owned_subscription(
    db: AsyncSession, user: User
) -> tuple[Restaurant, Subscription]:
    restaurant = await get_restaurant_for_owner(db, user)
    if restaurant is None:
        raise RestaurantNotFoundError()
    subscription = await get_subscription_for_restaurant(db, restaurant.id)
    if subscription is None:
        raise SubscriptionNotFoundError()
    return restaurant, subscription


# ---------------------------------------------------------------------------
# Trial provisioning
# ---------------------------------------------------------------------------


async def create_trial(
    db: AsyncSession, restaurant: Restaurant, user: User
) -> Subscription:
    """Create the trial subscription for a freshly created restaurant.

    Runs inside the restaurant-creation transaction. A second subscription
    for the same restaurant violates the unique constraint, and the resulting
    ``IntegrityError`` rolls back the restaurant as well.
    """
    now = utcnow()
    subscription = Subscription(
        user_id=user.id,
        restaurant_id=restaurant.id,
        plan=Plan.TRIAL,
        billing_cycle=BillingCycle.TRIAL,
        status=SubscriptionStatus.TRIALING,
        trial_start=now,
        trial_end=now + timedelta(days=settings.trial_days),
    )
    db.add(subscription)
    await db.flush()
    logger.info(
        "Started %d-day trial for restaurant %s (user %s)",
        settings.trial_days,
        restaurant.id,
        user.id,
    )
    return subscription


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


async def ensure_stripe_customer(db: AsyncSession, user: User) -> str:
    """Ensure the user has a Stripe customer ID. Create one if missing."""
    if user.stripe_customer_id:
        return user.stripe_customer_id

    customer = await create_customer(
        email=user.email,
        name=user.name or user.email,
        user_id=str(user.id),
    )
    user.stripe_customer_id = customer.id
    # Committed on its own so a failing checkout call cannot orphan the Stripe customer
    await db.commit()
    logger.info("Linked Stripe customer %s to user %s", customer.id, user.id)
    return customer.id


async def create_checkout(db: AsyncSession, user: User, plan_id: str) -> str:
    """Start a hosted checkout for ``plan_id`` and return its redirect URL.

    Raises:
        InvalidPlanError: unknown plan id or no price configured for it.
        RestaurantRequiredError: the user has no restaurant yet.
        AlreadySubscribedError: the restaurant already has an active paid plan.
    """
    billing_plan = get_billing_plan(plan_id)
    if billing_plan is None:
        raise InvalidPlanError()

    restaurant = await get_restaurant_for_owner(db, user)
    if restaurant is None:
        raise RestaurantRequiredError()

    existing = await get_subscription_for_restaurant(db, restaurant.id)
    if existing is not None and existing.is_active() and existing.plan != Plan.TRIAL:
        raise AlreadySubscribedError()

    customer_id = await ensure_stripe_customer(db, user)

    base_url = f"{settings.frontend_url.rstrip('/')}/dashboard/subscription"
    session = await create_checkout_session(
        customer_id=customer_id,
        price_id=billing_plan.stripe_price_id,
        success_url=f"{base_url}?success=true",
        cancel_url=f"{base_url}?canceled=true",
        metadata={
            "userId": str(user.id),
            "restaurantId": str(restaurant.id),
            "plan": PAID_PLAN_LABEL.value,
        },
    )
    logger.info(
        "Checkout session %s created for restaurant %s (%s)",
        session.id,
        restaurant.id,
        billing_plan.name,
    )
    return session.url


# ---------------------------------------------------------------------------
# Webhook-driven writes
# ---------------------------------------------------------------------------


async def upsert_subscription_for_restaurant(
    db: AsyncSession,
    restaurant_id: uuid.UUID,
    user_id: uuid.UUID,
    *,
    stripe_subscription_id: str,
    stripe_customer_id: str | None,
    stripe_price_id: str | None,
    plan: str,
    billing_cycle: str,
    status: str,
    current_period_start: datetime | None,
    current_period_end: datetime | None,
) -> Subscription:
    """Apply a completed checkout to the restaurant's subscription.

    Keyed on the restaurant rather than a known subscription id so it lands
    even when the trial row is not visible yet; every field is an absolute
    set, so replaying the same checkout leaves the row unchanged.
    """
    subscription = await get_subscription_for_restaurant(db, restaurant_id)
    if subscription is None:
        logger.info("No subscription row for restaurant %s, creating one", restaurant_id)
        subscription = Subscription(restaurant_id=restaurant_id, user_id=user_id)
        db.add(subscription)

    if subscription.stripe_subscription_id != stripe_subscription_id:
        # New Stripe subscription: drop state carried over from the previous one
        subscription.cancel_at_period_end = False
        subscription.last_event_at = None

    subscription.user_id = user_id
    subscription.stripe_subscription_id = stripe_subscription_id
    subscription.stripe_customer_id = stripe_customer_id
    subscription.stripe_price_id = stripe_price_id
    subscription.plan = plan
    subscription.billing_cycle = billing_cycle
    subscription.status = status
    subscription.current_period_start = current_period_start
    subscription.current_period_end = current_period_end
    await db.flush()

    logger.info(
        "Restaurant %s subscription %s: plan=%s, cycle=%s, status=%s",
        restaurant_id,
        stripe_subscription_id,
        plan,
        billing_cycle,
        status,
    )
    return subscription


async def sync_subscription_from_stripe(
    db: AsyncSession,
    subscription: Subscription,
    status: str,
    current_period_start: datetime | None,
    current_period_end: datetime | None,
    cancel_at_period_end: bool,
    *,
    stripe_price_id: str | None = None,
    plan: str | None = None,
    billing_cycle: str | None = None,
    event_at: datetime | None = None,
) -> Subscription:
    """Overwrite status and period fields with Stripe's current snapshot.

    Plan fields are only touched when the caller derived them from a known
    price; ``event_at`` records the provider time of the applied event.
    """
    if stripe_price_id is not None:
        subscription.stripe_price_id = stripe_price_id
    if plan is not None:
        subscription.plan = plan
    if billing_cycle is not None:
        subscription.billing_cycle = billing_cycle
    if event_at is not None:
        subscription.last_event_at = event_at
    subscription.status = status
    subscription.current_period_start = current_period_start
    subscription.current_period_end = current_period_end
    subscription.cancel_at_period_end = cancel_at_period_end
    await db.flush()
    return subscription


async def mark_status(
    db: AsyncSession,
    subscription: Subscription,
    status: SubscriptionStatus,
    event_at: datetime | None = None,
) -> Subscription:
    """Set ``status``; ``event_at`` advances the ordering watermark, never moves it back."""
    subscription.status = status
    if event_at is not None and (
        subscription.last_event_at is None or event_at > subscription.last_event_at
    ):
        subscription.last_event_at = event_at
    await db.flush()
    logger.info("Subscription %s marked as %s", subscription.id, status)
    return subscription


# ---------------------------------------------------------------------------
# Dashboard operations
# ---------------------------------------------------------------------------


async def get_status(db: AsyncSession, user: User) -> SubscriptionStatusResponse:
    """Derived subscription view for the user's restaurant."""
    _, subscription = await _require_owned_subscription(db, user)
    return SubscriptionStatusResponse(
        plan=subscription.plan,
        status=subscription.status,
        is_active=subscription.is_active(),
        days_remaining=subscription.days_remaining(),
        current_period_end=subscription.current_period_end,
        cancel_at_period_end=subscription.cancel_at_period_end,
    )


async def cancel(db: AsyncSession, user: User) -> Subscription:
    """Schedule the paid subscription to end with the current billing period.

    Access is kept until then; the ``customer.subscription.deleted`` webhook
    finally flips the status to canceled.
    """
    restaurant = await get_restaurant_for_owner(db, user)
    subscription = (
        await get_subscription_for_restaurant(db, restaurant.id) if restaurant else None
    )
    if subscription is None or not subscription.stripe_subscription_id:
        raise NothingToCancelError()

    await cancel_subscription_at_period_end(subscription.stripe_subscription_id)

    subscription.cancel_at_period_end = True
    await db.flush()
    logger.info(
        "Subscription %s set to cancel at period end (restaurant %s)",
        subscription.stripe_subscription_id,
        restaurant.id,
    )
    return subscription


def _invoice_plan_name(invoice) -> str:
    lines = getattr(invoice, "lines", None)
    data = getattr(lines, "data", None) if lines is not None else None
    if data:
        description = getattr(data[0], "description", None)
        if description:
            return description
    return "Subscription Plan"


def _invoice_to_response(invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=invoice.id,
        amount=(invoice.amount_paid or 0) / 100,
        currency=invoice.currency,
        status=invoice.status,
        date=ts_to_naive(invoice.created),
        pdf_url=getattr(invoice, "invoice_pdf", None),
        number=getattr(invoice, "number", None),
        plan_name=_invoice_plan_name(invoice),
    )


async def get_history(user: User) -> list[InvoiceResponse]:
    """Recent invoices for the user's Stripe customer (empty while on trial)."""
    if not user.stripe_customer_id:
        return []
    invoices = await list_invoices(user.stripe_customer_id, limit=settings.invoice_history_limit)
    return [_invoice_to_response(invoice) for invoice in invoices]


async def reconcile(db: AsyncSession, user: User) -> ReconcileResponse:
    """Repair a subscription left on the trial plan after a paid checkout.

    Happens when ``customer.subscription.updated`` lands before (or instead
    of) the checkout completion that assigns the paid plan. Already
    consistent rows are left untouched.
    """
    _, subscription = await _require_owned_subscription(db, user)

    updated = False
    if (
        subscription.plan == Plan.TRIAL
        and subscription.stripe_subscription_id
        and subscription.status == SubscriptionStatus.ACTIVE
    ):
        subscription.plan = PAID_PLAN_LABEL
        await db.flush()
        updated = True
        logger.warning(
            "Reconciled subscription %s: trial plan with active Stripe subscription %s",
            subscription.id,
            subscription.stripe_subscription_id,
        )

    return ReconcileResponse(
        message="Subscription reconciled" if updated else "No changes needed",
        plan=subscription.plan,
        status=subscription.status,
    )
