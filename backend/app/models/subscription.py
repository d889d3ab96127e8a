"""Subscription model: Stripe billing state per restaurant."""

import math
import uuid
from datetime import datetime, timedelta, timezone
from enum import StrEnum

from sqlalchemy import Boolean, ForeignKey, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

DEFAULT_TRIAL_DAYS = 7


class Plan(StrEnum):
    """Entitlement tier."""

    TRIAL = "trial"
    BASIC = "basic"
    PRO = "pro"
    PREMIUM = "premium"


class BillingCycle(StrEnum):
    TRIAL = "trial"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(StrEnum):
    """Billing state, mirroring Stripe's subscription statuses."""

    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"


def utcnow() -> datetime:
    """Current time as naive UTC, matching the DB columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_plan(label: str | None, default: Plan = Plan.PREMIUM) -> Plan:
    """Map a free-text plan label (e.g. checkout metadata) onto ``Plan``.

    Matching is case-insensitive and any label mentioning "premium" becomes
    ``Plan.PREMIUM``. Unknown or empty labels resolve to ``default``.
    """
    if not label:
        return default
    value = label.strip().lower()
    if "premium" in value:
        return Plan.PREMIUM
    try:
        return Plan(value)
    except ValueError:
        return default


def ts_to_naive(ts: int | None) -> datetime | None:
    """Convert a Unix timestamp (as sent by Stripe) to naive UTC."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, timezone.utc).replace(tzinfo=None)


def _default_trial_end() -> datetime:
    return utcnow() + timedelta(days=DEFAULT_TRIAL_DAYS)


class Subscription(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Tracks a restaurant's Stripe subscription and plan tier."""

    __tablename__ = "subscriptions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # One subscription per restaurant (UNIQUE enforces one-to-one)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # Stripe identifiers
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_price_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Plan & status
    plan: Mapped[str] = mapped_column(String(50), nullable=False, default=Plan.TRIAL)
    billing_cycle: Mapped[str] = mapped_column(String(20), nullable=False, default=BillingCycle.TRIAL)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=SubscriptionStatus.TRIALING)

    # Trial window
    trial_start: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    trial_end: Mapped[datetime] = mapped_column(nullable=False, default=_default_trial_end)

    # Billing period
    current_period_start: Mapped[datetime | None] = mapped_column(nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # Provider timestamp of the last applied customer.subscription.updated event
    last_event_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    restaurant: Mapped["Restaurant"] = relationship(back_populates="subscription", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    def is_active(self, now: datetime | None = None) -> bool:
        """Active when paid up, or trialing with the trial window still open."""
        now = now or utcnow()
        if self.status == SubscriptionStatus.ACTIVE:
            return True
        return self.status == SubscriptionStatus.TRIALING and self.trial_end > now

    def days_remaining(self, now: datetime | None = None) -> int:
        """Whole days left in the trial (while trialing) or the paid period."""
        now = now or utcnow()
        if self.status == SubscriptionStatus.TRIALING:
            end = self.trial_end
        else:
            end = self.current_period_end
        if end is None:
            return 0
        days = math.ceil((end - now).total_seconds() / 86400)
        return max(0, days)

    def __repr__(self) -> str:
        return (
            f"<Subscription(id={self.id}, restaurant_id={self.restaurant_id}, "
            f"plan={self.plan}, status={self.status})>"
        )
