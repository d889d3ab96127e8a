"""Plan catalogue: checkout plan ids mapped to per-environment Stripe prices."""

from dataclasses import dataclass

from app.config import Settings, settings
from app.models.subscription import BillingCycle, Plan

PAID_PLAN_LABEL = Plan.PREMIUM


@dataclass(frozen=True)
class BillingPlan:
    """A purchasable billing option."""

    name: str  # checkout plan id sent by the dashboard
    display_name: str
    billing_cycle: BillingCycle
    interval: str  # Stripe recurring interval
    stripe_price_id: str | None  # None when not configured for this environment


def build_plans(config: Settings) -> dict[str, BillingPlan]:
    """Build the plan table from configuration so price ids differ per environment."""
    return {
        "monthly": BillingPlan(
            name="monthly",
            display_name="Premium (monthly)",
            billing_cycle=BillingCycle.MONTHLY,
            interval="month",
            stripe_price_id=config.stripe_monthly_price_id or None,
        ),
        "yearly": BillingPlan(
            name="yearly",
            display_name="Premium (yearly)",
            billing_cycle=BillingCycle.YEARLY,
            interval="year",
            stripe_price_id=config.stripe_yearly_price_id or None,
        ),
    }


PLANS: dict[str, BillingPlan] = build_plans(settings)


def get_billing_plan(plan_id: str) -> BillingPlan | None:
    """Get a purchasable plan by id. Returns None for unknown or unpriced plans."""
    plan = PLANS.get(plan_id)
    if plan is None or not plan.stripe_price_id:
        return None
    return plan


def get_plan_by_price_id(price_id: str | None) -> BillingPlan | None:
    """Reverse lookup: Stripe price ID -> billing plan. Returns None if not found."""
    if not price_id:
        return None
    for plan in PLANS.values():
        if plan.stripe_price_id and plan.stripe_price_id == price_id:
            return plan
    return None


def billing_cycle_for_interval(interval: str | None) -> BillingCycle:
    """Stripe recurring interval -> local billing cycle (``year`` is yearly, anything else monthly)."""
    return BillingCycle.YEARLY if interval == "year" else BillingCycle.MONTHLY
