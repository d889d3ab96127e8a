"""Pydantic v2 request/response schemas for subscription endpoints.

Responses are serialised with camelCase keys, which is what the dashboard
client reads.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Request schemas ---


class CheckoutRequest(BaseModel):
    """Request to create a Stripe Checkout session."""

    plan: str  # "monthly" or "yearly"


# --- Response schemas ---


class CheckoutResponse(BaseModel):
    """Hosted checkout URL the dashboard redirects to."""

    url: str


class SubscriptionStatusResponse(_CamelModel):
    """Derived subscription view for the current user's restaurant."""

    plan: str
    status: str
    is_active: bool
    days_remaining: int
    current_period_end: datetime | None
    cancel_at_period_end: bool


class InvoiceResponse(_CamelModel):
    """One past invoice, amounts in major currency units."""

    id: str
    amount: float
    currency: str
    status: str | None
    date: datetime
    pdf_url: str | None
    number: str | None
    plan_name: str


class CancelResponse(BaseModel):
    message: str


class ReconcileResponse(BaseModel):
    """Outcome of a reconciliation pass."""

    message: str
    plan: str
    status: str


class WebhookAck(BaseModel):
    received: bool = True
