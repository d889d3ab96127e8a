"""Optional Stripe integration tests: hit the real Stripe test mode API.

Skipped unless ``STRIPE_INTEGRATION_SECRET_KEY`` holds a test-mode key; the
regular suite runs with a dummy key and patched Stripe calls.
"""

import os

import pytest
import stripe

from app.billing.stripe_client import (
    create_checkout_session,
    create_customer,
    get_subscription,
    list_invoices,
)
from app.config import settings

_integration_key = os.getenv("STRIPE_INTEGRATION_SECRET_KEY", "")

SKIP_REASON = "STRIPE_INTEGRATION_SECRET_KEY not set, skipping real Stripe integration tests"
pytestmark = [
    pytest.mark.asyncio,
    pytest.mark.skipif(not _integration_key.startswith("sk_test_"), reason=SKIP_REASON),
]


@pytest.fixture(autouse=True)
def _real_stripe_key(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", _integration_key)


class TestStripeIntegration:
    """Real Stripe API tests, test mode only."""

    async def test_create_real_customer(self):
        customer = await create_customer(
            email="integration-test@example.com",
            name="Integration Test Owner",
            user_id="test-integration-user-id",
        )
        assert customer.id.startswith("cus_")
        assert customer.email == "integration-test@example.com"
        assert customer.metadata["userId"] == "test-integration-user-id"

    async def test_new_customer_has_no_invoices(self):
        customer = await create_customer(
            email="history-test@example.com",
            name="History Test Owner",
            user_id="test-history-user-id",
        )
        assert await list_invoices(customer.id, limit=12) == []

    async def test_create_checkout_session_returns_url(self):
        price_id = os.getenv("STRIPE_INTEGRATION_PRICE_ID")
        if not price_id:
            pytest.skip("STRIPE_INTEGRATION_PRICE_ID not configured")

        customer = await create_customer(
            email="checkout-test@example.com",
            name="Checkout Test Owner",
            user_id="test-checkout-user-id",
        )
        session = await create_checkout_session(
            customer_id=customer.id,
            price_id=price_id,
            success_url="https://example.com/success",
            cancel_url="https://example.com/cancel",
            metadata={"userId": "u", "restaurantId": "r", "plan": "premium"},
        )
        assert session.id.startswith("cs_")
        assert "checkout.stripe.com" in session.url
        assert session.metadata["plan"] == "premium"

    async def test_retrieve_nonexistent_subscription(self):
        with pytest.raises(stripe.InvalidRequestError):
            await get_subscription("sub_nonexistent_12345")
