"""Create the Premium product and its prices in Stripe test mode.

Run once inside the backend container:
    python -m app.billing.scripts.create_stripe_products

Outputs price IDs to set in .env:
    STRIPE_MONTHLY_PRICE_ID=price_xxx
    STRIPE_YEARLY_PRICE_ID=price_xxx
"""

import asyncio

from app.billing.stripe_client import get_stripe_client
from app.config import settings

# Amounts in paise
MONTHLY_AMOUNT = 49900
YEARLY_AMOUNT = 499900
CURRENCY = "inr"


async def main() -> None:
    if not settings.stripe_secret_key:
        print("ERROR: STRIPE_SECRET_KEY is not set in .env")
        return

    client = get_stripe_client()

    product = await client.v1.products.create_async(
        params={
            "name": "QR Menu Premium",
            "description": "Unlimited menu edits, QR code regeneration and restaurant profile updates",
        }
    )
    print(f"Created product: {product.name} ({product.id})")

    prices = {}
    for interval, amount in (("month", MONTHLY_AMOUNT), ("year", YEARLY_AMOUNT)):
        price = await client.v1.prices.create_async(
            params={
                "product": product.id,
                "unit_amount": amount,
                "currency": CURRENCY,
                "recurring": {"interval": interval},
            }
        )
        prices[interval] = price
        print(f"  Price: {amount / 100:.2f} {CURRENCY.upper()}/{interval} ({price.id})")

    print("\n--- Add these to your .env ---")
    print(f"STRIPE_MONTHLY_PRICE_ID={prices['month'].id}")
    print(f"STRIPE_YEARLY_PRICE_ID={prices['year'].id}")


if __name__ == "__main__":
    asyncio.run(main())
