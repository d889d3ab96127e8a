"""Subscription API endpoints: status, Stripe Checkout, history, cancel, and the Stripe webhook."""

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user, get_db
from app.billing.stripe_client import construct_webhook_event
from app.billing.webhooks import dispatch_event
from app.models.user import User
from app.schemas.subscription import (
    CancelResponse,
    CheckoutRequest,
    CheckoutResponse,
    InvoiceResponse,
    ReconcileResponse,
    SubscriptionStatusResponse,
    WebhookAck,
)
from app.services import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription", tags=["subscription"])


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> WebhookAck:
    """Receive and process Stripe webhook events (no auth, signature-verified)."""
    # Raw bytes are required for signature verification
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature", "")

    try:
        event = construct_webhook_event(payload, sig_header)
    except stripe.SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature",
        ) from e
    except ValueError as e:
        logger.warning("Invalid webhook payload")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload",
        ) from e

    try:
        await dispatch_event(db, event)
    except Exception as e:
        logger.exception("Error processing webhook event %s", event.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        ) from e

    return WebhookAck(received=True)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> SubscriptionStatusResponse:
    """Plan, status and remaining days for the caller's restaurant."""
    return await subscription_service.get_status(db, current_user)


@router.post("/create-checkout", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CheckoutResponse:
    """Create a Stripe Checkout session for the monthly or yearly plan."""
    url = await subscription_service.create_checkout(db, current_user, body.plan)
    return CheckoutResponse(url=url)


@router.get("/history", response_model=list[InvoiceResponse])
async def get_payment_history(
    current_user: User = Depends(get_current_active_user),
) -> list[InvoiceResponse]:
    """Recent Stripe invoices for the caller."""
    return await subscription_service.get_history(current_user)


@router.post("/cancel", response_model=CancelResponse)
async def cancel_subscription(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CancelResponse:
    """Cancel at the end of the current billing period."""
    await subscription_service.cancel(db, current_user)
    return CancelResponse(
        message="Subscription will be canceled at the end of billing period"
    )


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_subscription(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ReconcileResponse:
    """Repair a paid subscription still labelled as trial."""
    return await subscription_service.reconcile(db, current_user)
