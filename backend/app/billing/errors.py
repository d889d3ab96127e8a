"""Subscription error taxonomy and their HTTP mapping."""

import logging

import stripe
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SubscriptionError(Exception):
    """Base class for user-facing subscription errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Subscription request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidPlanError(SubscriptionError):
    message = "Invalid plan selected"


class RestaurantRequiredError(SubscriptionError):
    message = "Please create a restaurant first"


class AlreadySubscribedError(SubscriptionError):
    message = "You already have an active premium subscription"


class NothingToCancelError(SubscriptionError):
    message = "No active subscription to cancel"


class RestaurantNotFoundError(SubscriptionError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "No restaurant found"


class SubscriptionNotFoundError(SubscriptionError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "No subscription found"


def register_exception_handlers(app: FastAPI) -> None:
    """Translate service-layer and Stripe errors into JSON responses."""

    @app.exception_handler(SubscriptionError)
    async def subscription_error_handler(request: Request, exc: SubscriptionError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message},
        )

    @app.exception_handler(stripe.StripeError)
    async def stripe_error_handler(request: Request, exc: stripe.StripeError) -> JSONResponse:
        logger.error("Stripe error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "Billing provider error"},
        )
