"""Subscription gating dependencies: restaurant-mutating routes need an active plan."""

import logging
import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_active_user
from app.database import get_db
from app.models.restaurant import Restaurant
from app.models.subscription import Subscription
from app.models.user import User
from app.services.subscription_service import get_subscription_for_restaurant

logger = logging.getLogger(__name__)


@dataclass
class GatedRestaurant:
    """Restaurant and subscription resolved by the gate, handed to the route."""

    restaurant: Restaurant
    subscription: Subscription


async def get_owned_restaurant(
    restaurant_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> Restaurant:
    """Resolve ``restaurant_id`` and check the caller owns it.

    Raises:
        HTTPException 404: If the restaurant does not exist.
        HTTPException 403: If it belongs to someone else.
    """
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Restaurant not found",
        )
    if restaurant.owner_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return restaurant


async def require_active_subscription(
    restaurant: Restaurant = Depends(get_owned_restaurant),
    db: AsyncSession = Depends(get_db),
) -> GatedRestaurant:
    """Raise 403 unless the restaurant's subscription is currently active.

    The 403 body carries ``subscriptionStatus`` so the dashboard can tell an
    expired trial apart from a failed payment.
    """
    subscription = await get_subscription_for_restaurant(db, restaurant.id)
    if subscription is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "No subscription found for this restaurant"},
        )

    if not subscription.is_active():
        logger.info(
            "Blocked restaurant %s: subscription status %s",
            restaurant.id,
            subscription.status,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "Your subscription has expired. Please renew to continue.",
                "subscriptionStatus": subscription.status,
                "upgrade_url": "/api/subscription/create-checkout",
            },
        )

    return GatedRestaurant(restaurant=restaurant, subscription=subscription)
