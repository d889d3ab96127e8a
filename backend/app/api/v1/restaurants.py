"""Restaurant endpoints: create (with trial), read, gated update and QR regeneration."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    GatedRestaurant,
    get_current_active_user,
    get_db,
    get_owned_restaurant,
    require_active_subscription,
)
from app.models.restaurant import Restaurant
from app.models.user import User
from app.schemas.restaurant import (
    QRCodeResponse,
    RestaurantCreate,
    RestaurantCreatedResponse,
    RestaurantResponse,
    RestaurantUpdate,
    TrialSummary,
)
from app.services.restaurant_service import (
    RestaurantAlreadyExistsError,
    create_restaurant,
    menu_url,
    regenerate_qr,
    update_restaurant,
)
from app.services.subscription_service import get_restaurant_for_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/restaurants", tags=["restaurants"])


@router.post("", response_model=RestaurantCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create(
    body: RestaurantCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> RestaurantCreatedResponse:
    """Create the caller's restaurant; a 7-day trial starts with it."""
    try:
        restaurant, subscription = await create_restaurant(db, current_user, body)
    except RestaurantAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already have a restaurant. Upgrade to add more.",
        ) from None

    return RestaurantCreatedResponse(
        restaurant=RestaurantResponse.model_validate(restaurant),
        subscription=TrialSummary(
            plan=subscription.plan,
            status=subscription.status,
            trial_end=subscription.trial_end,
        ),
    )


@router.get("/my", response_model=RestaurantResponse)
async def get_my_restaurant(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Restaurant:
    restaurant = await get_restaurant_for_owner(db, current_user)
    if restaurant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No restaurant found",
        )
    return restaurant


@router.put("/{restaurant_id}", response_model=RestaurantResponse)
async def update(
    body: RestaurantUpdate,
    gated: GatedRestaurant = Depends(require_active_subscription),
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    """Update restaurant profile (requires an active subscription)."""
    return await update_restaurant(db, gated.restaurant, body)


@router.get("/{restaurant_id}/qr", response_model=QRCodeResponse)
async def get_qr_code(
    restaurant: Restaurant = Depends(get_owned_restaurant),
) -> QRCodeResponse:
    return QRCodeResponse(qr_code=restaurant.qr_code_url, menu_url=menu_url(restaurant))


@router.post("/{restaurant_id}/qr/regenerate", response_model=QRCodeResponse)
async def regenerate_qr_code(
    gated: GatedRestaurant = Depends(require_active_subscription),
    db: AsyncSession = Depends(get_db),
) -> QRCodeResponse:
    """Re-point the QR code at the current menu URL (requires an active subscription)."""
    restaurant = gated.restaurant
    regenerate_qr(restaurant)
    await db.flush()
    logger.info("Regenerated QR code for restaurant %s", restaurant.id)
    return QRCodeResponse(qr_code=restaurant.qr_code_url, menu_url=menu_url(restaurant))
