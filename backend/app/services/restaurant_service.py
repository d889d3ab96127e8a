"""Restaurant service: creation with trial provisioning, profile updates, QR target."""

import logging
import random
import re

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.restaurant import Restaurant
from app.models.subscription import Subscription
from app.models.user import User
from app.schemas.restaurant import RestaurantCreate, RestaurantUpdate
from app.services.subscription_service import create_trial, get_restaurant_for_owner

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


class RestaurantAlreadyExistsError(Exception):
    """The user already owns a restaurant."""


def slugify(name: str) -> str:
    slug = _NON_SLUG_CHARS.sub("-", name.lower()).strip("-")
    return slug or "restaurant"


async def _unique_slug(db: AsyncSession, name: str) -> str:
    """``<slug>-NNNN`` with a counter suffix appended on collision."""
    candidate = f"{slugify(name)}-{random.randint(1000, 9999)}"
    slug = candidate
    counter = 1
    while (
        await db.execute(select(Restaurant.id).where(Restaurant.slug == slug))
    ).first() is not None:
        slug = f"{candidate}-{counter}"
        counter += 1
    return slug


def menu_url(restaurant: Restaurant) -> str:
    """Public menu URL encoded in the restaurant's QR code."""
    return f"{settings.menu_base_url}/{restaurant.slug}"


def regenerate_qr(restaurant: Restaurant) -> str:
    """Point the restaurant's QR code at its current public menu URL.

    The image itself is rendered client-side from this target.
    """
    restaurant.qr_code_url = menu_url(restaurant)
    return restaurant.qr_code_url


async def create_restaurant(
    db: AsyncSession, user: User, data: RestaurantCreate
) -> tuple[Restaurant, Subscription]:
    """Create the user's restaurant and its trial subscription in one transaction."""
    if await get_restaurant_for_owner(db, user) is not None:
        raise RestaurantAlreadyExistsError()

    restaurant = Restaurant(
        owner_id=user.id,
        slug=await _unique_slug(db, data.name),
        **data.model_dump(),
    )
    regenerate_qr(restaurant)
    db.add(restaurant)
    await db.flush()

    subscription = await create_trial(db, restaurant, user)
    await db.refresh(restaurant)
    logger.info("Created restaurant %s (%s) for user %s", restaurant.id, restaurant.slug, user.id)
    return restaurant, subscription


async def update_restaurant(
    db: AsyncSession, restaurant: Restaurant, data: RestaurantUpdate
) -> Restaurant:
    """Apply the provided fields; a name change re-slugs and re-targets the QR code."""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(restaurant, field, value)

    if "name" in changes:
        restaurant.slug = await _unique_slug(db, restaurant.name)
        regenerate_qr(restaurant)

    await db.flush()
    await db.refresh(restaurant)
    return restaurant
