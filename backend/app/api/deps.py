"""Shared API dependencies: single import point for all routers.

Re-exports database session, authentication and subscription-gate
dependencies so that router modules can import everything they need from
one place::

    from app.api.deps import get_db, get_current_active_user
"""

from app.auth.dependencies import get_current_active_user, get_current_user
from app.billing.dependencies import (
    GatedRestaurant,
    get_owned_restaurant,
    require_active_subscription,
)
from app.database import get_db

__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "GatedRestaurant",
    "get_owned_restaurant",
    "require_active_subscription",
]
