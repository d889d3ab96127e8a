"""Pydantic v2 schemas for the restaurant endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class RestaurantCreate(BaseModel):
    """Fields accepted when creating a restaurant."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, pattern=r"^[0-9+\-() ]*$")
    email: EmailStr | None = None
    currency: str = Field(default="INR", max_length=10)
    theme_color: str = Field(default="#f97316", max_length=20)


class RestaurantUpdate(BaseModel):
    """Partial update; only provided fields are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    phone: str | None = Field(default=None, pattern=r"^[0-9+\-() ]*$")
    email: EmailStr | None = None
    currency: str | None = Field(default=None, max_length=10)
    theme_color: str | None = Field(default=None, max_length=20)


class RestaurantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    slug: str
    description: str | None
    phone: str | None
    email: str | None
    currency: str
    theme_color: str
    is_active: bool
    qr_code_url: str
    created_at: datetime | None = None


class TrialSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    plan: str
    status: str
    trial_end: datetime


class RestaurantCreatedResponse(BaseModel):
    """New restaurant plus the trial provisioned alongside it."""

    restaurant: RestaurantResponse
    subscription: TrialSummary


class QRCodeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    qr_code: str
    menu_url: str
