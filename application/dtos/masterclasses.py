"""
Masterclass DTOs (Pydantic v2): public listing and admin operations.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.catalog.entity import Product, ScheduleStatus


class MasterclassDTO(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    instructor: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    status: ScheduleStatus
    is_free: bool
    is_premium: bool
    price: Optional[Decimal] = None
    currency: str
    attendees: int = 0
    max_attendees: Optional[int] = None

    @classmethod
    def from_product(cls, product: Product, now: datetime) -> "MasterclassDTO":
        return cls(
            id=product.id,
            title=product.title,
            description=product.description,
            instructor=product.instructor,
            starts_at=product.starts_at,
            ends_at=product.ends_at,
            status=product.schedule_status(now),
            is_free=product.is_free,
            is_premium=product.is_premium,
            price=product.price,
            currency=product.currency,
            attendees=product.attendee_count,
            max_attendees=product.max_attendees,
        )


class MasterclassPricingUpdate(BaseModel):
    """Body of PUT /admin/masterclasses/pricing. ``is_free`` wins over ``is_premium``."""

    masterclass_id: str = Field(alias="masterclassId", min_length=1)
    price: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    is_premium: bool = Field(default=False, alias="isPremium")
    is_free: bool = Field(default=False, alias="isFree")

    model_config = ConfigDict(populate_by_name=True)


class MasterclassInviteRequest(BaseModel):
    """Body of POST /admin/masterclasses/invites."""

    masterclass_id: str = Field(alias="masterclassId", min_length=1)
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")

    model_config = ConfigDict(populate_by_name=True)


class MasterclassInviteResult(BaseModel):
    masterclass_id: str
    masterclass_title: str
    email: str
