"""
Enrollment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from domain.enrollment.entity import AttendanceStatus, EnrollmentStatus, ProductType


class Principal(BaseModel):
    """Caller identity taken from a verified bearer token."""

    external_id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    image_url: Optional[str] = None
    roles: list[str] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles


class EnrollmentStatusResponse(BaseModel):
    is_enrolled: bool = Field(serialization_alias="isEnrolled")


class EnrollmentDTO(BaseModel):
    id: int
    product_type: ProductType
    product_id: str
    product_title: Optional[str] = None
    status: EnrollmentStatus
    amount: Decimal
    currency: str
    provider: Optional[str] = None
    external_payment_id: Optional[str] = None
    access_granted: bool = True
    attendance_status: Optional[AttendanceStatus] = None
    enrolled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
