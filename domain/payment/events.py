"""
Payment domain events.

`PaymentEvent` is the provider-agnostic shape every webhook is normalized
into before reconciliation. It is processed once and never persisted.
Domain remains free of infrastructure imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import uuid

from domain.common.exceptions import DomainValidationException
from domain.enrollment.entity import ProductType
from domain.payment.entity import PaymentOutcome, PaymentProvider


@dataclass(frozen=True)
class ProductMetadata:
    """Structured side-channel metadata a provider echoes back."""

    product_id: Optional[str] = None
    user_id: Optional[str] = None
    product_type: Optional[ProductType] = None
    product_title: Optional[str] = None

    @property
    def is_usable(self) -> bool:
        return bool(self.product_id and self.user_id)


@dataclass
class PaymentEvent:
    provider: PaymentProvider
    external_payment_id: str
    outcome: PaymentOutcome
    net_amount: Decimal
    currency: str
    reference: Optional[str] = None
    raw_extra: Optional[ProductMetadata] = None
    provider_state: Optional[str] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.external_payment_id:
            raise DomainValidationException("external_payment_id is required", field="external_payment_id")
        self.currency = (self.currency or "").upper()
