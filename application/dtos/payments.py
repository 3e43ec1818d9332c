"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.enrollment.entity import ProductType
from domain.payment.entity import PaymentProvider

# Currencies the storefront prices in (see shared.currency)
SUPPORTED_CURRENCIES = {"KES", "USD", "EUR", "GBP"}


class CheckoutRequest(BaseModel):
    """Body of POST /checkout."""

    product_type: ProductType = Field(alias="productType")
    product_id: str = Field(alias="productId", min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")
    provider: PaymentProvider = PaymentProvider.MOBILE_MONEY

    model_config = ConfigDict(populate_by_name=True)


class GatewayCheckout(BaseModel):
    """Provider-neutral checkout session request handed to a gateway."""

    reference: str
    amount: Decimal = Field(gt=0)
    currency: str
    title: str
    customer_email: str
    customer_first_name: str = ""
    customer_last_name: str = ""
    redirect_url: str
    cancel_url: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("currency")
    @classmethod
    def _upper_and_validate_currency(cls, v: str) -> str:
        u = (v or "").upper()
        if u not in SUPPORTED_CURRENCIES:
            raise ValueError("unsupported currency")
        return u


class CheckoutSession(BaseModel):
    url: str
    provider: Optional[PaymentProvider] = None
    reference: Optional[str] = None
    provider_ref: Optional[str] = None
    enrolled: bool = False


class IntaSendWebhookPayload(BaseModel):
    """Collection webhook body as posted by IntaSend."""

    invoice_id: str = Field(min_length=1)
    state: str
    net_amount: Optional[Any] = None
    value: Optional[Any] = None
    currency: Optional[str] = None
    api_ref: Optional[str] = None
    challenge: Optional[str] = None
    extra: Optional[Any] = None
    failed_reason: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ReconciliationResult(BaseModel):
    """Deterministic HTTP-level outcome of reconciling one webhook."""

    status_code: int
    body: dict[str, Any]
    enrollment_id: Optional[int] = None
    created: bool = False

    @classmethod
    def acknowledged(cls, message: Optional[str] = None, **extra: Any) -> "ReconciliationResult":
        body: dict[str, Any] = {"success": True}
        if message:
            body["message"] = message
        body.update(extra)
        return cls(status_code=200, body=body)

    @classmethod
    def rejected(cls, status_code: int, error: str) -> "ReconciliationResult":
        return cls(status_code=status_code, body={"success": False, "error": error})
