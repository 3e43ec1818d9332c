"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Environment variables use the ``PAYMENT__`` prefix, e.g.
``PAYMENT__STRIPE__WEBHOOK_SECRET`` or ``PAYMENT__INTASEND__WEBHOOK_CHALLENGE``.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 3.0
    write: float = 3.0
    total: float = 5.0


class PaymentRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class WebhookSettings(BaseModel):
    # Stripe signature timestamp tolerance
    tolerance_seconds: int = 300


class IntaSendSettings(BaseModel):
    publishable_key: Optional[str] = None
    secret_key: Optional[str] = None
    # Shared secret IntaSend echoes back in every webhook body
    webhook_challenge: Optional[str] = None
    sandbox: bool = True
    live_api_base: str = "https://payment.intasend.com"
    sandbox_api_base: str = "https://sandbox.intasend.com"

    @property
    def api_base(self) -> str:
        return self.sandbox_api_base if self.sandbox else self.live_api_base


class StripeSettings(BaseModel):
    secret_key: Optional[str] = None
    webhook_secret: Optional[str] = None


class PaymentSettings(BaseSettings):
    enabled_providers: list[str] = Field(default_factory=lambda: ["intasend", "stripe"])
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    intasend: IntaSendSettings = Field(default_factory=IntaSendSettings)
    stripe: StripeSettings = Field(default_factory=StripeSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
