"""
IntaSend (mobile money) adapter.

Checkout sessions are created over the public checkout API with httpx.
Collection webhooks carry no signature; IntaSend echoes a shared-secret
``challenge`` in the JSON body instead, which is compared in constant time.
This only proves the sender knows the secret, not that the body is intact.
"""
from __future__ import annotations

import hmac
import json
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from application.dtos.payments import CheckoutSession, GatewayCheckout, IntaSendWebhookPayload
from core.logging_config import get_logger
from core.settings import PaymentSettings
from domain.enrollment.entity import ProductType
from domain.payment.entity import PaymentProvider
from domain.payment.events import PaymentEvent, ProductMetadata
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    PaymentChallengeError,
    PaymentConfigurationError,
    PaymentPayloadError,
    PaymentProviderError,
    PaymentRecoverableError,
)


logger = get_logger(__name__)

DEFAULT_CURRENCY = "KES"


def _parse_extra(extra: Any) -> Optional[ProductMetadata]:
    """Best-effort parse of the ``extra`` side channel; never raises."""
    if isinstance(extra, str):
        try:
            extra = json.loads(extra)
        except ValueError:
            return None
    if not isinstance(extra, dict):
        return None

    def _text(*keys: str) -> Optional[str]:
        for key in keys:
            value = extra.get(key)
            if isinstance(value, (str, int)) and str(value).strip():
                return str(value).strip()
        return None

    product_type: Optional[ProductType] = None
    raw_type = _text("type", "product_type")
    if raw_type:
        try:
            product_type = ProductType(raw_type.lower())
        except ValueError:
            product_type = None

    metadata = ProductMetadata(
        product_id=_text("product_id", "masterclass_id", "course_id", "courseId"),
        user_id=_text("user_id", "userId"),
        product_type=product_type,
        product_title=_text("product_title", "masterclass_title"),
    )
    if not any((metadata.product_id, metadata.user_id, metadata.product_type, metadata.product_title)):
        return None
    return metadata


class IntaSendClient(BasePaymentClient):
    provider = PaymentProvider.MOBILE_MONEY

    def __init__(self, settings: PaymentSettings, *, host: str):
        super().__init__(
            timeouts=settings.timeouts.model_dump(),
            retry={"max": settings.retry.max, "base": settings.retry.base_backoff},
        )
        cfg = settings.intasend
        if not cfg.publishable_key:
            raise PaymentConfigurationError("PAYMENT__INTASEND__PUBLISHABLE_KEY not configured", provider=self.provider.value)
        if not cfg.webhook_challenge:
            raise PaymentConfigurationError("PAYMENT__INTASEND__WEBHOOK_CHALLENGE not configured", provider=self.provider.value)
        self._publishable_key = cfg.publishable_key
        self._challenge = cfg.webhook_challenge
        self._api_base = cfg.api_base.rstrip("/")
        self._host = host

    async def create_checkout(self, req: GatewayCheckout) -> CheckoutSession:  # type: ignore[override]
        payload = {
            "public_key": self._publishable_key,
            "first_name": req.customer_first_name or "Student",
            "last_name": req.customer_last_name,
            "email": req.customer_email,
            "host": self._host,
            "amount": str(req.amount),
            "currency": req.currency,
            "api_ref": req.reference,
            "redirect_url": req.redirect_url,
            "comment": f"Enrollment for {req.title}",
            "extra": req.metadata,
        }

        async def _call() -> httpx.Response:
            async with self.client() as c:
                return await c.post(
                    f"{self._api_base}/api/v1/checkout/",
                    json=payload,
                    headers={"X-IntaSend-Public-API-Key": self._publishable_key},
                )

        try:
            resp = await self._retry(_call)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise PaymentRecoverableError(str(exc), provider=self.provider.value) from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise PaymentRecoverableError(
                "IntaSend unavailable", provider=self.provider.value, provider_code=str(resp.status_code)
            )
        if resp.status_code >= 400:
            raise PaymentProviderError(
                "IntaSend rejected checkout",
                provider=self.provider.value,
                provider_code=str(resp.status_code),
                details={"body": resp.text[:500]},
            )
        data = resp.json()
        url = data.get("url")
        if not url:
            raise PaymentProviderError("IntaSend returned no checkout url", provider=self.provider.value)
        self._log("checkout_session_created", reference=req.reference, provider_ref=data.get("id"))
        return CheckoutSession(
            url=url,
            provider=self.provider,
            reference=req.reference,
            provider_ref=str(data.get("id") or "") or None,
        )

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> PaymentEvent:  # type: ignore[override]
        raw = self._load_json(body)
        challenge = raw.get("challenge")
        if not isinstance(challenge, str) or not hmac.compare_digest(
            challenge.encode("utf-8"), self._challenge.encode("utf-8")
        ):
            logger.warning("webhook_challenge_mismatch", provider=self.provider.value)
            raise PaymentChallengeError(provider=self.provider.value)

        try:
            payload = IntaSendWebhookPayload.model_validate(raw)
        except ValidationError as exc:
            raise PaymentPayloadError(
                "Invalid IntaSend webhook payload",
                provider=self.provider.value,
                details={"errors": [".".join(str(p) for p in e["loc"]) for e in exc.errors()]},
            ) from exc

        state = payload.state.upper()
        outcome = self._map_status(state)
        amount_source = payload.net_amount if payload.net_amount not in (None, "") else payload.value
        amount = self._to_decimal(amount_source, field="net_amount")
        currency = self._to_currency(payload.currency, default=DEFAULT_CURRENCY)

        event = PaymentEvent(
            provider=self.provider,
            external_payment_id=payload.invoice_id,
            outcome=outcome,
            net_amount=amount,
            currency=currency,
            reference=payload.api_ref or None,
            raw_extra=_parse_extra(payload.extra),
            provider_state=state,
        )
        self._log(
            "webhook_normalized",
            invoice_id=payload.invoice_id,
            state=state,
            api_ref=payload.api_ref,
            failed_reason=payload.failed_reason,
        )
        return event
