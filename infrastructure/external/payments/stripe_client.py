"""
Stripe Checkout adapter using the official stripe-python SDK.

Notes on SDK usage:
- Checkout sessions are created with `stripe.checkout.Session.create`; the SDK
  call is blocking, so it runs in a worker thread.
- Webhook verification uses `stripe.Webhook.construct_event` with the
  `Stripe-Signature` header. Once verified, the raw JSON body is read
  directly so the result does not depend on SDK object types.
"""
from __future__ import annotations

import asyncio
from typing import Any, Optional
from decimal import Decimal

import stripe

from application.dtos.payments import CheckoutSession, GatewayCheckout
from core.settings import PaymentSettings
from core.logging_config import get_logger
from domain.enrollment.entity import ProductType
from domain.payment.entity import PaymentProvider
from domain.payment.events import PaymentEvent, ProductMetadata
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    PaymentConfigurationError,
    PaymentMetadataError,
    PaymentPayloadError,
    PaymentProviderError,
    PaymentRecoverableError,
    PaymentSignatureError,
    UnrecognizedEventKindError,
)


logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
DEFAULT_CURRENCY = "USD"

# https://docs.stripe.com/currencies#zero-decimal
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})


class StripeClient(BasePaymentClient):
    provider = PaymentProvider.CARD

    def __init__(self, settings: PaymentSettings):
        super().__init__(
            timeouts=settings.timeouts.model_dump(),
            retry={"max": settings.retry.max, "base": settings.retry.base_backoff},
        )
        if not settings.stripe.secret_key:
            raise PaymentConfigurationError("PAYMENT__STRIPE__SECRET_KEY not configured", provider=self.provider.value)
        if not settings.stripe.webhook_secret:
            raise PaymentConfigurationError("PAYMENT__STRIPE__WEBHOOK_SECRET not configured", provider=self.provider.value)
        self._secret_key = settings.stripe.secret_key
        self._webhook_secret = settings.stripe.webhook_secret
        self._tolerance = settings.webhook.tolerance_seconds

    @staticmethod
    def _exponent(currency: str) -> int:
        return 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2

    @classmethod
    def _to_minor(cls, amount: Decimal, currency: str) -> int:
        # Stripe expects amounts in the smallest currency unit
        return int((amount * (Decimal(10) ** cls._exponent(currency))).to_integral_value())

    @classmethod
    def _to_major(cls, amount_minor: Any, currency: str) -> Decimal:
        return Decimal(int(amount_minor)) / (Decimal(10) ** cls._exponent(currency))

    async def create_checkout(self, req: GatewayCheckout) -> CheckoutSession:  # type: ignore[override]
        params = {
            "api_key": self._secret_key,
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": req.currency.lower(),
                        "product_data": {"name": req.title},
                        "unit_amount": self._to_minor(req.amount, req.currency),
                    },
                    "quantity": 1,
                }
            ],
            "success_url": req.redirect_url,
            "cancel_url": req.cancel_url or req.redirect_url,
            "customer_email": req.customer_email,
            "metadata": req.metadata,
            "idempotency_key": req.reference,
        }
        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
        except (stripe.RateLimitError, stripe.APIConnectionError) as exc:
            raise PaymentRecoverableError(str(exc), provider=self.provider.value) from exc
        except stripe.StripeError as exc:
            raise PaymentProviderError(
                str(exc), provider=self.provider.value, provider_code=getattr(exc, "code", None)
            ) from exc

        if not session.url:
            raise PaymentProviderError("Stripe returned no checkout url", provider=self.provider.value)
        self._log("checkout_session_created", reference=req.reference, provider_ref=session.id)
        return CheckoutSession(
            url=session.url,
            provider=self.provider,
            reference=req.reference,
            provider_ref=session.id,
        )

    def _verify(self, headers: dict[str, Any], body: bytes) -> None:
        sig = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig:
            raise PaymentSignatureError("Missing Stripe-Signature header", provider=self.provider.value)
        try:
            stripe.Webhook.construct_event(
                payload=body,
                sig_header=sig,
                secret=self._webhook_secret,
                tolerance=self._tolerance,
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("webhook_signature_invalid", provider=self.provider.value, error=str(exc))
            raise PaymentSignatureError(str(exc), provider=self.provider.value) from exc
        except ValueError as exc:
            raise PaymentPayloadError("Malformed JSON body", provider=self.provider.value) from exc

    def _metadata(self, session: dict[str, Any]) -> ProductMetadata:
        meta = session.get("metadata") or {}
        is_masterclass = meta.get("type") == ProductType.MASTERCLASS.value
        user_id = meta.get("userId") or meta.get("user_id")
        if not user_id:
            raise PaymentMetadataError("Missing user ID in metadata", provider=self.provider.value, field="user_id")
        if is_masterclass:
            product_id = meta.get("masterclass_id")
            if not product_id:
                raise PaymentMetadataError(
                    "Missing masterclass ID in metadata", provider=self.provider.value, field="masterclass_id"
                )
        else:
            product_id = meta.get("courseId") or meta.get("course_id")
            if not product_id:
                raise PaymentMetadataError(
                    "Missing course ID in metadata", provider=self.provider.value, field="courseId"
                )
        return ProductMetadata(
            product_id=str(product_id),
            user_id=str(user_id),
            product_type=ProductType.MASTERCLASS if is_masterclass else ProductType.COURSE,
            product_title=meta.get("masterclass_title") or None,
        )

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> PaymentEvent:  # type: ignore[override]
        self._verify(headers, body)
        event = self._load_json(body)

        kind = str(event.get("type") or "")
        if kind != CHECKOUT_COMPLETED:
            raise UnrecognizedEventKindError(kind or "unknown", provider=self.provider.value)

        session: Optional[dict[str, Any]] = (event.get("data") or {}).get("object")
        if not isinstance(session, dict) or not session.get("id"):
            raise PaymentPayloadError("Missing checkout session object", provider=self.provider.value)

        metadata = self._metadata(session)
        payment_status = str(session.get("payment_status") or "paid")
        outcome = self._map_status(payment_status)
        currency = self._to_currency(session.get("currency"), default=DEFAULT_CURRENCY)
        amount_total = session.get("amount_total")
        try:
            amount = self._to_major(amount_total or 0, currency)
        except (TypeError, ValueError) as exc:
            raise PaymentPayloadError("amount_total is not numeric", provider=self.provider.value) from exc
        if amount < 0:
            raise PaymentPayloadError("amount_total must not be negative", provider=self.provider.value)

        self._log(
            "webhook_normalized",
            event_id=event.get("id"),
            session_id=session["id"],
            payment_status=payment_status,
        )
        return PaymentEvent(
            provider=self.provider,
            external_payment_id=str(session["id"]),
            outcome=outcome,
            net_amount=amount,
            currency=currency,
            reference=(session.get("metadata") or {}).get("api_ref") or session.get("client_reference_id"),
            raw_extra=metadata,
            provider_state=payment_status,
        )
