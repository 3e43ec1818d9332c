"""
Base payment client implementing shared concerns: http, retry, logging, mapping.

Concrete providers should subclass and implement provider-specific logic.
"""
from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional
from contextlib import asynccontextmanager

import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.logging_config import get_logger
from application.dtos.payments import CheckoutSession, GatewayCheckout
from application.ports.payment_gateway import PaymentGateway
from domain.payment.entity import PaymentOutcome, PaymentProvider
from domain.payment.events import PaymentEvent
from infrastructure.external.payments.exceptions import (
    PaymentPayloadError,
    UnrecognizedEventKindError,
)
from shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL


logger = get_logger(__name__)


class BasePaymentClient(PaymentGateway):
    provider: PaymentProvider

    def __init__(
        self,
        *,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
    ) -> None:
        self._timeouts_cfg = timeouts or {"connect": 1.0, "read": 3.0, "write": 3.0, "total": 5.0}
        self._retry_cfg = retry or {"max": 2, "base": 0.2}
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeouts)
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _retry(self, fn: Callable[[], Any]):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base"], min=0.1, max=2.0),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                return await fn()

    async def create_checkout(self, req: GatewayCheckout) -> CheckoutSession:  # type: ignore[override]
        raise NotImplementedError

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> PaymentEvent:  # type: ignore[override]
        raise NotImplementedError

    # Helpers
    def _map_status(self, provider_status: str) -> PaymentOutcome:
        """Map a provider-native state onto the canonical outcome."""
        mapping = PROVIDER_STATUS_TO_INTERNAL.get(self.provider.value, {})
        internal = mapping.get(provider_status)
        if internal is None:
            raise UnrecognizedEventKindError(str(provider_status), provider=self.provider.value)
        return PaymentOutcome(internal)

    def _load_json(self, body: bytes) -> dict[str, Any]:
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise PaymentPayloadError("Malformed JSON body", provider=self.provider.value) from exc
        if not isinstance(payload, dict):
            raise PaymentPayloadError("Webhook body must be a JSON object", provider=self.provider.value)
        return payload

    def _to_decimal(self, value: Any, *, field: str) -> Decimal:
        if value is None or value == "":
            return Decimal("0")
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise PaymentPayloadError(
                f"{field} is not numeric", provider=self.provider.value, details={"field": field}
            ) from exc
        if not amount.is_finite():
            raise PaymentPayloadError(
                f"{field} is not numeric", provider=self.provider.value, details={"field": field}
            )
        if amount < 0:
            raise PaymentPayloadError(
                f"{field} must not be negative", provider=self.provider.value, details={"field": field}
            )
        return amount

    def _to_currency(self, value: Any, *, default: str) -> str:
        if value is None or value == "":
            return default
        code = str(value).strip()
        if len(code) != 3 or not code.isascii() or not code.isalpha():
            raise PaymentPayloadError(
                "currency must be a 3-letter ISO code",
                provider=self.provider.value,
                details={"field": "currency"},
            )
        return code.upper()

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider.value,
            **kwargs,
        )
