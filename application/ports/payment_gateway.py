"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from application.dtos.payments import CheckoutSession, GatewayCheckout
from domain.payment.entity import PaymentProvider
from domain.payment.events import PaymentEvent


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for third-party payment providers.

    ``parse_webhook`` is the provider's event normalizer: it verifies the
    request and either returns a canonical PaymentEvent or raises a typed
    rejection. It never touches storage.
    """

    provider: PaymentProvider

    async def create_checkout(self, req: GatewayCheckout) -> CheckoutSession: ...

    def parse_webhook(self, headers: dict[str, Any], body: bytes) -> PaymentEvent: ...

    async def aclose(self) -> None: ...
