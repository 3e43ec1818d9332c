"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Dict

from application.ports.payment_gateway import PaymentGateway
from core.settings import PaymentSettings
from domain.payment.entity import PaymentProvider
from infrastructure.external.payments.exceptions import PaymentConfigurationError


def get_payment_gateway(provider: str, settings: PaymentSettings, *, host: str) -> PaymentGateway:
    name = provider.lower()
    if name in {"intasend", "mpesa", "mobile_money"}:
        from .intasend_client import IntaSendClient
        return IntaSendClient(settings, host=host)
    if name in {"stripe", "card"}:
        from .stripe_client import StripeClient
        return StripeClient(settings)
    raise PaymentConfigurationError(f"Unsupported payment provider: {name}", provider=name)


def build_payment_gateways(settings: PaymentSettings, *, host: str) -> Dict[PaymentProvider, PaymentGateway]:
    """Build every enabled gateway once; raises on missing credentials."""
    gateways: Dict[PaymentProvider, PaymentGateway] = {}
    for name in settings.enabled_providers:
        gateway = get_payment_gateway(name, settings, host=host)
        gateways[gateway.provider] = gateway
    return gateways
