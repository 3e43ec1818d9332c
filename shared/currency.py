"""
Currency conversion helpers (static table, KES as pivot).

Mobile money collects in KES only and card checkout charges in USD, so
listing prices are converted before a checkout session is created.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

SUPPORTED_CURRENCIES = ("KES", "USD", "EUR", "GBP")

# Approximate rates; replace with a live rate source when one is available.
_TO_KES = {
    "KES": Decimal("1"),
    "USD": Decimal("130"),
    "EUR": Decimal("140"),
    "GBP": Decimal("160"),
}
_FROM_KES = {
    "USD": Decimal("0.0077"),
    "EUR": Decimal("0.0071"),
    "GBP": Decimal("0.0063"),
}


def is_supported_currency(code: str | None) -> bool:
    return (code or "").upper() in SUPPORTED_CURRENCIES


def convert_currency(amount: Number, from_currency: str, to_currency: str) -> Decimal:
    """Convert ``amount``; KES results are whole shillings, others 2 decimals."""
    src = from_currency.upper()
    dst = to_currency.upper()
    if src not in _TO_KES:
        raise ValueError(f"Unsupported source currency: {from_currency}")
    if dst not in _TO_KES:
        raise ValueError(f"Unsupported target currency: {to_currency}")

    value = Decimal(str(amount))
    if src == dst:
        return value

    in_kes = value * _TO_KES[src]
    if dst == "KES":
        return in_kes.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return (in_kes * _FROM_KES[dst]).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def convert_to_kes(amount: Number, from_currency: str) -> Decimal:
    return convert_currency(amount, from_currency, "KES")
