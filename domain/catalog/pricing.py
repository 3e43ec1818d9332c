"""
Listing price parser for calendar-hosted masterclasses.

Event descriptions carry pricing as free text ("Price: KES 2000",
"Price: $50", "2000 KES", "Free"...). Anything without a recognisable price
or premium marker is treated as free.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


_AMOUNT = r"(\d+(?:\.\d{2})?)"
_CODES = r"(KES|KSH|USD|EUR|GBP)"

_FREE_PATTERNS = [
    re.compile(r"free", re.I),
    re.compile(r"no\s*charge", re.I),
    re.compile(r"complimentary", re.I),
    re.compile(r"price[:\s]*0(?![\d.])", re.I),
]

_PREMIUM_PATTERNS = [
    re.compile(r"premium", re.I),
    re.compile(r"paid", re.I),
    re.compile(r"exclusive", re.I),
    re.compile(r"vip", re.I),
]

# (pattern, kind) in priority order
_PRICE_PATTERNS = [
    (re.compile(r"price[:\s]*\$" + _AMOUNT, re.I), "usd"),
    (re.compile(r"price[:\s]*ksh?s?\s*" + _AMOUNT, re.I), "kes"),
    (re.compile(r"price[:\s]*" + _CODES + r"\s*" + _AMOUNT, re.I), "code_first"),
    (re.compile(_AMOUNT + r"\s*" + _CODES + r"\b", re.I), "code_last"),
    (re.compile(r"\$" + _AMOUNT), "usd"),
    (re.compile(r"ksh?s?\s*" + _AMOUNT, re.I), "kes"),
]

_CURRENCY_ALIASES = {"KSH": "KES", "KSHS": "KES"}


@dataclass(frozen=True)
class ListingPrice:
    price: Optional[Decimal]
    currency: Optional[str]
    is_free: bool
    is_premium: bool


def _currency(code: str) -> str:
    code = code.upper()
    return _CURRENCY_ALIASES.get(code, code)


def parse_listing_price(description: Optional[str]) -> ListingPrice:
    text = description or ""

    if any(p.search(text) for p in _FREE_PATTERNS):
        return ListingPrice(price=Decimal("0"), currency=None, is_free=True, is_premium=False)

    for pattern, kind in _PRICE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if kind == "usd":
            price, currency = Decimal(match.group(1)), "USD"
        elif kind == "kes":
            price, currency = Decimal(match.group(1)), "KES"
        elif kind == "code_first":
            price, currency = Decimal(match.group(2)), _currency(match.group(1))
        else:
            price, currency = Decimal(match.group(1)), _currency(match.group(2))
        return ListingPrice(price=price, currency=currency, is_free=price == 0, is_premium=price > 0)

    if any(p.search(text) for p in _PREMIUM_PATTERNS):
        return ListingPrice(price=None, currency=None, is_free=False, is_premium=True)

    return ListingPrice(price=Decimal("0"), currency=None, is_free=True, is_premium=False)


_STALE_PRICING_LINES = [
    re.compile(r"Price:.*$", re.M),
    re.compile(r"Premium.*$", re.M),
    re.compile(r"Free.*$", re.M),
]
_HEADER_LINE = re.compile(r"^(Instructor:|Max:|Limit:|Capacity:|Register:)", re.I)


def rewrite_listing_price(
    description: Optional[str],
    *,
    price: Optional[Decimal] = None,
    currency: Optional[str] = None,
    is_premium: bool = False,
    is_free: bool = False,
) -> str:
    """Replace the pricing lines of an event description.

    Existing "Price:", "Premium" and "Free" lines are dropped and the new
    pricing goes right after the leading header lines (Instructor:, Max: ...).
    Neither free nor a positive premium price leaves the description unpriced,
    which ``parse_listing_price`` reads as free.
    """
    text = description or ""
    for pattern in _STALE_PRICING_LINES:
        text = pattern.sub("", text)
    lines = [line for line in text.split("\n") if line.strip()]

    insert_at = next((i for i, line in enumerate(lines) if not _HEADER_LINE.match(line)), len(lines))
    if is_free:
        lines[insert_at:insert_at] = ["Free"]
    elif is_premium and price is not None and price > 0:
        lines[insert_at:insert_at] = [f"Price: {(currency or 'KES').upper()} {price}", "Premium"]
    return "\n".join(lines).strip()
