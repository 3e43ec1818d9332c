from decimal import Decimal

import pytest

from domain.catalog.pricing import parse_listing_price, rewrite_listing_price
from shared.currency import convert_currency, convert_to_kes, is_supported_currency


@pytest.mark.parametrize(
    "description,price,currency",
    [
        ("Price: KES 2000", Decimal("2000"), "KES"),
        ("Price: $50", Decimal("50"), "USD"),
        ("Join us. Price: Ksh 1500.00", Decimal("1500.00"), "KES"),
        ("Tickets 2500 KES at the door", Decimal("2500"), "KES"),
        ("Price: EUR 30", Decimal("30"), "EUR"),
        ("Only $19.99!", Decimal("19.99"), "USD"),
    ],
)
def test_priced_listings(description, price, currency):
    listing = parse_listing_price(description)
    assert listing.price == price
    assert listing.currency == currency
    assert listing.is_premium is True
    assert listing.is_free is False


@pytest.mark.parametrize("description", [None, "", "A relaxed chat", "FREE for members", "Price: 0", "Complimentary"])
def test_free_listings(description):
    listing = parse_listing_price(description)
    assert listing.is_free is True
    assert listing.price == Decimal("0")


def test_premium_without_price():
    listing = parse_listing_price("Exclusive VIP session")
    assert listing.is_premium is True
    assert listing.price is None


def test_convert_usd_to_kes_whole_shillings():
    assert convert_to_kes(Decimal("50"), "usd") == Decimal("6500")


def test_convert_kes_to_usd_two_decimals():
    assert convert_currency(Decimal("2000"), "KES", "USD") == Decimal("15.40")


def test_convert_same_currency_is_identity():
    assert convert_currency("12.5", "USD", "USD") == Decimal("12.5")


def test_convert_rejects_unknown_currency():
    with pytest.raises(ValueError):
        convert_currency(1, "XYZ", "KES")
    assert is_supported_currency("gbp")
    assert not is_supported_currency(None)


def test_rewrite_listing_price_replaces_old_pricing_after_header():
    description = "Instructor: Grace Hopper\nMax: 30\nPrice: KES 2000\nPremium session\nBring a laptop"

    rewritten = rewrite_listing_price(description, price=Decimal("45"), currency="usd", is_premium=True)

    assert rewritten.split("\n") == [
        "Instructor: Grace Hopper",
        "Max: 30",
        "Price: USD 45",
        "Premium",
        "Bring a laptop",
    ]
    listing = parse_listing_price(rewritten)
    assert listing.price == Decimal("45")
    assert listing.currency == "USD"


def test_rewrite_listing_price_marks_free():
    rewritten = rewrite_listing_price("Price: KES 2000\nPremium", is_free=True, is_premium=True, price=Decimal("10"))
    assert rewritten == "Free"
    assert parse_listing_price(rewritten).is_free


def test_rewrite_listing_price_without_positive_price_drops_pricing():
    assert rewrite_listing_price("Price: KES 2000\nAgenda", is_premium=True, price=Decimal("0")) == "Agenda"
