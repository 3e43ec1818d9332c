import json
from decimal import Decimal

import pytest

from domain.enrollment.entity import ProductType
from domain.payment.entity import PaymentOutcome, PaymentProvider
from infrastructure.external.payments.exceptions import (
    PaymentMetadataError,
    PaymentPayloadError,
    PaymentSignatureError,
    UnrecognizedEventKindError,
)


stripe = pytest.importorskip("stripe")

HEADERS = {"stripe-signature": "t=1,v1=abc"}


def _body(event_type="checkout.session.completed", **session_overrides) -> bytes:
    session = {
        "id": "cs_test_1",
        "object": "checkout.session",
        "payment_status": "paid",
        "amount_total": 5000,
        "currency": "usd",
        "client_reference_id": None,
        "metadata": {
            "type": "masterclass",
            "user_id": "user_1",
            "masterclass_id": "mc42",
            "masterclass_title": "Negotiation 101",
            "api_ref": "masterclass-mc42-user_1-1700000000001",
        },
    }
    session.update(session_overrides)
    return json.dumps({"id": "evt_1", "type": event_type, "data": {"object": session}}).encode()


@pytest.fixture
def gateway(payment_settings, monkeypatch):
    from infrastructure.external.payments import get_payment_gateway
    from infrastructure.external.payments.stripe_client import StripeClient

    # Fake construct_event to bypass cryptography
    class _FakeWebhook:
        @staticmethod
        def construct_event(payload, sig_header, secret, tolerance=None):
            if sig_header != HEADERS["stripe-signature"]:
                raise stripe.SignatureVerificationError("No signatures found", sig_header)
            return json.loads(payload)

    monkeypatch.setattr(stripe, "Webhook", _FakeWebhook)

    gw = get_payment_gateway("stripe", payment_settings, host="http://localhost:3000")
    assert isinstance(gw, StripeClient)
    return gw


def test_completed_session_normalizes(gateway):
    event = gateway.parse_webhook(HEADERS, _body())

    assert event.provider == PaymentProvider.CARD
    assert event.external_payment_id == "cs_test_1"
    assert event.outcome == PaymentOutcome.SUCCEEDED
    assert event.net_amount == Decimal("50")
    assert event.currency == "USD"
    assert event.reference == "masterclass-mc42-user_1-1700000000001"
    assert event.raw_extra.product_type == ProductType.MASTERCLASS
    assert event.raw_extra.product_id == "mc42"
    assert event.raw_extra.user_id == "user_1"
    assert event.raw_extra.product_title == "Negotiation 101"


def test_course_metadata_uses_course_id(gateway):
    event = gateway.parse_webhook(
        HEADERS,
        _body(metadata={"type": "course", "userId": "user_2", "courseId": "c1"}, client_reference_id="ref-1"),
    )
    assert event.raw_extra.product_type == ProductType.COURSE
    assert event.raw_extra.product_id == "c1"
    assert event.raw_extra.user_id == "user_2"
    assert event.reference == "ref-1"


def test_zero_decimal_currency_is_not_divided(gateway):
    event = gateway.parse_webhook(HEADERS, _body(currency="jpy", amount_total=5000))
    assert event.net_amount == Decimal("5000")
    assert event.currency == "JPY"


def test_negative_amount_total_is_rejected(gateway):
    with pytest.raises(PaymentPayloadError):
        gateway.parse_webhook(HEADERS, _body(amount_total=-500))


@pytest.mark.parametrize("currency", ["us1", "dollars", "u"])
def test_malformed_currency_is_rejected(gateway, currency):
    with pytest.raises(PaymentPayloadError):
        gateway.parse_webhook(HEADERS, _body(currency=currency))


def test_unpaid_session_is_processing(gateway):
    event = gateway.parse_webhook(HEADERS, _body(payment_status="unpaid"))
    assert event.outcome == PaymentOutcome.PROCESSING


def test_missing_payment_status_counts_as_paid(gateway):
    event = gateway.parse_webhook(HEADERS, _body(payment_status=None))
    assert event.outcome == PaymentOutcome.SUCCEEDED


def test_other_event_kinds_are_unrecognized(gateway):
    with pytest.raises(UnrecognizedEventKindError) as exc_info:
        gateway.parse_webhook(HEADERS, _body(event_type="payment_intent.succeeded"))
    assert exc_info.value.kind == "payment_intent.succeeded"


def test_missing_masterclass_id_is_rejected(gateway):
    with pytest.raises(PaymentMetadataError) as exc_info:
        gateway.parse_webhook(HEADERS, _body(metadata={"type": "masterclass", "user_id": "user_1"}))
    assert exc_info.value.message == "Missing masterclass ID in metadata"


def test_missing_user_id_is_rejected(gateway):
    with pytest.raises(PaymentMetadataError) as exc_info:
        gateway.parse_webhook(HEADERS, _body(metadata={"type": "course", "courseId": "c1"}))
    assert exc_info.value.message == "Missing user ID in metadata"


def test_missing_course_id_is_rejected(gateway):
    with pytest.raises(PaymentMetadataError):
        gateway.parse_webhook(HEADERS, _body(metadata={"user_id": "user_1"}))


def test_missing_session_object_is_rejected(gateway):
    body = json.dumps({"id": "evt_1", "type": "checkout.session.completed", "data": {}}).encode()
    with pytest.raises(PaymentPayloadError):
        gateway.parse_webhook(HEADERS, body)


def test_bad_signature_is_rejected(gateway):
    with pytest.raises(PaymentSignatureError):
        gateway.parse_webhook({"stripe-signature": "t=1,v1=forged"}, _body())


def test_missing_signature_header_is_rejected(gateway):
    with pytest.raises(PaymentSignatureError):
        gateway.parse_webhook({}, _body())
