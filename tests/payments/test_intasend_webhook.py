import json
from decimal import Decimal

import pytest

from core.settings import PaymentSettings
from domain.enrollment.entity import ProductType
from domain.payment.entity import PaymentOutcome, PaymentProvider
from infrastructure.external.payments import get_payment_gateway
from infrastructure.external.payments.exceptions import (
    PaymentChallengeError,
    PaymentConfigurationError,
    PaymentPayloadError,
    UnrecognizedEventKindError,
)
from infrastructure.external.payments.intasend_client import IntaSendClient, _parse_extra

from conftest import CHALLENGE


def _body(**overrides) -> bytes:
    payload = {
        "invoice_id": "INV-7",
        "state": "COMPLETE",
        "net_amount": "980.00",
        "value": "1000.00",
        "currency": "KES",
        "api_ref": "masterclass-mc42-user_1-1700000000001",
        "challenge": CHALLENGE,
    }
    payload.update(overrides)
    return json.dumps(payload).encode()


@pytest.fixture
def gateway(payment_settings):
    gw = get_payment_gateway("intasend", payment_settings, host="http://localhost:3000")
    assert isinstance(gw, IntaSendClient)
    return gw


def test_complete_webhook_normalizes(gateway):
    event = gateway.parse_webhook({}, _body())

    assert event.provider == PaymentProvider.MOBILE_MONEY
    assert event.external_payment_id == "INV-7"
    assert event.outcome == PaymentOutcome.SUCCEEDED
    assert event.net_amount == Decimal("980.00")
    assert event.currency == "KES"
    assert event.reference == "masterclass-mc42-user_1-1700000000001"
    assert event.raw_extra is None
    assert event.provider_state == "COMPLETE"


@pytest.mark.parametrize(
    "state,outcome",
    [
        ("PENDING", PaymentOutcome.PENDING),
        ("processing", PaymentOutcome.PROCESSING),
        ("FAILED", PaymentOutcome.FAILED),
    ],
)
def test_state_mapping(gateway, state, outcome):
    assert gateway.parse_webhook({}, _body(state=state)).outcome == outcome


def test_amount_falls_back_to_value(gateway):
    event = gateway.parse_webhook({}, _body(net_amount=None))
    assert event.net_amount == Decimal("1000.00")


def test_wrong_challenge_is_rejected_before_parsing(gateway):
    with pytest.raises(PaymentChallengeError):
        gateway.parse_webhook({}, _body(challenge="wrong", invoice_id=""))


def test_missing_challenge_is_rejected(gateway):
    payload = json.loads(_body())
    del payload["challenge"]
    with pytest.raises(PaymentChallengeError):
        gateway.parse_webhook({}, json.dumps(payload).encode())


def test_malformed_json_is_rejected(gateway):
    with pytest.raises(PaymentPayloadError):
        gateway.parse_webhook({}, b"{not json")


def test_missing_invoice_id_is_rejected(gateway):
    with pytest.raises(PaymentPayloadError):
        gateway.parse_webhook({}, _body(invoice_id=""))


def test_non_numeric_amount_is_rejected(gateway):
    with pytest.raises(PaymentPayloadError):
        gateway.parse_webhook({}, _body(net_amount="lots"))


@pytest.mark.parametrize("amount", ["-5", "-0.01"])
def test_negative_amount_is_rejected(gateway, amount):
    with pytest.raises(PaymentPayloadError) as exc_info:
        gateway.parse_webhook({}, _body(net_amount=amount))
    assert exc_info.value.details["field"] == "net_amount"


@pytest.mark.parametrize("currency", ["KSH1", "KE", "KESH", "K€S"])
def test_malformed_currency_is_rejected(gateway, currency):
    with pytest.raises(PaymentPayloadError):
        gateway.parse_webhook({}, _body(currency=currency))


def test_currency_is_upper_cased_and_defaults_to_kes(gateway):
    assert gateway.parse_webhook({}, _body(currency="kes")).currency == "KES"
    assert gateway.parse_webhook({}, _body(currency=None)).currency == "KES"


def test_unknown_state_is_unrecognized(gateway):
    with pytest.raises(UnrecognizedEventKindError) as exc_info:
        gateway.parse_webhook({}, _body(state="REFUNDED"))
    assert exc_info.value.kind == "REFUNDED"


def test_extra_json_string_is_parsed(gateway):
    extra = json.dumps({"masterclass_id": "mc99", "user_id": "user_meta", "type": "masterclass"})
    event = gateway.parse_webhook({}, _body(extra=extra))

    assert event.raw_extra is not None
    assert event.raw_extra.product_id == "mc99"
    assert event.raw_extra.user_id == "user_meta"
    assert event.raw_extra.product_type == ProductType.MASTERCLASS
    assert event.raw_extra.is_usable


@pytest.mark.parametrize("extra", ["{broken", 42, [], {}, {"unrelated": "x"}])
def test_unusable_extra_is_ignored(extra):
    assert _parse_extra(extra) is None


def test_extra_accepts_course_aliases():
    meta = _parse_extra({"courseId": "c1", "userId": "user_9", "type": "COURSE"})
    assert meta.product_id == "c1"
    assert meta.user_id == "user_9"
    assert meta.product_type == ProductType.COURSE


def test_missing_challenge_config_fails_fast():
    settings = PaymentSettings(intasend={"publishable_key": "ISPubKey_test_123", "webhook_challenge": None})
    with pytest.raises(PaymentConfigurationError):
        IntaSendClient(settings, host="http://localhost:3000")
