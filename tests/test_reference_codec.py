import pytest

from domain.common.exceptions import MalformedReferenceException
from domain.enrollment.entity import ProductType
from domain.enrollment.reference import ReferenceCodec, decode_reference, encode_reference


def test_encode_masterclass_reference():
    ref = encode_reference(ProductType.MASTERCLASS, "mc42", "user_1", 1700000000001)
    assert ref == "masterclass-mc42-user_1-1700000000001"


def test_decode_course_reference():
    decoded = decode_reference("course-abc123-user_2xyz-1700000000000")
    assert decoded.product_type == ProductType.COURSE
    assert decoded.product_id == "abc123"
    assert decoded.user_id == "user_2xyz"
    assert decoded.issued_at_millis == 1700000000000


def test_dashed_ids_survive_round_trip():
    codec = ReferenceCodec()
    ref = codec.encode("masterclass", "spring-2024-intro", "user_ab-cd", 42)
    decoded = codec.decode(ref)
    assert decoded.product_id == "spring-2024-intro"
    assert decoded.user_id == "user_ab-cd"
    assert decoded.issued_at_millis == 42


@pytest.mark.parametrize(
    "reference",
    [
        "",
        "webinar-x-user_1-1",
        "course-abc-user_1",
        "course-abc-user_1-notanumber",
        "course-abc-1700000000000",
        "course--user_1-1",
        "course-abc-user_-1",
        "course-abc-user_1-17 00",
    ],
)
def test_decode_rejects_malformed(reference):
    with pytest.raises(MalformedReferenceException):
        decode_reference(reference)


def test_encode_rejects_ambiguous_product_id():
    with pytest.raises(MalformedReferenceException):
        encode_reference(ProductType.COURSE, "abc-user_9", "user_1", 1)


def test_decode_takes_last_marker_for_dash_free_user_id():
    decoded = decode_reference("course-intro-user_9-user_1-1700000000000")
    assert decoded.product_id == "intro-user_9"
    assert decoded.user_id == "user_1"


@pytest.mark.parametrize(
    "product_type,product_id,user_id,ts",
    [
        ("webinar", "abc", "user_1", 1),
        ("course", "", "user_1", 1),
        ("course", "a b", "user_1", 1),
        ("course", "abc", "1234", 1),
        ("course", "abc", "user_", 1),
        ("course", "abc", "user_1", -5),
        ("course", "abc", "user_1", True),
    ],
)
def test_encode_rejects_invalid_parts(product_type, product_id, user_id, ts):
    with pytest.raises(MalformedReferenceException):
        encode_reference(product_type, product_id, user_id, ts)


def test_encode_enforces_max_length():
    codec = ReferenceCodec(max_length=30)
    with pytest.raises(MalformedReferenceException) as exc_info:
        codec.encode(ProductType.MASTERCLASS, "a" * 20, "user_1", 1700000000001)
    assert exc_info.value.details["reference"].startswith("masterclass-")


def test_custom_user_marker():
    codec = ReferenceCodec(user_id_marker="uid")
    decoded = codec.decode("course-c-1-uid9-5")
    assert decoded.product_id == "c-1"
    assert decoded.user_id == "uid9"


def test_invalid_marker_rejected():
    with pytest.raises(ValueError):
        ReferenceCodec(user_id_marker="user-")
