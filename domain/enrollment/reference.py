"""
Payment reference codec.

A reference ("api_ref") is the only field both providers echo back verbatim,
so it carries the product and the paying user across the checkout round trip:

    {course|masterclass}-{productId}-{userId}-{epochMillis}

User ids are opaque and may contain dashes, so decoding anchors on the user-id
marker (``user_`` by default) and the trailing millisecond timestamp instead of
splitting on ``-``. A dash-free user id is taken from the last marker, which
keeps older references whose product id contains ``-user_`` decodable.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from domain.common.exceptions import MalformedReferenceException
from domain.enrollment.entity import ProductType


DEFAULT_USER_ID_MARKER = "user_"
MAX_REFERENCE_LENGTH = 100

_ALLOWED = re.compile(r"^[A-Za-z0-9_-]+$")
_TIMESTAMP_SUFFIX = re.compile(r"-(\d+)$")


@dataclass(frozen=True)
class DecodedReference:
    product_type: ProductType
    product_id: str
    user_id: str
    issued_at_millis: int


class ReferenceCodec:
    """Encode/decode payment references. Pure; no I/O."""

    def __init__(
        self,
        user_id_marker: str = DEFAULT_USER_ID_MARKER,
        max_length: int = MAX_REFERENCE_LENGTH,
    ) -> None:
        if not user_id_marker or not _ALLOWED.match(user_id_marker) or "-" in user_id_marker:
            raise ValueError(f"invalid user id marker: {user_id_marker!r}")
        self.user_id_marker = user_id_marker
        self.max_length = max_length
        self._anchor = f"-{user_id_marker}"

    def encode(
        self,
        product_type: ProductType | str,
        product_id: str,
        user_id: str,
        now_millis: int,
    ) -> str:
        try:
            tag = ProductType(product_type).value
        except ValueError:
            raise MalformedReferenceException(f"unknown product type {product_type!r}") from None

        if not product_id or not _ALLOWED.match(product_id):
            raise MalformedReferenceException("product id must be non-empty [A-Za-z0-9_-]")
        if self._anchor in f"-{product_id}":
            # Would make the user-id anchor ambiguous on decode.
            raise MalformedReferenceException("product id must not contain the user id marker")
        if (
            len(user_id) <= len(self.user_id_marker)
            or not user_id.startswith(self.user_id_marker)
            or not _ALLOWED.match(user_id)
        ):
            raise MalformedReferenceException(
                f"user id must start with {self.user_id_marker!r} and be [A-Za-z0-9_-]"
            )
        if isinstance(now_millis, bool) or not isinstance(now_millis, int) or now_millis < 0:
            raise MalformedReferenceException("timestamp must be a non-negative integer")

        reference = f"{tag}-{product_id}-{user_id}-{now_millis}"
        if len(reference) > self.max_length:
            raise MalformedReferenceException(
                f"reference longer than {self.max_length} characters", reference=reference
            )
        return reference

    def decode(self, reference: str) -> DecodedReference:
        if not reference or not _ALLOWED.match(reference):
            raise MalformedReferenceException("empty or contains illegal characters", reference=reference)

        product_type = None
        for candidate in ProductType:
            if reference.startswith(f"{candidate.value}-"):
                product_type = candidate
                break
        if product_type is None:
            raise MalformedReferenceException("unknown product type tag", reference=reference)

        body = reference[len(product_type.value) + 1:]
        ts_match = _TIMESTAMP_SUFFIX.search(body)
        if ts_match is None:
            raise MalformedReferenceException("missing timestamp suffix", reference=reference)
        head = body[: ts_match.start()]

        # Dash-free user id: last anchor wins (older product ids may hold it).
        # Dashed user id: first anchor, encode keeps it out of product ids.
        anchor_at = head.rfind(self._anchor)
        if anchor_at <= 0 or "-" in head[anchor_at + 1:]:
            anchor_at = head.find(self._anchor)
        if anchor_at <= 0:
            raise MalformedReferenceException("user id anchor not found", reference=reference)

        product_id = head[:anchor_at]
        user_id = head[anchor_at + 1:]
        if user_id == self.user_id_marker:
            raise MalformedReferenceException("empty user id", reference=reference)

        return DecodedReference(
            product_type=product_type,
            product_id=product_id,
            user_id=user_id,
            issued_at_millis=int(ts_match.group(1)),
        )


_default_codec = ReferenceCodec()


def encode_reference(
    product_type: ProductType | str,
    product_id: str,
    user_id: str,
    now_millis: int,
) -> str:
    return _default_codec.encode(product_type, product_id, user_id, now_millis)


def decode_reference(reference: str) -> DecodedReference:
    return _default_codec.decode(reference)
