"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    SIGNATURE_ERROR = 60002
    TIMEOUT = 60003
    RATE_LIMITED = 60004
    CHALLENGE_ERROR = 60005
    METADATA_ERROR = 60006
    PAYLOAD_ERROR = 60007
    UNRECOGNIZED_EVENT = 60008
    CONFIGURATION_ERROR = 60009


# Provider state → canonical outcome (values of domain.payment.entity.PaymentOutcome)
PROVIDER_STATUS_TO_INTERNAL = {
    "intasend": {
        # Per collection webhook `state`
        "PENDING": "pending",
        "PROCESSING": "processing",
        "COMPLETE": "succeeded",
        "FAILED": "failed",
    },
    "stripe": {
        # Per checkout session `payment_status`
        "paid": "succeeded",
        "no_payment_required": "succeeded",
        "unpaid": "processing",
    },
}
