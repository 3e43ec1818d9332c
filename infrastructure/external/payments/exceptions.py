"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class PaymentProviderError(BusinessException):
    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="PaymentProviderError",
            details=full_details,
        )


class PaymentRecoverableError(BusinessException):
    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PROVIDER_RECOVERABLE,
            message=message,
            error_type="PaymentRecoverableError",
            details=full_details,
        )


class PaymentSignatureError(BusinessException):
    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=message,
            error_type="PaymentSignatureError",
            details=full_details,
        )



class PaymentChallengeError(BusinessException):
    """Shared-secret challenge in the webhook body did not match."""

    def __init__(self, message: str = "Invalid challenge", *, provider: str):
        super().__init__(
            code=PaymentCode.CHALLENGE_ERROR,
            message=message,
            error_type="PaymentChallengeError",
            details={"provider": provider},
        )


class PaymentMetadataError(BusinessException):
    def __init__(self, message: str, *, provider: str, field: str | None = None):
        super().__init__(
            code=PaymentCode.METADATA_ERROR,
            message=message,
            error_type="PaymentMetadataError",
            details={"provider": provider},
            field=field,
        )


class PaymentPayloadError(BusinessException):
    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PAYLOAD_ERROR,
            message=message,
            error_type="PaymentPayloadError",
            details=full_details,
        )


class UnrecognizedEventKindError(BusinessException):
    """Verified event of a kind this service does not handle."""

    def __init__(self, kind: str, *, provider: str):
        super().__init__(
            code=PaymentCode.UNRECOGNIZED_EVENT,
            message=f"Unhandled event kind: {kind}",
            error_type="UnrecognizedEventKindError",
            details={"provider": provider, "kind": kind},
        )
        self.kind = kind


class PaymentConfigurationError(BusinessException):
    def __init__(self, message: str, *, provider: str):
        super().__init__(
            code=PaymentCode.CONFIGURATION_ERROR,
            message=message,
            error_type="PaymentConfigurationError",
            details={"provider": provider},
        )
