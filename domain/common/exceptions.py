"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class StudentNotFoundException(BusinessException):
    def __init__(self, external_id: Optional[str] = None):
        details = {"external_id": external_id} if external_id else None
        super().__init__(
            code=BusinessCode.STUDENT_NOT_FOUND,
            message="Student not found",
            error_type="StudentNotFound",
            details=details,
        )


class ProductNotFoundException(BusinessException):
    def __init__(self, product_type: str, product_id: str):
        super().__init__(
            code=BusinessCode.PRODUCT_NOT_FOUND,
            message=f"{product_type.capitalize()} {product_id} not found",
            error_type="ProductNotFound",
            details={"product_type": product_type, "product_id": product_id},
        )


class MalformedReferenceException(BusinessException):
    """支付引用串无法编码/解码"""

    def __init__(self, reason: str, *, reference: Optional[str] = None):
        details = {"reason": reason}
        if reference is not None:
            details["reference"] = reference
        super().__init__(
            code=BusinessCode.MALFORMED_REFERENCE,
            message=f"Malformed payment reference: {reason}",
            error_type="MalformedReference",
            details=details,
            field="api_ref",
        )


class EntitlementWriteFailedException(BusinessException):
    """写入报名记录失败（可由支付方重投递恢复）"""

    def __init__(self, message: str = "Failed to persist enrollment", *, details: Optional[dict] = None):
        super().__init__(
            code=BusinessCode.ENTITLEMENT_WRITE_FAILED,
            message=message,
            error_type="EntitlementWriteFailed",
            details=details,
        )


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class CatalogUnavailableException(BusinessException):
    """大师课日历未配置或不可用"""

    def __init__(self, message: str = "Masterclass calendar is not configured"):
        super().__init__(
            code=BusinessCode.SERVICE_UNAVAILABLE,
            message=message,
            error_type="CatalogUnavailable",
        )
