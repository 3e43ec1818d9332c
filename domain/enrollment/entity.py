"""
报名领域实体 - 学员与报名（访问授权）记录
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException


class ProductType(str, Enum):
    """可售卖的产品类型"""
    COURSE = "course"
    MASTERCLASS = "masterclass"


class EnrollmentStatus(str, Enum):
    """报名状态枚举"""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AttendanceStatus(str, Enum):
    """大师课出勤状态"""
    REGISTERED = "registered"
    ATTENDED = "attended"
    NO_SHOW = "no_show"


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Student:
    """
    学员实体

    external_id 为身份提供方的用户ID（例如 user_2abc...），是支付引用串中的 userId。
    """

    id: Optional[int]
    external_id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.external_id:
            raise DomainValidationException("external_id is required", field="external_id")
        self.created_at = _ensure_utc(self.created_at)

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip() or self.email


@dataclass
class Enrollment:
    """
    报名聚合根 - 授予学员对某个产品的访问权限

    业务规则：
    1. 同一学员对同一产品最多存在一条 ACTIVE 记录
    2. 同一支付渠道的同一笔支付最多产生一条记录
    3. 金额不能为负数（免费报名金额为 0）
    """

    id: Optional[int]
    student_id: int
    product_type: ProductType
    product_id: str
    amount: Decimal
    currency: str
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    provider: Optional[str] = None
    external_payment_id: Optional[str] = None
    product_title: Optional[str] = None
    access_granted: bool = True
    attendance_status: Optional[AttendanceStatus] = None
    enrolled_at: Optional[datetime] = None

    def __post_init__(self):
        """初始化后验证"""
        self.product_type = ProductType(self.product_type)
        self.status = EnrollmentStatus(self.status)
        if not self.product_id:
            raise DomainValidationException("product_id is required", field="product_id")
        if self.amount < 0:
            raise DomainValidationException(
                f"报名金额不能为负数: {self.amount}",
                field="amount"
            )
        if not self.currency or len(self.currency) != 3 or not self.currency.isalpha():
            raise DomainValidationException(
                f"无效的货币代码: {self.currency}",
                field="currency"
            )
        self.currency = self.currency.upper()
        if self.product_type == ProductType.MASTERCLASS and self.attendance_status is None:
            self.attendance_status = AttendanceStatus.REGISTERED
        self.enrolled_at = _ensure_utc(self.enrolled_at)

    @classmethod
    def grant(
        cls,
        *,
        student_id: int,
        product_type: ProductType,
        product_id: str,
        amount: Decimal,
        currency: str,
        provider: Optional[str] = None,
        external_payment_id: Optional[str] = None,
        product_title: Optional[str] = None,
    ) -> "Enrollment":
        """创建一条新的 ACTIVE 报名记录候选"""
        return cls(
            id=None,
            student_id=student_id,
            product_type=product_type,
            product_id=product_id,
            amount=amount,
            currency=currency,
            status=EnrollmentStatus.ACTIVE,
            provider=provider,
            external_payment_id=external_payment_id,
            product_title=product_title,
            access_granted=True,
            enrolled_at=datetime.now(timezone.utc),
        )

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE

    @property
    def is_free(self) -> bool:
        return self.external_payment_id is None and self.amount == 0
