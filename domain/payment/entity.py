"""
支付领域值对象 - 渠道与支付结果
"""
from __future__ import annotations

from enum import Enum


class PaymentProvider(str, Enum):
    """支付渠道枚举"""
    MOBILE_MONEY = "intasend"  # 移动支付（M-Pesa 等），共享密钥 challenge 校验
    CARD = "stripe"            # 银行卡，签名校验


class PaymentOutcome(str, Enum):
    """渠道无关的支付结果"""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        return self in (PaymentOutcome.SUCCEEDED, PaymentOutcome.FAILED)
