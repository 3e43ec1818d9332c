"""
目录领域实体 - 可售卖的课程与大师课
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.enrollment.entity import ProductType


class ScheduleStatus(str, Enum):
    """大师课相对当前时间的状态"""

    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Product:
    """
    可报名的产品（课程或大师课）

    price 为 None 表示标记为付费但未给出价格，不能发起支付。
    """

    product_type: ProductType
    id: str
    title: str
    price: Optional[Decimal]
    currency: str = "KES"
    slug: Optional[str] = None
    description: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    instructor: Optional[str] = None
    attendee_count: int = 0
    max_attendees: Optional[int] = None

    @property
    def is_free(self) -> bool:
        return self.price is not None and self.price == 0

    @property
    def is_premium(self) -> bool:
        return not self.is_free

    @property
    def path(self) -> str:
        if self.product_type == ProductType.COURSE:
            return f"/courses/{self.slug or self.id}"
        return f"/masterclasses/{self.id}"

    def schedule_status(self, now: datetime) -> ScheduleStatus:
        """开始前为 upcoming，开始与结束之间为 live，结束后为 completed；无时间信息视为 upcoming"""
        if self.starts_at is None:
            return ScheduleStatus.UPCOMING
        end = self.ends_at or self.starts_at
        if now < self.starts_at:
            return ScheduleStatus.UPCOMING
        if now <= end:
            return ScheduleStatus.LIVE
        return ScheduleStatus.COMPLETED
