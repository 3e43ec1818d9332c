"""
报名仓储接口 - 定义学员与报名记录的数据访问抽象
"""
from abc import ABC, abstractmethod
from typing import Optional, List, Tuple

from .entity import Enrollment, EnrollmentStatus, ProductType, Student


class StudentRepository(ABC):
    """学员仓储抽象接口"""

    @abstractmethod
    async def get_by_external_id(self, external_id: str) -> Optional[Student]:
        """根据身份提供方用户ID获取学员"""
        pass

    @abstractmethod
    async def get_or_create(self, student: Student) -> Student:
        """按 external_id 获取学员，不存在时创建"""
        pass


class EnrollmentRepository(ABC):
    """报名仓储抽象接口"""

    @abstractmethod
    async def find_active(
        self,
        student_id: int,
        product_id: str,
        product_type: Optional[ProductType] = None,
    ) -> Optional[Enrollment]:
        """获取学员对某产品的 ACTIVE 报名"""
        pass

    @abstractmethod
    async def get_by_payment(self, provider: str, external_payment_id: str) -> Optional[Enrollment]:
        """根据支付渠道与支付ID获取报名"""
        pass

    @abstractmethod
    async def add_if_absent(self, enrollment: Enrollment) -> Tuple[Enrollment, bool]:
        """
        条件创建报名记录

        若同一笔支付或同一学员/产品的 ACTIVE 记录已存在，返回已存在记录与 False；
        否则写入并返回新记录与 True。并发重复写入时同样只会有一条成功。
        """
        pass

    @abstractmethod
    async def list_by_student(
        self,
        student_id: int,
        status: Optional[EnrollmentStatus] = None,
    ) -> List[Enrollment]:
        """获取学员的报名列表（按报名时间倒序）"""
        pass
