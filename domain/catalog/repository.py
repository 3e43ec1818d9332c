"""
课程目录仓储接口
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import Product


class CourseRepository(ABC):
    """课程目录抽象接口（只读）"""

    @abstractmethod
    async def get_by_id(self, course_id: str) -> Optional[Product]:
        """根据ID获取已发布的课程"""
        pass
