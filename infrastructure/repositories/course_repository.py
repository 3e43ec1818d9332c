"""
课程目录仓储实现
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.catalog.entity import Product
from domain.catalog.repository import CourseRepository
from domain.enrollment.entity import ProductType
from infrastructure.models.course import CourseModel


class SQLAlchemyCourseRepository(CourseRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, course_id: str) -> Optional[Product]:
        result = await self.session.execute(
            select(CourseModel).where(
                CourseModel.id == course_id,
                CourseModel.is_published.is_(True),
            )
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return Product(
            product_type=ProductType.COURSE,
            id=model.id,
            title=model.title,
            price=Decimal(str(model.price)) if model.price is not None else None,
            currency=model.currency or "KES",
            slug=model.slug,
            description=model.description,
        )
