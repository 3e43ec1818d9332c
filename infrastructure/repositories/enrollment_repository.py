"""
报名仓储实现 - 使用SQLAlchemy实现数据访问
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import or_, and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.enrollment.entity import (
    AttendanceStatus,
    Enrollment,
    EnrollmentStatus,
    ProductType,
)
from domain.enrollment.repository import EnrollmentRepository
from infrastructure.models.enrollment import EnrollmentModel


logger = get_logger(__name__)


class SQLAlchemyEnrollmentRepository(EnrollmentRepository):
    """报名仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: EnrollmentModel) -> Enrollment:
        """将数据库模型转换为领域实体"""
        return Enrollment(
            id=model.id,
            student_id=model.student_id,
            product_type=ProductType(model.product_type),
            product_id=model.product_id,
            product_title=model.product_title,
            provider=model.provider,
            external_payment_id=model.external_payment_id,
            amount=Decimal(str(model.amount)),
            currency=model.currency,
            status=EnrollmentStatus(model.status),
            access_granted=model.access_granted,
            attendance_status=AttendanceStatus(model.attendance_status) if model.attendance_status else None,
            enrolled_at=model.enrolled_at,
        )

    def _to_model(self, entity: Enrollment) -> EnrollmentModel:
        """将领域实体转换为数据库模型"""
        return EnrollmentModel(
            id=entity.id,
            student_id=entity.student_id,
            product_type=entity.product_type.value,
            product_id=entity.product_id,
            product_title=entity.product_title,
            provider=entity.provider,
            external_payment_id=entity.external_payment_id,
            amount=entity.amount,
            currency=entity.currency,
            status=entity.status.value,
            access_granted=entity.access_granted,
            attendance_status=entity.attendance_status.value if entity.attendance_status else None,
            enrolled_at=entity.enrolled_at or datetime.now(timezone.utc),
        )

    async def find_active(
        self,
        student_id: int,
        product_id: str,
        product_type: Optional[ProductType] = None,
    ) -> Optional[Enrollment]:
        query = select(EnrollmentModel).where(
            EnrollmentModel.student_id == student_id,
            EnrollmentModel.product_id == product_id,
            EnrollmentModel.status == EnrollmentStatus.ACTIVE.value,
        )
        if product_type is not None:
            query = query.where(EnrollmentModel.product_type == ProductType(product_type).value)
        result = await self.session.execute(query.limit(1))
        db_enrollment = result.scalar_one_or_none()
        return self._to_entity(db_enrollment) if db_enrollment else None

    async def get_by_payment(self, provider: str, external_payment_id: str) -> Optional[Enrollment]:
        result = await self.session.execute(
            select(EnrollmentModel).where(
                EnrollmentModel.provider == provider,
                EnrollmentModel.external_payment_id == external_payment_id,
            )
        )
        db_enrollment = result.scalar_one_or_none()
        return self._to_entity(db_enrollment) if db_enrollment else None

    async def _find_existing(self, enrollment: Enrollment) -> Optional[EnrollmentModel]:
        """查找与候选记录冲突的已有记录（同一笔支付，或同一产品的 active 记录）"""
        conditions = [
            and_(
                EnrollmentModel.student_id == enrollment.student_id,
                EnrollmentModel.product_type == enrollment.product_type.value,
                EnrollmentModel.product_id == enrollment.product_id,
                EnrollmentModel.status == EnrollmentStatus.ACTIVE.value,
            )
        ]
        if enrollment.provider and enrollment.external_payment_id:
            conditions.append(
                and_(
                    EnrollmentModel.provider == enrollment.provider,
                    EnrollmentModel.external_payment_id == enrollment.external_payment_id,
                )
            )
        result = await self.session.execute(
            select(EnrollmentModel).where(or_(*conditions)).order_by(EnrollmentModel.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def add_if_absent(self, enrollment: Enrollment) -> Tuple[Enrollment, bool]:
        existing = await self._find_existing(enrollment)
        if existing is not None:
            return self._to_entity(existing), False

        db_enrollment = self._to_model(enrollment)
        try:
            self.session.add(db_enrollment)
            await self.session.flush()  # 触发唯一约束
            await self.session.refresh(db_enrollment)
        except IntegrityError:
            # 并发投递：另一请求已先写入
            await self.session.rollback()
            logger.info(
                "create_enrollment_conflict",
                student_id=enrollment.student_id,
                product_id=enrollment.product_id,
                external_payment_id=enrollment.external_payment_id,
            )
            existing = await self._find_existing(enrollment)
            if existing is None:
                raise
            return self._to_entity(existing), False
        return self._to_entity(db_enrollment), True

    async def list_by_student(
        self,
        student_id: int,
        status: Optional[EnrollmentStatus] = None,
    ) -> List[Enrollment]:
        query = select(EnrollmentModel).where(EnrollmentModel.student_id == student_id)
        if status is not None:
            query = query.where(EnrollmentModel.status == EnrollmentStatus(status).value)
        query = query.order_by(EnrollmentModel.enrolled_at.desc(), EnrollmentModel.id.desc())
        result = await self.session.execute(query)
        return [self._to_entity(m) for m in result.scalars().all()]
