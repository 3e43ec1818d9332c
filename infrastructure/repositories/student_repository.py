"""
学员仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from domain.enrollment.entity import Student
from domain.enrollment.repository import StudentRepository
from infrastructure.models.student import StudentModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyStudentRepository(StudentRepository):
    """学员仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: StudentModel) -> Student:
        """将数据库模型转换为领域实体"""
        return Student(
            id=model.id,
            external_id=model.external_id,
            email=model.email,
            first_name=model.first_name or "",
            last_name=model.last_name or "",
            image_url=model.image_url,
            created_at=model.created_at,
        )

    async def get_by_external_id(self, external_id: str) -> Optional[Student]:
        """根据身份提供方用户ID获取学员"""
        result = await self.session.execute(
            select(StudentModel).where(StudentModel.external_id == external_id)
        )
        db_student = result.scalar_one_or_none()
        return self._to_entity(db_student) if db_student else None

    async def get_or_create(self, student: Student) -> Student:
        """按 external_id 获取学员，不存在时创建（并发创建时以先写入者为准）"""
        existing = await self.get_by_external_id(student.external_id)
        if existing is not None:
            return existing

        db_student = StudentModel(
            external_id=student.external_id,
            email=student.email,
            first_name=student.first_name,
            last_name=student.last_name,
            image_url=student.image_url,
        )
        try:
            self.session.add(db_student)
            await self.session.flush()
            await self.session.refresh(db_student)
        except IntegrityError:
            await self.session.rollback()
            logger.info("create_student_conflict", external_id=student.external_id)
            existing = await self.get_by_external_id(student.external_id)
            if existing is None:
                raise
            return existing
        logger.info("student_created", student_id=db_student.id, external_id=student.external_id)
        return self._to_entity(db_student)
