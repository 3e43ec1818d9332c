"""
学员数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime, timezone

from .base import Base


class StudentModel(Base):
    """
    学员数据库模型

    所有业务规则都在 domain.enrollment.entity.Student 中
    """
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)

    # 身份提供方用户ID（支付引用串中的 userId）
    external_id = Column(String(64), unique=True, index=True, nullable=False, comment="身份提供方用户ID")
    email = Column(String(255), nullable=False, index=True, comment="邮箱")
    first_name = Column(String(100), nullable=False, default="", comment="名")
    last_name = Column(String(100), nullable=False, default="", comment="姓")
    image_url = Column(String(500), nullable=True, comment="头像")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
