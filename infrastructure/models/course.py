"""
课程数据库模型（内容系统同步过来的只读副本）
"""
from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Text
from datetime import datetime, timezone

from .base import Base


class CourseModel(Base):
    __tablename__ = "courses"

    id = Column(String(64), primary_key=True, comment="内容系统文档ID")
    slug = Column(String(200), unique=True, index=True, nullable=False, comment="URL别名")
    title = Column(String(255), nullable=False, comment="标题")
    description = Column(Text, nullable=True, comment="简介")
    price = Column(Numeric(precision=15, scale=2), nullable=True, comment="价格，0 表示免费")
    currency = Column(String(3), nullable=False, default="KES", comment="货币代码")
    is_published = Column(Boolean, nullable=False, default=True, comment="是否已发布")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
