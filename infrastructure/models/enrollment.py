"""
报名数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String,
    UniqueConstraint, text,
)
from datetime import datetime, timezone

from .base import Base


class EnrollmentModel(Base):
    """
    报名数据库模型

    唯一性约束保证 webhook 重复投递（包括并发投递）不会产生重复授权：
    - 同一渠道的同一笔支付只能对应一条记录
    - 同一学员对同一产品只能有一条 active 记录（部分唯一索引）
    """
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("provider", "external_payment_id", name="uq_enrollments_provider_payment"),
        Index(
            "uq_enrollments_active_product",
            "student_id",
            "product_type",
            "product_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)

    # 产品信息
    product_type = Column(String(20), nullable=False, comment="产品类型: course/masterclass")
    product_id = Column(String(64), nullable=False, index=True, comment="产品ID")
    product_title = Column(String(255), nullable=True, comment="产品标题（大师课取自日历）")

    # 支付信息（免费报名时为空）
    provider = Column(String(20), nullable=True, comment="支付渠道: intasend/stripe")
    external_payment_id = Column(String(128), nullable=True, comment="渠道支付ID/发票ID")
    amount = Column(Numeric(precision=15, scale=2), nullable=False, default=0, comment="实收金额")
    currency = Column(String(3), nullable=False, default="KES", comment="货币代码")

    # 状态
    status = Column(String(20), nullable=False, default="active", index=True, comment="状态: active/cancelled/completed")
    access_granted = Column(Boolean, nullable=False, default=True, comment="是否已授予访问")
    attendance_status = Column(String(20), nullable=True, comment="大师课出勤: registered/attended/no_show")

    enrolled_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        comment="报名时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )
