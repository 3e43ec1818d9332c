"""create_enrollment_tables

Revision ID: 3f2c9a1d7b44
Revises:
Create Date: 2026-09-12 10:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f2c9a1d7b44'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('external_id', sa.String(length=64), nullable=False, comment='身份提供方用户ID'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='邮箱'),
        sa.Column('first_name', sa.String(length=100), nullable=False, server_default='', comment='名'),
        sa.Column('last_name', sa.String(length=100), nullable=False, server_default='', comment='姓'),
        sa.Column('image_url', sa.String(length=500), nullable=True, comment='头像'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_students_id', 'students', ['id'], unique=False)
    op.create_index('ix_students_external_id', 'students', ['external_id'], unique=True)
    op.create_index('ix_students_email', 'students', ['email'], unique=False)

    op.create_table(
        'courses',
        sa.Column('id', sa.String(length=64), nullable=False, comment='内容系统文档ID'),
        sa.Column('slug', sa.String(length=200), nullable=False, comment='URL别名'),
        sa.Column('title', sa.String(length=255), nullable=False, comment='标题'),
        sa.Column('description', sa.Text(), nullable=True, comment='简介'),
        sa.Column('price', sa.Numeric(precision=15, scale=2), nullable=True, comment='价格，0 表示免费'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='KES', comment='货币代码'),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.true(), comment='是否已发布'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_courses_slug', 'courses', ['slug'], unique=True)

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('product_type', sa.String(length=20), nullable=False, comment='产品类型: course/masterclass'),
        sa.Column('product_id', sa.String(length=64), nullable=False, comment='产品ID'),
        sa.Column('product_title', sa.String(length=255), nullable=True, comment='产品标题（大师课取自日历）'),
        sa.Column('provider', sa.String(length=20), nullable=True, comment='支付渠道: intasend/stripe'),
        sa.Column('external_payment_id', sa.String(length=128), nullable=True, comment='渠道支付ID/发票ID'),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0', comment='实收金额'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='KES', comment='货币代码'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active', comment='状态: active/cancelled/completed'),
        sa.Column('access_granted', sa.Boolean(), nullable=False, server_default=sa.true(), comment='是否已授予访问'),
        sa.Column('attendance_status', sa.String(length=20), nullable=True, comment='大师课出勤: registered/attended/no_show'),
        sa.Column('enrolled_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='报名时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('provider', 'external_payment_id', name='uq_enrollments_provider_payment'),
    )
    op.create_index('ix_enrollments_id', 'enrollments', ['id'], unique=False)
    op.create_index('ix_enrollments_student_id', 'enrollments', ['student_id'], unique=False)
    op.create_index('ix_enrollments_product_id', 'enrollments', ['product_id'], unique=False)
    op.create_index('ix_enrollments_status', 'enrollments', ['status'], unique=False)
    op.create_index('ix_enrollments_enrolled_at', 'enrollments', ['enrolled_at'], unique=False)
    # 同一学员同一产品只允许一条 active 记录
    op.create_index(
        'uq_enrollments_active_product',
        'enrollments',
        ['student_id', 'product_type', 'product_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )


def downgrade() -> None:
    op.drop_index('uq_enrollments_active_product', table_name='enrollments')
    op.drop_index('ix_enrollments_enrolled_at', table_name='enrollments')
    op.drop_index('ix_enrollments_status', table_name='enrollments')
    op.drop_index('ix_enrollments_product_id', table_name='enrollments')
    op.drop_index('ix_enrollments_student_id', table_name='enrollments')
    op.drop_index('ix_enrollments_id', table_name='enrollments')
    op.drop_table('enrollments')

    op.drop_index('ix_courses_slug', table_name='courses')
    op.drop_table('courses')

    op.drop_index('ix_students_email', table_name='students')
    op.drop_index('ix_students_external_id', table_name='students')
    op.drop_index('ix_students_id', table_name='students')
    op.drop_table('students')
