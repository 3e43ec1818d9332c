"""SQLAlchemy Unit of Work 实现

一次回调对账 = 一个 UoW：学员查询、报名写入在同一事务中完成，
异常时整体回滚，由渠道按自身策略重投。
"""
from __future__ import annotations

from typing import Optional, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.course_repository import SQLAlchemyCourseRepository
from infrastructure.repositories.enrollment_repository import SQLAlchemyEnrollmentRepository
from infrastructure.repositories.student_repository import SQLAlchemyStudentRepository


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """基于SQLAlchemy的Unit of Work

    传入 session 时由调用方管理其生命周期（测试中共享会话），
    否则每次进入上下文都从 session_factory 新建并在退出时关闭。
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._owns_session = session is None
        self.session: Optional[AsyncSession] = session

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self.student_repository = SQLAlchemyStudentRepository(self.session)
        self.enrollment_repository = SQLAlchemyEnrollmentRepository(self.session)
        self.course_repository = SQLAlchemyCourseRepository(self.session)
        # 只读模式依赖自动开启的事务，退出时关闭会话即释放
        if not self._readonly:
            await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self._owns_session and self.session is not None:
                await self.session.close()
                self.session = None
            self.student_repository = None
            self.enrollment_repository = None
            self.course_repository = None

    async def commit(self) -> None:
        if not self._readonly and self.session and self.session.in_transaction():
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
