"""Unit of Work 抽象定义"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.catalog.repository import CourseRepository
from domain.enrollment.repository import EnrollmentRepository, StudentRepository


class AbstractUnitOfWork(ABC):
    """
    应用层事务边界控制抽象

    退出上下文时：有异常则回滚；非只读且未显式提交则自动提交。
    """

    student_repository: StudentRepository
    enrollment_repository: EnrollmentRepository
    course_repository: CourseRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly

    @property
    def readonly(self) -> bool:
        return self._readonly

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            await self.rollback()
        elif not self._readonly and not self._committed:
            await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
