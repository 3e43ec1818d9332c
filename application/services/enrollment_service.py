"""
Enrollment query use-cases backing the status endpoint and the
"my enrollments" listing.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from application.dtos.enrollments import EnrollmentDTO
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.enrollment.entity import EnrollmentStatus, ProductType
from domain.enrollment.service import EnrollmentDomainService


logger = get_logger(__name__)


class EnrollmentService:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def is_enrolled(
        self,
        external_id: str,
        product_id: str,
        product_type: Optional[ProductType] = None,
    ) -> bool:
        async with self._uow_factory(readonly=True) as uow:
            domain_service = EnrollmentDomainService(uow.student_repository, uow.enrollment_repository)
            enrolled = await domain_service.is_enrolled(external_id, product_id, product_type)
        logger.debug("enrollment_status_checked", user_id=external_id, product_id=product_id, enrolled=enrolled)
        return enrolled

    async def list_enrollments(
        self,
        external_id: str,
        status: Optional[EnrollmentStatus] = None,
    ) -> List[EnrollmentDTO]:
        async with self._uow_factory(readonly=True) as uow:
            student = await uow.student_repository.get_by_external_id(external_id)
            if student is None:
                return []
            enrollments = await uow.enrollment_repository.list_by_student(student.id, status)
        return [EnrollmentDTO.model_validate(e) for e in enrollments]
