"""
报名领域服务 - 幂等授予访问权限
"""
from decimal import Decimal
from typing import List, Optional, Tuple

from .entity import Enrollment, ProductType, Student
from .events import EnrollmentGranted
from .repository import EnrollmentRepository, StudentRepository


class EnrollmentDomainService:
    """
    报名领域服务

    职责：
    1. 构造 ACTIVE 报名候选并通过仓储条件写入（重复投递不会产生第二条）
    2. 查询学员是否已获得访问权限
    3. 产生领域事件（仅在真正新建记录时）
    """

    def __init__(
        self,
        student_repository: StudentRepository,
        enrollment_repository: EnrollmentRepository,
    ):
        self.student_repository = student_repository
        self.enrollment_repository = enrollment_repository
        self.events: List = []

    async def grant_enrollment(
        self,
        *,
        student: Student,
        product_type: ProductType,
        product_id: str,
        amount: Decimal,
        currency: str,
        provider: Optional[str] = None,
        external_payment_id: Optional[str] = None,
        product_title: Optional[str] = None,
    ) -> Tuple[Enrollment, bool]:
        candidate = Enrollment.grant(
            student_id=student.id,
            product_type=product_type,
            product_id=product_id,
            amount=amount,
            currency=currency,
            provider=provider,
            external_payment_id=external_payment_id,
            product_title=product_title,
        )
        enrollment, created = await self.enrollment_repository.add_if_absent(candidate)
        if created:
            self.events.append(
                EnrollmentGranted(
                    enrollment_id=enrollment.id,
                    product_type=enrollment.product_type.value,
                    product_id=enrollment.product_id,
                    product_title=enrollment.product_title,
                    provider=enrollment.provider,
                    student_external_id=student.external_id,
                    student_email=student.email,
                    student_first_name=student.first_name,
                    student_last_name=student.last_name,
                )
            )
        return enrollment, created

    async def is_enrolled(
        self,
        external_id: str,
        product_id: str,
        product_type: Optional[ProductType] = None,
    ) -> bool:
        student = await self.student_repository.get_by_external_id(external_id)
        if student is None:
            return False
        enrollment = await self.enrollment_repository.find_active(student.id, product_id, product_type)
        return enrollment is not None

    def get_domain_events(self) -> List:
        """取出并清空已收集的领域事件"""
        events, self.events = self.events, []
        return events
