"""
Application service starting a checkout for a course or masterclass.

Free products are enrolled immediately. Paid products get a fresh payment
reference and a provider-hosted checkout session; the enrollment itself is
granted later by the webhook reconciliation.
"""
from __future__ import annotations

import time
from decimal import Decimal
from typing import Callable, Mapping, Optional

from application.dtos.enrollments import Principal
from application.dtos.payments import CheckoutRequest, CheckoutSession, GatewayCheckout
from application.ports.catalog import ProductCatalog
from application.ports.notifier import EnrollmentNotifier
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.catalog.entity import Product
from domain.common.exceptions import DomainValidationException, ProductNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.enrollment.entity import ProductType, Student
from domain.enrollment.reference import ReferenceCodec
from domain.enrollment.service import EnrollmentDomainService
from domain.payment.entity import PaymentProvider
from shared.currency import convert_currency, is_supported_currency


logger = get_logger(__name__)

# Currency each provider charges in
CHARGE_CURRENCY = {
    PaymentProvider.MOBILE_MONEY: "KES",
    PaymentProvider.CARD: "USD",
}


def _now_millis() -> int:
    return int(time.time() * 1000)


class CheckoutService:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        catalog: ProductCatalog,
        gateways: Mapping[PaymentProvider, PaymentGateway],
        *,
        base_url: str,
        notifier: Optional[EnrollmentNotifier] = None,
        codec: Optional[ReferenceCodec] = None,
        clock: Callable[[], int] = _now_millis,
    ) -> None:
        self._uow_factory = uow_factory
        self._catalog = catalog
        self._gateways = gateways
        self._base_url = base_url.rstrip("/")
        self._notifier = notifier
        self._codec = codec or ReferenceCodec()
        self._clock = clock

    async def create_checkout(self, principal: Principal, req: CheckoutRequest) -> CheckoutSession:
        product = await self._catalog.get_product(req.product_type, req.product_id)
        if product is None:
            raise ProductNotFoundException(req.product_type.value, req.product_id)

        async with self._uow_factory() as uow:
            student = await uow.student_repository.get_or_create(
                Student(
                    id=None,
                    external_id=principal.external_id,
                    email=principal.email,
                    first_name=principal.first_name or principal.email,
                    last_name=principal.last_name,
                    image_url=principal.image_url,
                )
            )

        product_url = f"{self._base_url}{product.path}"
        if product.is_free:
            return await self._enroll_free(student, product, product_url)

        if product.price is None:
            raise DomainValidationException(f"{product.title} has no price set", field="price")

        gateway = self._gateways.get(req.provider)
        if gateway is None:
            raise DomainValidationException(
                f"Payment provider {req.provider.value} is not enabled", field="provider"
            )

        reference = self._codec.encode(product.product_type, product.id, principal.external_id, self._clock())
        amount, currency = self._charge_amount(product, req.provider)

        session = await gateway.create_checkout(
            GatewayCheckout(
                reference=reference,
                amount=amount,
                currency=currency,
                title=product.title,
                customer_email=principal.email,
                customer_first_name=principal.first_name or "Student",
                customer_last_name=principal.last_name,
                redirect_url=f"{product_url}?payment=success",
                cancel_url=f"{product_url}?payment=cancelled",
                metadata=self._metadata(product, principal.external_id, reference),
            )
        )
        logger.info(
            "checkout_created",
            provider=req.provider.value,
            reference=reference,
            product_type=product.product_type.value,
            product_id=product.id,
            amount=str(amount),
            currency=currency,
        )
        return session

    async def _enroll_free(self, student: Student, product: Product, product_url: str) -> CheckoutSession:
        async with self._uow_factory() as uow:
            domain_service = EnrollmentDomainService(uow.student_repository, uow.enrollment_repository)
            enrollment, created = await domain_service.grant_enrollment(
                student=student,
                product_type=product.product_type,
                product_id=product.id,
                amount=Decimal("0"),
                currency=product.currency or "KES",
                product_title=product.title,
            )
        logger.info("free_enrollment_granted", enrollment_id=enrollment.id, product_id=product.id, created=created)

        if self._notifier is not None:
            for granted in domain_service.get_domain_events():
                try:
                    await self._notifier.enrollment_granted(granted)
                except Exception as exc:
                    logger.warning("enrollment_notification_failed", error=str(exc), enrollment_id=enrollment.id)
        return CheckoutSession(url=product_url, enrolled=True)

    @staticmethod
    def _charge_amount(product: Product, provider: PaymentProvider) -> tuple[Decimal, str]:
        source = (product.currency or "KES").upper()
        if not is_supported_currency(source):
            logger.warning("unsupported_listing_currency", currency=source, product_id=product.id)
            source = "USD"
        target = CHARGE_CURRENCY[provider]
        return convert_currency(product.price, source, target), target

    @staticmethod
    def _metadata(product: Product, user_id: str, reference: str) -> dict[str, str]:
        metadata = {
            "type": product.product_type.value,
            "user_id": user_id,
            "api_ref": reference,
        }
        if product.product_type == ProductType.COURSE:
            metadata["courseId"] = product.id
        else:
            metadata["masterclass_id"] = product.id
            metadata["masterclass_title"] = product.title
        return metadata
