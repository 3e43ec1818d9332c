"""
Application service reconciling normalized payment webhooks into enrollments.

Each delivery is handled independently: the only state is what the
enrollment store already holds, so redelivered or concurrent duplicates of
the same payment resolve to the existing record instead of a second grant.

Outcome policy:
- non-success outcomes are acknowledged (200) without touching the store;
- an unusable reference/metadata or an unknown student is the caller's
  fault (400) and is left to the provider's own retry policy;
- any other failure before commit is ours (500) so the provider redelivers;
- notification failures after commit are logged and never change the outcome.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from application.dtos.payments import ReconciliationResult
from application.ports.catalog import ProductCatalog
from application.ports.notifier import EnrollmentNotifier
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    EntitlementWriteFailedException,
    MalformedReferenceException,
    StudentNotFoundException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.enrollment.entity import ProductType
from domain.enrollment.reference import ReferenceCodec
from domain.enrollment.service import EnrollmentDomainService
from domain.payment.entity import PaymentOutcome
from domain.payment.events import PaymentEvent


logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResolvedTarget:
    product_type: ProductType
    product_id: str
    user_id: str
    product_title: Optional[str]
    source: str  # "metadata" or "reference"


class ReconciliationService:
    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        notifier: EnrollmentNotifier,
        *,
        catalog: Optional[ProductCatalog] = None,
        codec: Optional[ReferenceCodec] = None,
        store_timeout: float = 5.0,
    ) -> None:
        self._uow_factory = uow_factory
        self._notifier = notifier
        self._catalog = catalog
        self._codec = codec or ReferenceCodec()
        self._timeout = store_timeout

    async def reconcile(self, event: PaymentEvent) -> ReconciliationResult:
        log = logger.bind(
            provider=event.provider.value,
            payment_id=event.external_payment_id,
            reference=event.reference,
            outcome=event.outcome.value,
        )

        if event.outcome != PaymentOutcome.SUCCEEDED:
            log.info("payment_event_acknowledged", provider_state=event.provider_state)
            if event.outcome == PaymentOutcome.FAILED:
                return ReconciliationResult.acknowledged("Failed payment logged")
            state = event.provider_state or event.outcome.value.upper()
            return ReconciliationResult.acknowledged(f"State {state} acknowledged")

        try:
            target = self.resolve_target(event)
        except MalformedReferenceException as exc:
            log.warning("reference_decode_failed", reason=(exc.details or {}).get("reason"))
            return ReconciliationResult.rejected(400, "Invalid api_ref format")

        log = log.bind(
            product_type=target.product_type.value,
            product_id=target.product_id,
            user_id=target.user_id,
            target_source=target.source,
        )

        try:
            enrollment, created, events = await self._grant(event, target)
        except StudentNotFoundException:
            log.warning("student_not_found")
            return ReconciliationResult.rejected(400, "Student not found")
        except EntitlementWriteFailedException as exc:
            log.error("enrollment_write_failed", **(exc.details or {}), exc_info=True)
            return ReconciliationResult.rejected(500, "Webhook processing failed")
        except Exception as exc:
            log.error("webhook_processing_failed", error=str(exc), error_type=type(exc).__name__, exc_info=True)
            return ReconciliationResult.rejected(500, "Webhook processing failed")

        if not created:
            log.info("enrollment_duplicate_ignored", enrollment_id=enrollment.id)
            return ReconciliationResult(
                status_code=200,
                body={"success": True, "duplicate": True},
                enrollment_id=enrollment.id,
                created=False,
            )

        log.info("enrollment_created", enrollment_id=enrollment.id, amount=str(enrollment.amount), currency=enrollment.currency)
        for granted in events:
            try:
                await self._bounded(self._notifier.enrollment_granted(granted))
            except Exception as exc:
                log.warning("enrollment_notification_failed", error=str(exc), enrollment_id=enrollment.id)

        return ReconciliationResult(
            status_code=200,
            body={"success": True},
            enrollment_id=enrollment.id,
            created=True,
        )

    def resolve_target(self, event: PaymentEvent) -> ResolvedTarget:
        """Pick (type, product, user): provider metadata first, then the reference.

        Raises MalformedReferenceException when neither yields a usable triple.
        """
        decoded = None
        if event.reference:
            try:
                decoded = self._codec.decode(event.reference)
            except MalformedReferenceException:
                decoded = None

        extra = event.raw_extra
        if extra is not None and extra.is_usable:
            product_type = extra.product_type or (decoded.product_type if decoded else None)
            if product_type is None:
                raise MalformedReferenceException("product type missing from metadata", reference=event.reference)
            return ResolvedTarget(
                product_type=product_type,
                product_id=extra.product_id,
                user_id=extra.user_id,
                product_title=extra.product_title,
                source="metadata",
            )

        if decoded is None:
            if not event.reference:
                raise MalformedReferenceException("no reference and no usable metadata")
            # raises with the codec's own reason
            decoded = self._codec.decode(event.reference)

        return ResolvedTarget(
            product_type=decoded.product_type,
            product_id=decoded.product_id,
            user_id=decoded.user_id,
            product_title=extra.product_title if extra is not None else None,
            source="reference",
        )

    async def _grant(self, event: PaymentEvent, target: ResolvedTarget):
        async with self._uow_factory() as uow:
            student = await self._bounded(uow.student_repository.get_by_external_id(target.user_id))
            if student is None:
                raise StudentNotFoundException(target.user_id)

            # redeliveries resolve here without touching the catalog
            existing = await self._bounded(
                uow.enrollment_repository.find_active(student.id, target.product_id, target.product_type)
            )
            if existing is not None:
                return existing, False, []

            title = target.product_title or await self._lookup_title(target)
            domain_service = EnrollmentDomainService(uow.student_repository, uow.enrollment_repository)
            try:
                enrollment, created = await self._bounded(
                    domain_service.grant_enrollment(
                        student=student,
                        product_type=target.product_type,
                        product_id=target.product_id,
                        amount=event.net_amount,
                        currency=event.currency,
                        provider=event.provider.value,
                        external_payment_id=event.external_payment_id,
                        product_title=title,
                    )
                )
                await self._bounded(uow.commit())
            except BusinessException:
                raise
            except Exception as exc:
                raise EntitlementWriteFailedException(
                    details={"error": str(exc), "error_type": type(exc).__name__}
                ) from exc
        return enrollment, created, domain_service.get_domain_events()

    async def _lookup_title(self, target: ResolvedTarget) -> Optional[str]:
        fallback = f"MasterClass {target.product_id}" if target.product_type == ProductType.MASTERCLASS else None
        if self._catalog is None:
            return fallback
        try:
            product = await self._bounded(self._catalog.get_product(target.product_type, target.product_id))
        except Exception as exc:
            logger.warning("product_title_lookup_failed", product_id=target.product_id, error=str(exc))
            return fallback
        return product.title if product and product.title else fallback

    async def _bounded(self, aw: Awaitable[T]) -> T:
        return await asyncio.wait_for(aw, timeout=self._timeout)
