import asyncio
from decimal import Decimal

import pytest

from application.services.reconciliation_service import ReconciliationService
from domain.catalog.entity import Product
from domain.enrollment.entity import ProductType
from domain.payment.entity import PaymentOutcome, PaymentProvider
from domain.payment.events import PaymentEvent, ProductMetadata

from conftest import RecordingNotifier, StaticCatalog


def _event(outcome=PaymentOutcome.SUCCEEDED, **kwargs) -> PaymentEvent:
    defaults = dict(
        provider=PaymentProvider.MOBILE_MONEY,
        external_payment_id="INV-1",
        outcome=outcome,
        net_amount=Decimal("980.00"),
        currency="KES",
        reference="masterclass-mc42-user_1-1700000000001",
        provider_state="COMPLETE",
    )
    defaults.update(kwargs)
    return PaymentEvent(**defaults)


@pytest.fixture
def service(uow_factory, notifier):
    return ReconciliationService(uow_factory, notifier, store_timeout=1.0)


@pytest.mark.asyncio
async def test_completed_payment_creates_one_enrollment(store, service, notifier):
    store.add_student("user_1", email="ada@example.com", first_name="Ada")

    result = await service.reconcile(_event())

    assert result.status_code == 200
    assert result.body == {"success": True}
    assert result.created is True
    assert len(store.enrollments) == 1
    enrollment = store.enrollments[0]
    assert enrollment.product_type == ProductType.MASTERCLASS
    assert enrollment.product_id == "mc42"
    assert enrollment.amount == Decimal("980.00")
    assert enrollment.external_payment_id == "INV-1"
    assert enrollment.provider == "intasend"
    assert enrollment.product_title == "MasterClass mc42"
    assert len(notifier.events) == 1
    assert notifier.events[0].student_email == "ada@example.com"


@pytest.mark.asyncio
async def test_redelivery_is_idempotent(store, service, notifier):
    store.add_student("user_1")
    first = await service.reconcile(_event())
    second = await service.reconcile(_event())

    assert first.created is True
    assert second.status_code == 200
    assert second.created is False
    assert second.body["duplicate"] is True
    assert second.enrollment_id == first.enrollment_id
    assert len(store.enrollments) == 1
    assert len(notifier.events) == 1


@pytest.mark.asyncio
async def test_concurrent_duplicates_grant_once(store, service, notifier):
    store.add_student("user_1")
    results = await asyncio.gather(*(service.reconcile(_event()) for _ in range(5)))

    assert all(r.status_code == 200 for r in results)
    assert sum(1 for r in results if r.created) == 1
    assert len(store.enrollments) == 1
    assert len(notifier.events) == 1


@pytest.mark.asyncio
async def test_second_payment_for_same_product_does_not_duplicate(store, service):
    store.add_student("user_1")
    await service.reconcile(_event(external_payment_id="INV-1"))
    result = await service.reconcile(_event(external_payment_id="INV-2"))

    assert result.created is False
    assert len(store.enrollments) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome,state,message",
    [
        (PaymentOutcome.PENDING, "PENDING", "State PENDING acknowledged"),
        (PaymentOutcome.PROCESSING, "PROCESSING", "State PROCESSING acknowledged"),
        (PaymentOutcome.FAILED, "FAILED", "Failed payment logged"),
    ],
)
async def test_non_success_outcomes_are_acknowledged_without_writes(store, service, notifier, outcome, state, message):
    store.add_student("user_1")
    result = await service.reconcile(_event(outcome=outcome, provider_state=state, reference="garbage"))

    assert result.status_code == 200
    assert result.body == {"success": True, "message": message}
    assert store.enrollments == []
    assert store.commits == 0
    assert notifier.events == []


@pytest.mark.asyncio
async def test_malformed_reference_is_rejected(store, service):
    store.add_student("user_1")
    result = await service.reconcile(_event(reference="not-a-reference"))

    assert result.status_code == 400
    assert result.body == {"success": False, "error": "Invalid api_ref format"}
    assert store.enrollments == []


@pytest.mark.asyncio
async def test_missing_reference_without_metadata_is_rejected(store, service):
    result = await service.reconcile(_event(reference=None))
    assert result.status_code == 400


@pytest.mark.asyncio
async def test_unknown_student_is_rejected(store, service, notifier):
    result = await service.reconcile(_event())

    assert result.status_code == 400
    assert result.body["error"] == "Student not found"
    assert store.enrollments == []
    assert notifier.events == []


@pytest.mark.asyncio
async def test_store_failure_asks_for_redelivery(store, service, notifier):
    store.add_student("user_1")
    store.write_error = RuntimeError("database is locked")

    result = await service.reconcile(_event())

    assert result.status_code == 500
    assert result.body == {"success": False, "error": "Webhook processing failed"}
    assert store.rollbacks == 1
    assert notifier.events == []


@pytest.mark.asyncio
async def test_store_timeout_is_a_server_error(store, uow_factory, notifier, monkeypatch):
    store.add_student("user_1")
    service = ReconciliationService(uow_factory, notifier, store_timeout=0.01)

    from conftest import FakeEnrollmentRepository

    async def _slow(self, enrollment):
        await asyncio.sleep(1)

    monkeypatch.setattr(FakeEnrollmentRepository, "add_if_absent", _slow)
    result = await service.reconcile(_event())
    assert result.status_code == 500
    assert store.enrollments == []


@pytest.mark.asyncio
async def test_notifier_failure_does_not_change_outcome(store, uow_factory):
    store.add_student("user_1")
    failing = RecordingNotifier(error=RuntimeError("broker down"))
    service = ReconciliationService(uow_factory, failing)

    result = await service.reconcile(_event())

    assert result.status_code == 200
    assert result.created is True
    assert len(store.enrollments) == 1
    assert len(failing.events) == 1


@pytest.mark.asyncio
async def test_metadata_takes_precedence_over_reference(store, service):
    store.add_student("user_1")
    store.add_student("user_meta")
    extra = ProductMetadata(
        product_id="mc99",
        user_id="user_meta",
        product_type=ProductType.MASTERCLASS,
        product_title="Pricing Strategy",
    )

    result = await service.reconcile(_event(raw_extra=extra))

    assert result.created is True
    enrollment = store.enrollments[0]
    assert enrollment.product_id == "mc99"
    assert enrollment.student_id == store.students["user_meta"].id
    assert enrollment.product_title == "Pricing Strategy"


@pytest.mark.asyncio
async def test_partial_metadata_falls_back_to_reference(store, service):
    store.add_student("user_1")
    extra = ProductMetadata(product_id="mc99", product_title="Pricing Strategy")

    await service.reconcile(_event(raw_extra=extra))

    enrollment = store.enrollments[0]
    assert enrollment.product_id == "mc42"
    assert enrollment.product_title == "Pricing Strategy"


@pytest.mark.asyncio
async def test_metadata_without_type_borrows_it_from_reference(store, service):
    store.add_student("user_1")
    extra = ProductMetadata(product_id="mc77", user_id="user_1")

    await service.reconcile(_event(raw_extra=extra))

    assert store.enrollments[0].product_type == ProductType.MASTERCLASS
    assert store.enrollments[0].product_id == "mc77"


@pytest.mark.asyncio
async def test_metadata_without_type_and_bad_reference_is_rejected(store, service):
    store.add_student("user_1")
    extra = ProductMetadata(product_id="mc77", user_id="user_1")

    result = await service.reconcile(_event(raw_extra=extra, reference="junk"))
    assert result.status_code == 400


@pytest.mark.asyncio
async def test_title_comes_from_catalog(store, uow_factory, notifier):
    store.add_student("user_1")
    catalog = StaticCatalog(
        Product(product_type=ProductType.COURSE, id="c1", title="Python Basics", price=Decimal("50"), currency="USD")
    )
    service = ReconciliationService(uow_factory, notifier, catalog=catalog)

    await service.reconcile(_event(reference="course-c1-user_1-1700000000000"))

    assert store.enrollments[0].product_title == "Python Basics"
    assert store.enrollments[0].product_type == ProductType.COURSE


@pytest.mark.asyncio
async def test_catalog_failure_falls_back_to_default_title(store, uow_factory, notifier):
    store.add_student("user_1")

    class _BrokenCatalog:
        async def get_product(self, product_type, product_id):
            raise TimeoutError("calendar unavailable")

    service = ReconciliationService(uow_factory, notifier, catalog=_BrokenCatalog())
    result = await service.reconcile(_event())

    assert result.created is True
    assert store.enrollments[0].product_title == "MasterClass mc42"


class CountingCatalog(StaticCatalog):
    def __init__(self, *products) -> None:
        super().__init__(*products)
        self.calls = 0

    async def get_product(self, product_type, product_id):
        self.calls += 1
        return await super().get_product(product_type, product_id)


@pytest.mark.asyncio
async def test_catalog_is_not_consulted_for_unknown_student(store, uow_factory, notifier):
    catalog = CountingCatalog()
    service = ReconciliationService(uow_factory, notifier, catalog=catalog)

    result = await service.reconcile(_event())

    assert result.status_code == 400
    assert catalog.calls == 0


@pytest.mark.asyncio
async def test_catalog_is_not_consulted_on_redelivery(store, uow_factory, notifier):
    store.add_student("user_1")
    catalog = CountingCatalog()
    service = ReconciliationService(uow_factory, notifier, catalog=catalog)

    await service.reconcile(_event())
    second = await service.reconcile(_event())

    assert second.body == {"success": True, "duplicate": True}
    assert catalog.calls == 1


@pytest.mark.asyncio
async def test_concurrent_deliveries_against_database_create_one_row(database, notifier):
    from domain.enrollment.entity import Student
    from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

    async with SQLAlchemyUnitOfWork() as uow:
        await uow.student_repository.get_or_create(
            Student(id=None, external_id="user_1", email="ada@example.com", first_name="Ada")
        )
    service = ReconciliationService(SQLAlchemyUnitOfWork, notifier)

    results = await asyncio.gather(*(service.reconcile(_event()) for _ in range(5)))

    assert [r.status_code for r in results] == [200] * 5
    assert sum(1 for r in results if r.created) == 1
    assert sum(1 for r in results if r.body.get("duplicate")) == 4
    assert len({r.enrollment_id for r in results}) == 1
    assert len(notifier.events) == 1

    async with SQLAlchemyUnitOfWork(readonly=True) as uow:
        student = await uow.student_repository.get_by_external_id("user_1")
        rows = await uow.enrollment_repository.list_by_student(student.id)
    assert len(rows) == 1
