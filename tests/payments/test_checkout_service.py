from decimal import Decimal

import pytest

from application.dtos.enrollments import Principal
from application.dtos.payments import CheckoutRequest, CheckoutSession
from application.services.checkout_service import CheckoutService
from domain.catalog.entity import Product
from domain.common.exceptions import DomainValidationException, ProductNotFoundException
from domain.enrollment.entity import ProductType
from domain.enrollment.reference import decode_reference
from domain.payment.entity import PaymentProvider

from conftest import StaticCatalog


PRINCIPAL = Principal(external_id="user_1", email="ada@example.com", first_name="Ada", last_name="Lovelace")


class RecordingGateway:
    def __init__(self, provider: PaymentProvider) -> None:
        self.provider = provider
        self.requests = []

    async def create_checkout(self, req):
        self.requests.append(req)
        return CheckoutSession(url="https://pay.example/s/1", provider=self.provider, reference=req.reference)


def _service(uow_factory, catalog, gateways=None, notifier=None):
    return CheckoutService(
        uow_factory,
        catalog,
        gateways or {},
        base_url="https://learn.example/",
        notifier=notifier,
        clock=lambda: 1700000000001,
    )


@pytest.mark.asyncio
async def test_paid_masterclass_checkout_via_mobile_money(store, uow_factory):
    catalog = StaticCatalog(
        Product(ProductType.MASTERCLASS, "mc42", "Negotiation 101", Decimal("50"), currency="USD")
    )
    gateway = RecordingGateway(PaymentProvider.MOBILE_MONEY)
    service = _service(uow_factory, catalog, {PaymentProvider.MOBILE_MONEY: gateway})

    session = await service.create_checkout(
        PRINCIPAL, CheckoutRequest(productType="masterclass", productId="mc42", provider="intasend")
    )

    assert session.url == "https://pay.example/s/1"
    req = gateway.requests[0]
    assert req.reference == "masterclass-mc42-user_1-1700000000001"
    assert req.amount == Decimal("6500")
    assert req.currency == "KES"
    assert req.redirect_url == "https://learn.example/masterclasses/mc42?payment=success"
    assert req.metadata["masterclass_id"] == "mc42"
    assert req.metadata["user_id"] == "user_1"
    assert req.metadata["type"] == "masterclass"
    assert "user_1" in store.students
    assert store.enrollments == []


@pytest.mark.asyncio
async def test_course_checkout_via_card_charges_usd(uow_factory):
    catalog = StaticCatalog(
        Product(ProductType.COURSE, "c1", "Python Basics", Decimal("2000"), currency="KES", slug="python-basics")
    )
    gateway = RecordingGateway(PaymentProvider.CARD)
    service = _service(uow_factory, catalog, {PaymentProvider.CARD: gateway})

    await service.create_checkout(PRINCIPAL, CheckoutRequest(productType="course", productId="c1", provider="stripe"))

    req = gateway.requests[0]
    assert req.amount == Decimal("15.40")
    assert req.currency == "USD"
    assert req.metadata["courseId"] == "c1"
    assert req.cancel_url == "https://learn.example/courses/python-basics?payment=cancelled"
    decoded = decode_reference(req.reference)
    assert decoded.product_type == ProductType.COURSE
    assert decoded.user_id == "user_1"


@pytest.mark.asyncio
async def test_free_product_enrolls_immediately(store, uow_factory, notifier):
    catalog = StaticCatalog(Product(ProductType.MASTERCLASS, "mc1", "Open Q&A", Decimal("0")))
    service = _service(uow_factory, catalog, notifier=notifier)

    session = await service.create_checkout(PRINCIPAL, CheckoutRequest(productType="masterclass", productId="mc1"))

    assert session.enrolled is True
    assert session.url == "https://learn.example/masterclasses/mc1"
    assert len(store.enrollments) == 1
    assert store.enrollments[0].amount == Decimal("0")
    assert store.enrollments[0].external_payment_id is None
    assert len(notifier.events) == 1

    again = await service.create_checkout(PRINCIPAL, CheckoutRequest(productType="masterclass", productId="mc1"))
    assert again.enrolled is True
    assert len(store.enrollments) == 1
    assert len(notifier.events) == 1


@pytest.mark.asyncio
async def test_unknown_product_is_not_found(uow_factory):
    service = _service(uow_factory, StaticCatalog())
    with pytest.raises(ProductNotFoundException):
        await service.create_checkout(PRINCIPAL, CheckoutRequest(productType="course", productId="nope"))


@pytest.mark.asyncio
async def test_paid_product_without_price_is_rejected(uow_factory):
    catalog = StaticCatalog(Product(ProductType.MASTERCLASS, "mc7", "VIP Session", None))
    service = _service(uow_factory, catalog, {PaymentProvider.MOBILE_MONEY: RecordingGateway(PaymentProvider.MOBILE_MONEY)})
    with pytest.raises(DomainValidationException):
        await service.create_checkout(PRINCIPAL, CheckoutRequest(productType="masterclass", productId="mc7"))


@pytest.mark.asyncio
async def test_disabled_provider_is_rejected(uow_factory):
    catalog = StaticCatalog(Product(ProductType.COURSE, "c1", "Python Basics", Decimal("10"), currency="USD"))
    service = _service(uow_factory, catalog)
    with pytest.raises(DomainValidationException) as exc_info:
        await service.create_checkout(PRINCIPAL, CheckoutRequest(productType="course", productId="c1", provider="stripe"))
    assert exc_info.value.field == "provider"
