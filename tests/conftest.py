"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import asyncio
import os
import tempfile
from decimal import Decimal
from typing import List, Optional

import pytest
import pytest_asyncio


_TMP_DIR = tempfile.mkdtemp(prefix="enrollment-tests-")

# Mandatory secret key for settings validation
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE__URL", f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'enrollments.db')}")
os.environ.setdefault("PAYMENT__INTASEND__PUBLISHABLE_KEY", "ISPubKey_test_123")
os.environ.setdefault("PAYMENT__INTASEND__WEBHOOK_CHALLENGE", "challenge-secret")
os.environ.setdefault("PAYMENT__STRIPE__SECRET_KEY", "sk_test_123")
os.environ.setdefault("PAYMENT__STRIPE__WEBHOOK_SECRET", "whsec_test")


from domain.common.unit_of_work import AbstractUnitOfWork  # noqa: E402
from domain.enrollment.entity import Enrollment, EnrollmentStatus, ProductType, Student  # noqa: E402
from domain.enrollment.repository import EnrollmentRepository, StudentRepository  # noqa: E402


CHALLENGE = "challenge-secret"


class InMemoryStore:
    """Shared state behind every FakeUnitOfWork built from the same store."""

    def __init__(self) -> None:
        self.students: dict[str, Student] = {}
        self.enrollments: List[Enrollment] = []
        self.commits = 0
        self.rollbacks = 0
        self.write_error: Optional[Exception] = None

    def add_student(self, external_id: str, email: str = "ada@example.com", **kwargs) -> Student:
        student = Student(id=len(self.students) + 1, external_id=external_id, email=email, **kwargs)
        self.students[external_id] = student
        return student


class FakeStudentRepository(StudentRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_by_external_id(self, external_id: str) -> Optional[Student]:
        return self._store.students.get(external_id)

    async def get_or_create(self, student: Student) -> Student:
        existing = self._store.students.get(student.external_id)
        if existing is not None:
            return existing
        student.id = len(self._store.students) + 1
        self._store.students[student.external_id] = student
        return student


class FakeEnrollmentRepository(EnrollmentRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def find_active(self, student_id, product_id, product_type=None):
        for e in self._store.enrollments:
            if (
                e.student_id == student_id
                and e.product_id == product_id
                and e.is_active
                and (product_type is None or e.product_type == product_type)
            ):
                return e
        return None

    async def get_by_payment(self, provider, external_payment_id):
        for e in self._store.enrollments:
            if e.provider == provider and e.external_payment_id == external_payment_id:
                return e
        return None

    async def add_if_absent(self, enrollment: Enrollment):
        if self._store.write_error is not None:
            raise self._store.write_error
        # let concurrent deliveries interleave before the atomic check-and-insert
        await asyncio.sleep(0)
        existing = await self.find_active(enrollment.student_id, enrollment.product_id)
        if existing is None and enrollment.external_payment_id:
            existing = await self.get_by_payment(enrollment.provider, enrollment.external_payment_id)
        if existing is not None:
            return existing, False
        enrollment.id = len(self._store.enrollments) + 1
        self._store.enrollments.append(enrollment)
        return enrollment, True

    async def list_by_student(self, student_id, status: Optional[EnrollmentStatus] = None):
        items = [e for e in self._store.enrollments if e.student_id == student_id]
        if status is not None:
            items = [e for e in items if e.status == status]
        return list(reversed(items))


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store: InMemoryStore, *, readonly: bool = False) -> None:
        super().__init__(readonly=readonly)
        self._store = store
        self.student_repository = FakeStudentRepository(store)
        self.enrollment_repository = FakeEnrollmentRepository(store)

    async def commit(self) -> None:
        self._store.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        self._store.rollbacks += 1


class RecordingNotifier:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.events = []
        self._error = error

    async def enrollment_granted(self, event) -> None:
        self.events.append(event)
        if self._error is not None:
            raise self._error


class StaticCatalog:
    def __init__(self, *products) -> None:
        self._products = {(p.product_type, p.id): p for p in products}

    async def get_product(self, product_type, product_id):
        return self._products.get((ProductType(product_type), product_id))


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow_factory(store):
    def _factory(*, readonly: bool = False) -> FakeUnitOfWork:
        return FakeUnitOfWork(store, readonly=readonly)
    return _factory


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def payment_settings():
    from core.settings import PaymentSettings

    return PaymentSettings(
        intasend={"publishable_key": "ISPubKey_test_123", "webhook_challenge": CHALLENGE},
        stripe={"secret_key": "sk_test_123", "webhook_secret": "whsec_test"},
    )


@pytest_asyncio.fixture
async def database():
    """Fresh tables in the temporary sqlite file for each test."""
    from infrastructure.database import create_tables, dispose_engine, drop_tables

    await create_tables()
    try:
        yield
    finally:
        await drop_tables()
        await dispose_engine()


def make_enrollment(student_id: int, product_id: str = "mc42", **kwargs) -> Enrollment:
    defaults = dict(
        id=None,
        student_id=student_id,
        product_type=ProductType.MASTERCLASS,
        product_id=product_id,
        amount=Decimal("1000"),
        currency="KES",
    )
    defaults.update(kwargs)
    return Enrollment(**defaults)


class _CalendarRequest:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeCalendarEvents:
    """Mimics ``service.events()`` of the googleapiclient Calendar resource."""

    def __init__(self, events):
        self.events = events
        self.updates = []
        self.list_calls = []

    def get(self, calendarId, eventId):
        def _run():
            if eventId not in self.events:
                from googleapiclient.errors import HttpError

                class _Resp(dict):
                    status = 404
                    reason = "Not Found"

                raise HttpError(_Resp(), b'{"error": {"code": 404, "message": "Not Found"}}')
            return dict(self.events[eventId])
        return _CalendarRequest(_run)

    def update(self, calendarId, eventId, sendUpdates, body):
        def _run():
            self.updates.append({"eventId": eventId, "sendUpdates": sendUpdates, "body": body})
            self.events[eventId] = body
            return body
        return _CalendarRequest(_run)

    def list(self, **params):
        def _run():
            self.list_calls.append(params)
            return {"items": [dict(e) for e in self.events.values()]}
        return _CalendarRequest(_run)


class FakeCalendarService:
    def __init__(self, events):
        self._events = FakeCalendarEvents(events)

    def events(self):
        return self._events
