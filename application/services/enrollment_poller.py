"""
Client-side enrollment poller.

After a provider redirects the browser back with ``payment=success`` the
webhook may not have been processed yet. The poller bridges that gap by
reading the enrollment status a bounded number of times:

- first read after ``initial_delay`` (gives the webhook a head start),
- then every ``interval`` seconds, up to ``max_attempts`` reads in total,
- stops at the first granted read (ENROLLED),
- on exhaustion settles in STILL_PROCESSING, which is a notice, not an error.

Regaining foreground visibility triggers one extra read. All timers belong to
the poller instance and are cancelled by ``cancel()``/``aclose()``.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional

from application.ports.enrollment_status import EnrollmentStatusSource
from core.logging_config import get_logger


logger = get_logger(__name__)

PAYMENT_MARKER = "payment"
PAYMENT_SUCCESS = "success"
PROCESSING_NOTICE = (
    "Your payment was received and your enrollment is being processed. "
    "Refresh this page in a moment if access does not appear."
)


class PollState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    ENROLLED = "enrolled"
    STILL_PROCESSING = "still_processing"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollPolicy:
    initial_delay: float = 3.0
    interval: float = 2.0
    max_attempts: int = 6

    def __post_init__(self):
        if self.initial_delay < 0 or self.interval < 0:
            raise ValueError("poll delays must be non-negative")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class EnrollmentStatusPoller:
    def __init__(
        self,
        source: EnrollmentStatusSource,
        product_id: str,
        *,
        policy: Optional[PollPolicy] = None,
        on_state: Optional[Callable[[PollState], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self.product_id = product_id
        self.policy = policy or PollPolicy()
        self._on_state = on_state
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._visibility_task: Optional[asyncio.Task] = None
        self.state = PollState.IDLE
        self.attempts = 0

    @property
    def notice(self) -> Optional[str]:
        return PROCESSING_NOTICE if self.state == PollState.STILL_PROCESSING else None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @staticmethod
    def should_start(query_params: Mapping[str, str]) -> bool:
        return query_params.get(PAYMENT_MARKER) == PAYMENT_SUCCESS

    def start_if_redirected(self, query_params: Mapping[str, str]) -> bool:
        if not self.should_start(query_params):
            return False
        self.start()
        return True

    def start(self) -> asyncio.Task:
        """Schedule a polling run; returns the running task if one exists."""
        if not self.is_running:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> PollState:
        self.attempts = 0
        self._set_state(PollState.CHECKING)
        try:
            await self._sleep(self.policy.initial_delay)
            while True:
                self.attempts += 1
                if await self._check():
                    self._set_state(PollState.ENROLLED)
                    return self.state
                if self.attempts >= self.policy.max_attempts:
                    break
                await self._sleep(self.policy.interval)
        except asyncio.CancelledError:
            self._set_state(PollState.CANCELLED)
            raise

        logger.info("enrollment_still_processing", product_id=self.product_id, attempts=self.attempts)
        self._set_state(PollState.STILL_PROCESSING)
        return self.state

    def on_visible(self) -> Optional[asyncio.Task]:
        """Page regained focus: do one read unless already enrolled or polling."""
        if self.state == PollState.ENROLLED or self.is_running:
            return None
        if self._visibility_task is not None and not self._visibility_task.done():
            return self._visibility_task
        self._visibility_task = asyncio.create_task(self._visible_check())
        return self._visibility_task

    async def _visible_check(self) -> PollState:
        if await self._check():
            self._set_state(PollState.ENROLLED)
        return self.state

    async def _check(self) -> bool:
        try:
            return bool(await self._source.is_enrolled(self.product_id))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # A failed read is "not yet", never an error state
            logger.warning("enrollment_status_poll_failed", product_id=self.product_id, error=str(exc))
            return False

    def cancel(self) -> None:
        for task in (self._task, self._visibility_task):
            if task is not None and not task.done():
                task.cancel()

    async def aclose(self) -> None:
        self.cancel()
        pending = [t for t in (self._task, self._visibility_task) if t is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._task = None
        self._visibility_task = None

    async def __aenter__(self) -> "EnrollmentStatusPoller":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _set_state(self, state: PollState) -> None:
        if state == self.state:
            return
        self.state = state
        if self._on_state is not None:
            self._on_state(state)


async def wait_for_enrollment(
    source: EnrollmentStatusSource,
    product_id: str,
    policy: Optional[PollPolicy] = None,
) -> PollState:
    """Run one polling sequence to completion."""
    async with EnrollmentStatusPoller(source, product_id, policy=policy) as poller:
        return await poller.run()
