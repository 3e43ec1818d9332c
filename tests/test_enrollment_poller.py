import asyncio

import httpx
import pytest

from application.services.enrollment_poller import (
    EnrollmentStatusPoller,
    PollPolicy,
    PollState,
    PROCESSING_NOTICE,
    wait_for_enrollment,
)
from infrastructure.external.api_clients import HttpEnrollmentStatusSource


FAST = PollPolicy(initial_delay=0, interval=0, max_attempts=6)


class ScriptedSource:
    def __init__(self, *answers):
        self._answers = list(answers)
        self.calls = 0

    async def is_enrolled(self, product_id: str) -> bool:
        self.calls += 1
        answer = self._answers.pop(0) if self._answers else False
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.mark.asyncio
async def test_stops_at_first_granted_read():
    source = ScriptedSource(False, False, False, True)
    states = []
    poller = EnrollmentStatusPoller(source, "mc42", policy=FAST, on_state=states.append)

    result = await poller.run()

    assert result == PollState.ENROLLED
    assert source.calls == 4
    assert poller.attempts == 4
    assert states == [PollState.CHECKING, PollState.ENROLLED]
    assert poller.notice is None


@pytest.mark.asyncio
async def test_exhaustion_settles_in_still_processing():
    source = ScriptedSource()
    state = await wait_for_enrollment(source, "mc42", FAST)

    assert state == PollState.STILL_PROCESSING
    assert source.calls == 6


@pytest.mark.asyncio
async def test_notice_only_when_still_processing():
    poller = EnrollmentStatusPoller(ScriptedSource(), "mc42", policy=PollPolicy(0, 0, 1))
    await poller.run()
    assert poller.notice == PROCESSING_NOTICE


@pytest.mark.asyncio
async def test_schedule_uses_initial_delay_then_interval():
    delays = []

    async def _sleep(seconds):
        delays.append(seconds)

    poller = EnrollmentStatusPoller(ScriptedSource(), "mc42", policy=PollPolicy(3, 2, 3), sleep=_sleep)
    await poller.run()

    assert delays == [3, 2, 2]


@pytest.mark.asyncio
async def test_failed_reads_count_as_not_yet():
    source = ScriptedSource(RuntimeError("network"), True)
    poller = EnrollmentStatusPoller(source, "mc42", policy=FAST)

    assert await poller.run() == PollState.ENROLLED
    assert source.calls == 2


@pytest.mark.asyncio
async def test_start_only_after_success_redirect():
    source = ScriptedSource(True)
    async with EnrollmentStatusPoller(source, "mc42", policy=FAST) as poller:
        assert poller.start_if_redirected({"payment": "cancelled"}) is False
        assert poller.state == PollState.IDLE
        assert poller.start_if_redirected({"payment": "success"}) is True
        await poller.start()
        assert poller.state == PollState.ENROLLED


@pytest.mark.asyncio
async def test_cancel_stops_pending_reads():
    source = ScriptedSource()
    poller = EnrollmentStatusPoller(source, "mc42", policy=PollPolicy(initial_delay=10, interval=10))
    poller.start()
    await asyncio.sleep(0)

    await poller.aclose()

    assert poller.state == PollState.CANCELLED
    assert source.calls == 0
    assert not poller.is_running


@pytest.mark.asyncio
async def test_visibility_triggers_one_extra_read():
    source = ScriptedSource(False, True)
    poller = EnrollmentStatusPoller(source, "mc42", policy=PollPolicy(0, 0, 1))
    assert await poller.run() == PollState.STILL_PROCESSING

    task = poller.on_visible()
    assert task is not None
    assert await task == PollState.ENROLLED
    assert source.calls == 2

    # already enrolled: nothing more to check
    assert poller.on_visible() is None


def test_policy_validation():
    with pytest.raises(ValueError):
        PollPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        PollPolicy(interval=-1)


@pytest.mark.asyncio
async def test_http_source_reads_status_endpoint():
    seen = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"isEnrolled": True})

    client = httpx.AsyncClient(base_url="http://api.test", transport=httpx.MockTransport(_handler))
    async with HttpEnrollmentStatusSource(
        "http://api.test", access_token="tok", product_type="masterclass", client=client
    ) as source:
        assert await source.is_enrolled("mc42") is True

    assert seen["path"] == "/api/v1/enrollments/status"
    assert seen["params"] == {"productId": "mc42", "productType": "masterclass"}
    assert seen["auth"] == "Bearer tok"


@pytest.mark.asyncio
async def test_http_source_error_is_not_yet_for_poller():
    client = httpx.AsyncClient(
        base_url="http://api.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    source = HttpEnrollmentStatusSource("http://api.test", client=client)
    state = await wait_for_enrollment(source, "mc42", PollPolicy(0, 0, 2))
    assert state == PollState.STILL_PROCESSING
    await source.aclose()
