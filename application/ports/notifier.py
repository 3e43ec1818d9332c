"""
Enrollment notification port (best-effort side channel).
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from domain.enrollment.events import EnrollmentGranted


@runtime_checkable
class EnrollmentNotifier(Protocol):
    """Receives committed grants. Implementations hand work off and return quickly."""

    async def enrollment_granted(self, event: EnrollmentGranted) -> None: ...


@runtime_checkable
class InviteDispatcher(Protocol):
    """Schedules the calendar invite for one masterclass student."""

    def send_masterclass_invite(self, masterclass_id: str, email: str, first_name: str = "", last_name: str = "") -> None: ...
