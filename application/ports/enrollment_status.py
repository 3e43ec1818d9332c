"""
Enrollment status source consumed by the client poller.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EnrollmentStatusSource(Protocol):
    """A single idempotent read: has the current user been granted ``product_id``?"""

    async def is_enrolled(self, product_id: str) -> bool: ...
