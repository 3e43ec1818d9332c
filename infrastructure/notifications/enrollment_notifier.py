"""
Enrollment notifier adapters.

Masterclass grants are handed to a Celery task that adds the student to the
calendar event; course grants need no follow-up.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from core.logging_config import get_logger
from domain.enrollment.entity import ProductType
from domain.enrollment.events import EnrollmentGranted
from infrastructure.tasks.utils.dispatcher import TaskDispatcher


logger = get_logger(__name__)


class CeleryEnrollmentNotifier:
    def __init__(self, dispatcher: Optional[TaskDispatcher] = None) -> None:
        self._dispatcher = dispatcher or TaskDispatcher()

    async def enrollment_granted(self, event: EnrollmentGranted) -> None:
        if event.product_type != ProductType.MASTERCLASS.value:
            return
        if not event.student_email:
            logger.warning("masterclass_invite_skipped", enrollment_id=event.enrollment_id, reason="missing_email")
            return
        # broker publish is blocking I/O
        await asyncio.to_thread(
            self._dispatcher.send_masterclass_invite,
            event.product_id,
            event.student_email,
            event.student_first_name or "",
            event.student_last_name or "",
        )
        logger.info(
            "masterclass_invite_enqueued",
            enrollment_id=event.enrollment_id,
            masterclass_id=event.product_id,
        )


class LoggingEnrollmentNotifier:
    """Used when no broker is configured."""

    async def enrollment_granted(self, event: EnrollmentGranted) -> None:
        logger.info(
            "enrollment_granted",
            enrollment_id=event.enrollment_id,
            product_type=event.product_type,
            product_id=event.product_id,
            student_external_id=event.student_external_id,
        )
