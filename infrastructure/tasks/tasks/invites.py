"""Masterclass invite Celery tasks"""
from __future__ import annotations

from celery import shared_task

from ..utils.base_task import BaseTask
from core.config import settings
from core.logging_config import get_logger
from infrastructure.external.catalog.google_calendar import GoogleCalendarClient

logger = get_logger(__name__)

SEND_MASTERCLASS_INVITE = "infrastructure.tasks.tasks.invites.send_masterclass_invite"


def build_calendar_client() -> GoogleCalendarClient | None:
    if not settings.calendar.enabled:
        return None
    return GoogleCalendarClient(settings.calendar.calendar_id, settings.calendar.credentials_file)


@shared_task(
    bind=True,
    base=BaseTask,
    name=SEND_MASTERCLASS_INVITE,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    retry_kwargs={"max_retries": 5},
)
def send_masterclass_invite(
    self,
    masterclass_id: str,
    email: str,
    first_name: str = "",
    last_name: str = "",
) -> bool:
    """Add the student to the masterclass calendar event.

    Google sends the invitation email itself (``sendUpdates="all"``).
    Returns False when the calendar is not configured or the student was
    already on the guest list.
    """
    client = build_calendar_client()
    if client is None:
        logger.warning("masterclass_invite_skipped", masterclass_id=masterclass_id, reason="calendar_not_configured")
        return False
    if not email:
        logger.warning("masterclass_invite_skipped", masterclass_id=masterclass_id, reason="missing_email")
        return False
    display_name = f"{first_name} {last_name}".strip()
    added = client.add_attendee(masterclass_id, email=email, display_name=display_name)
    logger.info("masterclass_invite_sent", masterclass_id=masterclass_id, email=email, added=added)
    return added
