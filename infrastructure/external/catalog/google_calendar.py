"""
Google Calendar adapter.

Masterclasses are calendar events: the event id is the product id, the
summary is the title and the description carries free-text pricing. The
googleapiclient service is synchronous, so calls from async code go through
the default executor.
"""
from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from functools import partial
from typing import Any, Dict, List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from core.logging_config import get_logger
from domain.catalog.entity import Product, ScheduleStatus
from domain.catalog.pricing import parse_listing_price, rewrite_listing_price
from domain.enrollment.entity import ProductType


logger = get_logger(__name__)

CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


class GoogleCalendarClient:
    """Thin synchronous wrapper over the Calendar v3 events API."""

    def __init__(self, calendar_id: str, credentials_file: Optional[str] = None, *, service: Any = None):
        self.calendar_id = calendar_id
        self._credentials_file = credentials_file
        self._service = service

    @property
    def service(self):
        if self._service is None:
            credentials = service_account.Credentials.from_service_account_file(
                self._credentials_file,
                scopes=CALENDAR_SCOPES,
            )
            self._service = build("calendar", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.service.events().get(calendarId=self.calendar_id, eventId=event_id).execute()
        except HttpError as exc:
            if exc.resp.status in (404, 410):
                return None
            raise

    def add_attendee(self, event_id: str, *, email: str, display_name: str = "") -> bool:
        """Add an attendee and notify everyone; returns False when already invited."""
        event = self.get_event(event_id)
        if event is None:
            raise LookupError(f"calendar event {event_id} not found")

        attendees = list(event.get("attendees") or [])
        if any((a.get("email") or "").lower() == email.lower() for a in attendees):
            logger.info("calendar_attendee_exists", event_id=event_id, email=email)
            return False

        attendees.append({
            "email": email,
            "displayName": display_name.strip() or email,
            "responseStatus": "accepted",
            "comment": "Enrolled via payment",
        })
        event["attendees"] = attendees
        self.update_event(event_id, event, send_updates="all")
        logger.info("calendar_attendee_added", event_id=event_id, email=email, total_attendees=len(attendees))
        return True

    def list_events(
        self,
        time_min: datetime,
        time_max: datetime,
        *,
        query: Optional[str] = None,
        max_results: int = 50,
    ) -> List[Dict[str, Any]]:
        """Single (expanded) events in the window, ordered by start time."""
        params: Dict[str, Any] = {
            "calendarId": self.calendar_id,
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "maxResults": max_results,
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if query:
            params["q"] = query
        response = self.service.events().list(**params).execute()
        return list(response.get("items") or [])

    def update_event(self, event_id: str, body: Dict[str, Any], *, send_updates: str = "none") -> Dict[str, Any]:
        return self.service.events().update(
            calendarId=self.calendar_id,
            eventId=event_id,
            sendUpdates=send_updates,
            body=body,
        ).execute()


_INSTRUCTOR = re.compile(r"instructor[:\s]+([^\n\r]+)", re.I)
_MAX_ATTENDEES = re.compile(r"max[:\s]*(\d+)|limit[:\s]*(\d+)|capacity[:\s]*(\d+)", re.I)


def _parse_time(event: Dict[str, Any], key: str) -> Optional[datetime]:
    value = event.get(key) or {}
    raw = value.get("dateTime") or value.get("date")
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    # all-day events carry a bare date
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def event_to_product(event: Dict[str, Any], *, default_currency: str = "KES") -> Product:
    description = event.get("description") or ""
    listing = parse_listing_price(description)
    if listing.is_free:
        price: Optional[Decimal] = Decimal("0")
    else:
        price = listing.price

    instructor_match = _INSTRUCTOR.search(description)
    instructor = instructor_match.group(1).strip() if instructor_match else None
    max_match = _MAX_ATTENDEES.search(description)
    max_attendees = int(next(g for g in max_match.groups() if g)) if max_match else None

    return Product(
        product_type=ProductType.MASTERCLASS,
        id=event["id"],
        title=event.get("summary") or "Untitled MasterClass",
        price=price,
        currency=listing.currency or default_currency,
        description=event.get("description"),
        starts_at=_parse_time(event, "start"),
        ends_at=_parse_time(event, "end"),
        instructor=instructor or (event.get("organizer") or {}).get("displayName"),
        attendee_count=len(event.get("attendees") or []),
        max_attendees=max_attendees,
    )


class CalendarMasterclassCatalog:
    """Masterclass lookups against a calendar, bounded by a timeout."""

    def __init__(
        self,
        client: GoogleCalendarClient,
        *,
        timeout: float = 5.0,
        default_currency: str = "KES",
        listing_query: Optional[str] = "masterclass",
        horizon_days: int = 90,
        max_results: int = 50,
    ):
        self._client = client
        self._timeout = timeout
        self._default_currency = default_currency
        self._listing_query = listing_query
        self._horizon = timedelta(days=horizon_days)
        self._max_results = max_results

    async def _call(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, partial(fn, *args, **kwargs)),
            timeout=self._timeout,
        )

    async def get_masterclass(self, masterclass_id: str) -> Optional[Product]:
        event = await self._call(self._client.get_event, masterclass_id)
        if event is None:
            return None
        return event_to_product(event, default_currency=self._default_currency)

    async def get_product(self, product_type: ProductType, product_id: str) -> Optional[Product]:
        if ProductType(product_type) != ProductType.MASTERCLASS:
            return None
        return await self.get_masterclass(product_id)

    async def list_masterclasses(self, now: Optional[datetime] = None) -> List[Product]:
        """Masterclass events from now until the listing horizon, earliest first."""
        now = now or datetime.now(timezone.utc)
        events = await self._call(
            self._client.list_events,
            now,
            now + self._horizon,
            query=self._listing_query,
            max_results=self._max_results,
        )
        return [event_to_product(e, default_currency=self._default_currency) for e in events if e.get("id")]

    async def list_upcoming(self, now: Optional[datetime] = None) -> List[Product]:
        now = now or datetime.now(timezone.utc)
        products = await self.list_masterclasses(now)
        return [
            p for p in products
            if p.schedule_status(now) in (ScheduleStatus.UPCOMING, ScheduleStatus.LIVE)
        ]

    async def update_pricing(
        self,
        masterclass_id: str,
        *,
        price: Optional[Decimal],
        currency: Optional[str],
        is_premium: bool,
        is_free: bool,
    ) -> Optional[Product]:
        """Rewrite the pricing lines of the event description; None when the event is gone."""
        event = await self._call(self._client.get_event, masterclass_id)
        if event is None:
            return None
        event["description"] = rewrite_listing_price(
            event.get("description"),
            price=price,
            currency=currency,
            is_premium=is_premium,
            is_free=is_free,
        )
        updated = await self._call(self._client.update_event, masterclass_id, event)
        logger.info(
            "masterclass_pricing_updated",
            masterclass_id=masterclass_id,
            price=str(price) if price is not None else None,
            currency=currency,
            is_premium=is_premium,
            is_free=is_free,
        )
        return event_to_product(updated or event, default_currency=self._default_currency)
