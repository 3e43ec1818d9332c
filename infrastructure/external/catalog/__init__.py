"""
Product catalog adapters (SQL courses + Google Calendar masterclasses).
"""
from .composite import CompositeProductCatalog
from .google_calendar import CalendarMasterclassCatalog, GoogleCalendarClient

__all__ = ["CompositeProductCatalog", "CalendarMasterclassCatalog", "GoogleCalendarClient"]
