"""Google Calendar integration."""

from .models import UserTokens, EventInput, EventOutput, ListEventsParams
from .token_store import CalendarTokenStore
from .client import (
    CalendarService,
    CalendarError,
    CalendarAuthError,
    CalendarNotFoundError,
    CalendarAPIError,
)
from .reminders import ReminderService, format_reminder

__all__ = [
    "UserTokens",
    "EventInput",
    "EventOutput",
    "ListEventsParams",
    "CalendarTokenStore",
    "CalendarService",
    "CalendarError",
    "CalendarAuthError",
    "CalendarNotFoundError",
    "CalendarAPIError",
    "ReminderService",
    "format_reminder",
]
