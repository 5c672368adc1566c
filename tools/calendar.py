"""Calendar tools backed by Google Calendar."""

import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from agent.tools import Tool
from services.calendar import (
    CalendarService,
    CalendarAuthError,
    CalendarNotFoundError,
    CalendarError,
    EventInput,
    ListEventsParams,
)

logger = logging.getLogger(__name__)


NOT_CONNECTED = (
    "You haven't connected your Google Calendar yet. "
    "Please connect it first, then try again."
)


def _format_time(value: str) -> str:
    """Render an ISO 8601 timestamp for display, passing through anything unparseable."""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


class CreateEventArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, description="Event title/summary")
    description: Optional[str] = Field(None, description="Event description or notes")
    start_time: str = Field(
        ..., alias="startTime",
        description="Start date and time in ISO 8601 format (e.g., 2024-01-15T14:00:00Z)"
    )
    end_time: str = Field(
        ..., alias="endTime",
        description="End date and time in ISO 8601 format (e.g., 2024-01-15T15:00:00Z)"
    )
    reminder_minutes: Optional[int] = Field(
        None, alias="reminderMinutes", ge=0,
        description="Minutes before event to send reminder (e.g., 30 for 30 minutes before)"
    )


class ListEventsArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time_min: Optional[str] = Field(
        None, alias="timeMin",
        description="Start time for listing events in ISO 8601 format (defaults to now)"
    )
    time_max: Optional[str] = Field(
        None, alias="timeMax",
        description="End time for listing events in ISO 8601 format"
    )
    max_results: int = Field(
        10, alias="maxResults", ge=1, le=50,
        description="Maximum number of events to return (default: 10)"
    )


class DeleteEventArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: Optional[str] = Field(None, alias="eventId", description="The Google Calendar event ID to delete")
    event_title: Optional[str] = Field(
        None, alias="eventTitle",
        description="Search for event by title and delete it (if eventId not provided)"
    )

    @model_validator(mode="after")
    def _require_target(self):
        if not self.event_id and not self.event_title:
            raise ValueError("Either eventId or eventTitle must be provided")
        return self


class CreateEventTool(Tool):
    name = "create_calendar_event"
    description = """Create a new event in the user's Google Calendar.
Use this when the user wants to schedule something, set up a meeting, or add an appointment.
Convert natural language dates/times to ISO 8601 format."""
    args_model = CreateEventArgs

    def __init__(self, service: CalendarService):
        self.service = service

    def execute(self, args: CreateEventArgs, owner_id: Optional[int]) -> str:
        try:
            event = self.service.create_event(owner_id, EventInput(
                title=args.title,
                description=args.description,
                start_time=args.start_time,
                end_time=args.end_time,
                reminder_minutes=args.reminder_minutes,
            ))
        except CalendarAuthError:
            return NOT_CONNECTED
        except CalendarError as e:
            logger.error(f"Calendar create error: {e}")
            return f"Error creating calendar event: {e}"

        return (
            f'Event created successfully: "{event.title}" on {_format_time(event.start_time)}. '
            f"Event ID: {event.id}"
        )


class ListEventsTool(Tool):
    name = "list_calendar_events"
    description = """List upcoming events from the user's Google Calendar.
Use this when the user asks about their schedule, what events they have, or what's coming up."""
    args_model = ListEventsArgs

    def __init__(self, service: CalendarService):
        self.service = service

    def execute(self, args: ListEventsArgs, owner_id: Optional[int]) -> str:
        try:
            events = self.service.list_events(owner_id, ListEventsParams(
                time_min=args.time_min,
                time_max=args.time_max,
                max_results=args.max_results,
            ))
        except CalendarAuthError:
            return NOT_CONNECTED
        except CalendarError as e:
            logger.error(f"Calendar list error: {e}")
            return f"Error listing calendar events: {e}"

        if not events:
            return "No upcoming events found in your calendar."

        lines = []
        for i, event in enumerate(events, 1):
            line = f'{i}. "{event.title}" - {_format_time(event.start_time)} to {_format_time(event.end_time)}'
            if event.description:
                line += f"\n   Description: {event.description}"
            lines.append(line)

        return f"You have {len(events)} upcoming event(s):\n\n" + "\n\n".join(lines)


class DeleteEventTool(Tool):
    name = "delete_calendar_event"
    description = """Delete an event from the user's Google Calendar, by event ID or by title.
Use this when the user wants to cancel or remove an event."""
    args_model = DeleteEventArgs

    def __init__(self, service: CalendarService):
        self.service = service

    def execute(self, args: DeleteEventArgs, owner_id: Optional[int]) -> str:
        try:
            event_id = args.event_id
            if not event_id:
                event = self.service.find_event_by_title(owner_id, args.event_title)
                if not event:
                    return f'No event found with title "{args.event_title}". Please check the title and try again.'
                event_id = event.id
                logger.info(f"Found event {event_id} by title")

            self.service.delete_event(owner_id, event_id)
        except CalendarAuthError:
            return NOT_CONNECTED
        except CalendarNotFoundError:
            return "Event not found. It may have already been deleted."
        except CalendarError as e:
            logger.error(f"Calendar delete error: {e}")
            return f"Error deleting calendar event: {e}"

        return "Event deleted successfully."
