"""Google Calendar v3 REST client."""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

import requests

from .models import EventInput, EventOutput, ListEventsParams, UserTokens
from .token_store import CalendarTokenStore

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Base class for calendar failures."""


class CalendarAuthError(CalendarError):
    """The user has not connected a calendar or the tokens were rejected."""


class CalendarNotFoundError(CalendarError):
    """The requested event does not exist."""


class CalendarAPIError(CalendarError):
    """Transport failure or unexpected API response."""


class CalendarService:
    """Calendar operations on a user's primary Google Calendar."""

    EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REFRESH_MARGIN_MS = 60 * 1000

    def __init__(
        self,
        token_store: CalendarTokenStore,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: int = 10
    ):
        """
        Initialize calendar service.

        Args:
            token_store: Per-user token storage
            client_id: OAuth client id used to refresh access tokens
            client_secret: OAuth client secret used to refresh access tokens
            timeout: Request timeout in seconds
        """
        self.token_store = token_store
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout

    def _refresh(self, user_id: int, tokens: UserTokens) -> UserTokens:
        if not (tokens.refresh_token and self.client_id and self.client_secret):
            return tokens

        logger.info(f"Refreshing calendar access token for user {user_id}")
        try:
            response = requests.post(
                self.TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": tokens.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Token refresh failed: {e}") from e

        if response.status_code in (400, 401):
            raise CalendarAuthError("User not authenticated: refresh token was rejected")
        if response.status_code != 200:
            raise CalendarAPIError(f"Token refresh returned status {response.status_code}")

        data = response.json()
        refreshed = tokens.model_copy(update={
            "access_token": data["access_token"],
            "expiry_date": int(time.time() * 1000) + int(data.get("expires_in", 3600)) * 1000,
        })
        self.token_store.save(user_id, refreshed)
        return refreshed

    def _access_token(self, user_id: int) -> str:
        tokens = self.token_store.get(user_id)
        if not tokens:
            raise CalendarAuthError("User not authenticated. Connect a calendar first.")

        if tokens.expiry_date and tokens.expiry_date - self.REFRESH_MARGIN_MS < time.time() * 1000:
            tokens = self._refresh(user_id, tokens)
        return tokens.access_token

    def _headers(self, user_id: int) -> dict:
        return {
            "Authorization": f"Bearer {self._access_token(user_id)}",
            "Accept": "application/json",
        }

    @staticmethod
    def _check(response, context: str) -> None:
        if response.status_code in (401, 403):
            raise CalendarAuthError(f"User not authenticated ({context}: {response.status_code})")
        if response.status_code in (404, 410):
            raise CalendarNotFoundError(f"Event not found ({context})")
        if response.status_code >= 400:
            raise CalendarAPIError(f"Calendar API returned status {response.status_code} during {context}")

    @staticmethod
    def _to_output(item: dict) -> EventOutput:
        start = item.get("start") or {}
        end = item.get("end") or {}
        return EventOutput(
            id=item["id"],
            title=item.get("summary") or "(No title)",
            description=item.get("description"),
            start_time=start.get("dateTime") or start.get("date") or "",
            end_time=end.get("dateTime") or end.get("date") or "",
            html_link=item.get("htmlLink"),
        )

    def create_event(self, user_id: int, event: EventInput) -> EventOutput:
        """Create an event on the user's primary calendar."""
        logger.info(f"Creating event for user {user_id}: {event.title}")

        body = {
            "summary": event.title,
            "description": event.description,
            "start": {"dateTime": event.start_time, "timeZone": event.time_zone},
            "end": {"dateTime": event.end_time, "timeZone": event.time_zone},
        }
        if event.reminder_minutes is not None:
            body["reminders"] = {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": event.reminder_minutes}],
            }

        try:
            response = requests.post(
                self.EVENTS_URL, json=body, headers=self._headers(user_id), timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Calendar API unreachable: {e}") from e

        self._check(response, "create")
        created = self._to_output(response.json())
        logger.info(f"Event created: {created.id}")
        return created

    def list_events(self, user_id: int, params: Optional[ListEventsParams] = None) -> List[EventOutput]:
        """List upcoming events ordered by start time."""
        params = params or ListEventsParams()
        logger.info(f"Listing events for user {user_id}")

        query = {
            "timeMin": params.time_min or datetime.now(timezone.utc).isoformat(),
            "maxResults": params.max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if params.time_max:
            query["timeMax"] = params.time_max
        if params.query:
            query["q"] = params.query

        try:
            response = requests.get(
                self.EVENTS_URL, params=query, headers=self._headers(user_id), timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Calendar API unreachable: {e}") from e

        self._check(response, "list")
        items = response.json().get("items", [])
        logger.info(f"Found {len(items)} events")
        return [self._to_output(item) for item in items]

    def delete_event(self, user_id: int, event_id: str) -> None:
        """Delete an event by id."""
        logger.info(f"Deleting event {event_id} for user {user_id}")
        try:
            response = requests.delete(
                f"{self.EVENTS_URL}/{event_id}", headers=self._headers(user_id), timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise CalendarAPIError(f"Calendar API unreachable: {e}") from e

        self._check(response, "delete")

    def find_event_by_title(self, user_id: int, title: str) -> Optional[EventOutput]:
        """First upcoming event matching a title search."""
        events = self.list_events(user_id, ListEventsParams(query=title, max_results=1))
        return events[0] if events else None
