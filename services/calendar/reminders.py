"""Upcoming-event reminders pushed to connected calendar users."""

import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from .client import CalendarService, CalendarError
from .models import EventOutput, ListEventsParams

logger = logging.getLogger(__name__)


SendReminder = Callable[[int, str], None]


def _to_ms(value: str) -> Optional[int]:
    """Epoch milliseconds for an ISO 8601 date or date-time (naive values are UTC)."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def format_reminder(event: EventOutput, minutes_until: int) -> str:
    """Reminder text for one event."""
    start_ms = _to_ms(event.start_time)
    when = (
        datetime.fromtimestamp(start_ms / 1000, tz=timezone.utc).strftime("%d %b %Y, %H:%M UTC")
        if start_ms is not None else event.start_time
    )

    lines = ["Reminder", "", f'"{event.title}"']
    if minutes_until <= 5:
        lines.append(f"Starting in {minutes_until} minute(s)!")
    else:
        lines.append(f"Starting in {minutes_until} minutes")
    lines.append(when)
    if event.description:
        lines.extend(["", event.description])
    return "\n".join(lines)


class ReminderService:
    """
    Polls every connected user's calendar and sends one reminder per
    upcoming event.

    Delivery is delegated to ``send(user_id, text)`` so the messaging
    front-end stays outside this module. An event is keyed by user, event
    id and start time; moving an event re-arms its reminder.
    """

    LOOKAHEAD_MINUTES = 30
    POLL_INTERVAL_SECONDS = 15 * 60
    MAX_EVENTS_PER_USER = 20
    FORGET_AFTER_MS = 60 * 60 * 1000

    def __init__(
        self,
        calendar: CalendarService,
        send: SendReminder,
        lookahead_minutes: int = LOOKAHEAD_MINUTES,
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize reminder service.

        Args:
            calendar: Calendar client; its token store lists the users to poll
            send: Callback delivering a reminder text to a user
            lookahead_minutes: How far ahead events are reminded
            poll_interval_seconds: Delay between checks when running in the background
            clock: Source of the current time in seconds
        """
        self.calendar = calendar
        self.send = send
        self.lookahead_minutes = lookahead_minutes
        self.poll_interval_seconds = poll_interval_seconds
        self.clock = clock

        self._sent: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def _reminder_key(user_id: int, event: EventOutput) -> str:
        return f"{user_id}_{event.id}_{event.start_time}"

    def check(self) -> int:
        """
        Run one polling pass over every connected user.

        Returns:
            Number of reminders sent
        """
        now_ms = int(self.clock() * 1000)
        window_end_ms = now_ms + self.lookahead_minutes * 60 * 1000
        user_ids = self.calendar.token_store.user_ids()
        logger.info(f"Checking calendars for {len(user_ids)} user(s)")

        sent = 0
        for user_id in user_ids:
            try:
                events = self.calendar.list_events(user_id, ListEventsParams(
                    time_min=_iso(now_ms),
                    time_max=_iso(window_end_ms),
                    max_results=self.MAX_EVENTS_PER_USER,
                ))
            except CalendarError as e:
                logger.error(f"Error checking calendar for user {user_id}: {e}")
                continue

            for event in events:
                if self._remind(user_id, event, now_ms):
                    sent += 1

        self._forget_old(now_ms)
        return sent

    def _remind(self, user_id: int, event: EventOutput, now_ms: int) -> bool:
        start_ms = _to_ms(event.start_time)
        if start_ms is None:
            logger.warning(f"Skipping event {event.id} with unreadable start time {event.start_time!r}")
            return False

        key = self._reminder_key(user_id, event)
        with self._lock:
            if key in self._sent:
                return False

        minutes_until = math.floor((start_ms - now_ms) / 60000)
        if not 0 <= minutes_until <= self.lookahead_minutes:
            return False

        try:
            self.send(user_id, format_reminder(event, minutes_until))
        except Exception as e:
            # Left unmarked so the next pass retries
            logger.error(f"Error sending reminder to user {user_id}: {e}")
            return False

        with self._lock:
            self._sent[key] = start_ms
        logger.info(f"Sent reminder for {event.title} (in {minutes_until} min)")
        return True

    def _forget_old(self, now_ms: int) -> None:
        cutoff = now_ms - self.FORGET_AFTER_MS
        with self._lock:
            for key in [k for k, start_ms in self._sent.items() if start_ms < cutoff]:
                del self._sent[key]

    def pending_keys(self):
        """Keys of events already reminded and still remembered."""
        with self._lock:
            return set(self._sent)

    def start(self) -> None:
        """Check now, then keep polling on a daemon thread until ``stop``."""
        if self._thread and self._thread.is_alive():
            return

        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="calendar-reminders", daemon=True)
        self._thread.start()
        logger.info(
            f"Reminder service started (polling every {self.poll_interval_seconds / 60:.0f} minutes)"
        )

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.check()
            except Exception as e:
                logger.error(f"Reminder check failed: {e}")
            self._stop.wait(self.poll_interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
