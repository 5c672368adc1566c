"""Calendar data models."""

from typing import Optional
from pydantic import BaseModel, Field


class UserTokens(BaseModel):
    """OAuth tokens stored per user."""
    access_token: str
    refresh_token: Optional[str] = None
    scope: str = "https://www.googleapis.com/auth/calendar"
    token_type: str = "Bearer"
    expiry_date: int = 0  # epoch milliseconds


class EventInput(BaseModel):
    """Input for creating a calendar event."""
    title: str
    description: Optional[str] = None
    start_time: str  # ISO 8601
    end_time: str  # ISO 8601
    reminder_minutes: Optional[int] = None
    time_zone: str = "UTC"


class EventOutput(BaseModel):
    """Simplified event returned to tools."""
    id: str
    title: str
    description: Optional[str] = None
    start_time: str
    end_time: str
    html_link: Optional[str] = None


class ListEventsParams(BaseModel):
    """Parameters for listing events."""
    max_results: int = Field(10, ge=1, le=250)
    time_min: Optional[str] = None  # ISO 8601, defaults to now
    time_max: Optional[str] = None
    query: Optional[str] = None
