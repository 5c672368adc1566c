"""Tools the assistant can call."""

from .documents import SearchDocumentsTool, ListFilesTool
from .weather import WeatherTool
from .calendar import CreateEventTool, ListEventsTool, DeleteEventTool

__all__ = [
    "SearchDocumentsTool",
    "ListFilesTool",
    "WeatherTool",
    "CreateEventTool",
    "ListEventsTool",
    "DeleteEventTool",
]
