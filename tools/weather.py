"""Weather lookup tool."""

from typing import Optional

from pydantic import BaseModel, Field

from agent.tools import Tool
from services.weather import WeatherService, LocationNotFoundError, WeatherServiceError


class WeatherArgs(BaseModel):
    location: str = Field(..., min_length=1, description="City or place name, e.g. 'London' or 'Paris, France'")


class WeatherTool(Tool):
    """Current weather for a named place."""

    name = "get_weather"
    description = "Get the current weather for a city or place. Use this when the user asks about weather conditions."
    args_model = WeatherArgs
    requires_owner = False

    def __init__(self, service: WeatherService):
        self.service = service

    def execute(self, args: WeatherArgs, owner_id: Optional[int]) -> str:
        try:
            report = self.service.current(args.location)
        except LocationNotFoundError:
            return f"Location not found: {args.location}. Ask the user to check the place name."
        except WeatherServiceError as e:
            return f"Weather service unavailable: {e}"

        parts = [f"Weather in {report.location}: {report.conditions}, {report.temperature_c:.1f}°C"]
        if report.feels_like_c is not None:
            parts.append(f"feels like {report.feels_like_c:.1f}°C")
        if report.humidity_percent is not None:
            parts.append(f"humidity {report.humidity_percent:.0f}%")
        if report.wind_speed_kmh is not None:
            parts.append(f"wind {report.wind_speed_kmh:.0f} km/h")
        return ", ".join(parts) + "."
