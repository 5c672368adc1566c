"""Current weather lookup via the Open-Meteo APIs."""

import logging
from typing import Optional

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class WeatherServiceError(Exception):
    """The weather service could not be reached or answered with an error."""


class LocationNotFoundError(WeatherServiceError):
    """Geocoding found no place with the given name."""


class WeatherReport(BaseModel):
    """Current conditions at a place."""
    location: str
    temperature_c: float
    feels_like_c: Optional[float] = None
    humidity_percent: Optional[float] = None
    wind_speed_kmh: Optional[float] = None
    conditions: str


# WMO weather interpretation codes
WEATHER_CODES = {
    0: "clear sky",
    1: "mainly clear",
    2: "partly cloudy",
    3: "overcast",
    45: "fog",
    48: "depositing rime fog",
    51: "light drizzle",
    53: "moderate drizzle",
    55: "dense drizzle",
    61: "slight rain",
    63: "moderate rain",
    65: "heavy rain",
    66: "light freezing rain",
    67: "heavy freezing rain",
    71: "slight snow",
    73: "moderate snow",
    75: "heavy snow",
    77: "snow grains",
    80: "slight rain showers",
    81: "moderate rain showers",
    82: "violent rain showers",
    85: "slight snow showers",
    86: "heavy snow showers",
    95: "thunderstorm",
    96: "thunderstorm with slight hail",
    99: "thunderstorm with heavy hail",
}


class WeatherService:
    """Client for Open-Meteo geocoding and forecast endpoints (no API key)."""

    GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
    FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

    def __init__(self, timeout: int = 10):
        self.timeout = timeout

    def _get(self, url: str, params: dict) -> dict:
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise WeatherServiceError(f"Weather service unreachable: {e}") from e

        if response.status_code != 200:
            raise WeatherServiceError(f"Weather service returned status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise WeatherServiceError("Weather service returned invalid JSON") from e

    def current(self, location: str) -> WeatherReport:
        """
        Look up current conditions for a place name.

        Raises:
            LocationNotFoundError: If the place cannot be geocoded
            WeatherServiceError: On transport or API errors
        """
        geo = self._get(self.GEOCODING_URL, {"name": location, "count": 1, "format": "json"})
        places = geo.get("results") or []
        if not places:
            raise LocationNotFoundError(f"No location found for '{location}'")

        place = places[0]
        label = ", ".join(part for part in (place.get("name"), place.get("country")) if part)

        data = self._get(self.FORECAST_URL, {
            "latitude": place["latitude"],
            "longitude": place["longitude"],
            "current": "temperature_2m,relative_humidity_2m,apparent_temperature,weather_code,wind_speed_10m",
        })
        current = data.get("current")
        if not current or "temperature_2m" not in current:
            raise WeatherServiceError("Weather service response had no current conditions")

        logger.info(f"Fetched weather for {label}")
        return WeatherReport(
            location=label or location,
            temperature_c=current["temperature_2m"],
            feels_like_c=current.get("apparent_temperature"),
            humidity_percent=current.get("relative_humidity_2m"),
            wind_speed_kmh=current.get("wind_speed_10m"),
            conditions=WEATHER_CODES.get(current.get("weather_code"), "unknown conditions"),
        )
