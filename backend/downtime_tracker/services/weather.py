"""Weather service - current conditions at the probe location from Open-Meteo."""
import logging
from typing import Optional, Sequence

import httpx

from ..config import settings
from .samples import Sample, WeatherAttributes, round_half_up

logger = logging.getLogger(__name__)

CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,precipitation,wind_speed_10m,cloud_cover"

# Upper bound (inclusive) of cloud cover for each sky condition
SKY_CONDITIONS = [
    (10, "clear"),
    (30, "mostly clear"),
    (60, "partly cloudy"),
    (80, "mostly cloudy"),
]


def _as_int(value) -> Optional[int]:
    return None if value is None else round_half_up(float(value))


def _as_float(value) -> Optional[float]:
    return None if value is None else float(value)


class WeatherService:
    """Fetches weather attributes. Never raises: failures return empty attributes."""

    def __init__(
        self,
        latitude: Optional[float],
        longitude: Optional[float],
        url: str = "https://api.open-meteo.com/v1/forecast",
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.url = url
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    async def fetch_weather(self) -> WeatherAttributes:
        if not self.enabled:
            return WeatherAttributes()

        params = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "current": CURRENT_FIELDS,
            "wind_speed_unit": "kmh",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, params=params)
                response.raise_for_status()
                current = response.json()["current"]

            return WeatherAttributes(
                temperature_celsius=_as_float(current.get("temperature_2m")),
                humidity_percentage=_as_int(current.get("relative_humidity_2m")),
                precipitation_mm=_as_float(current.get("precipitation")),
                wind_speed_kmh=_as_float(current.get("wind_speed_10m")),
                cloud_cover_percentage=_as_int(current.get("cloud_cover")),
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to fetch weather: {e}")
            return WeatherAttributes()


def sky_condition(cloud_cover: Optional[int]) -> str:
    """Bucket a cloud-cover percentage into a sky condition."""
    clouds = cloud_cover or 0
    for upper_bound, condition in SKY_CONDITIONS:
        if clouds <= upper_bound:
            return condition
    return "overcast"


def current_weather(samples: Sequence[Sample]) -> Optional[str]:
    """Summarise the newest sample's weather, e.g. ``"21°C, partly cloudy"``.

    ``samples`` must be ordered newest first.
    """
    if not samples:
        return None

    weather = samples[0].weather
    if weather.temperature_celsius is None:
        return None

    temperature = round_half_up(weather.temperature_celsius)
    return f"{temperature}°C, {sky_condition(weather.cloud_cover_percentage)}"


# Global instance
weather_service = WeatherService(
    latitude=settings.weather_latitude,
    longitude=settings.weather_longitude,
    url=settings.weather_url,
    timeout=settings.weather_timeout_seconds,
)
