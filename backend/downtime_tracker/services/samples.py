"""Sample data types shared by the probe loop, classifier, and dashboard."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (20.5 -> 21)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class WeatherAttributes:
    """Ambient weather at capture time. Every field may be absent."""
    temperature_celsius: Optional[float] = None
    humidity_percentage: Optional[int] = None
    precipitation_mm: Optional[float] = None
    wind_speed_kmh: Optional[float] = None
    cloud_cover_percentage: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.temperature_celsius,
                self.humidity_percentage,
                self.precipitation_mm,
                self.wind_speed_kmh,
                self.cloud_cover_percentage,
            )
        )


@dataclass
class Sample:
    """A single reachability observation.

    Exactly one side is populated: ``dns_ip``/``dns_latency`` when the probe
    succeeded, ``router_state`` when it failed. ``__post_init__`` clears the
    other side, and a success without DNS fields is rejected.
    """
    timestamp: datetime
    success: bool
    dns_ip: Optional[str] = None
    dns_latency: Optional[int] = None  # ms
    router_state: Optional[str] = None
    weather: WeatherAttributes = field(default_factory=WeatherAttributes)

    def __post_init__(self):
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)

        if self.success:
            self.router_state = None
            if self.dns_ip is None or self.dns_latency is None:
                raise ValueError("a successful sample needs dns_ip and dns_latency")
            if self.dns_latency < 0:
                raise ValueError("dns_latency must be non-negative")
        else:
            self.dns_ip = None
            self.dns_latency = None
            if self.router_state is None:
                self.router_state = ""

    @classmethod
    def from_row(cls, row) -> "Sample":
        """Build a sample from a stored ``Ping`` row."""
        return cls(
            timestamp=row.datetime,
            success=bool(row.success),
            dns_ip=row.dns_ip,
            dns_latency=row.dns_latency,
            router_state=row.router_state,
            weather=WeatherAttributes(
                temperature_celsius=row.weather_temperature_celsius,
                humidity_percentage=row.weather_humidity_percentage,
                precipitation_mm=row.weather_precipitation_mm,
                wind_speed_kmh=row.weather_wind_speed_kmh,
                cloud_cover_percentage=row.weather_cloud_cover_percentage,
            ),
        )
