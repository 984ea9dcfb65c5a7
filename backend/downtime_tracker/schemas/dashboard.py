"""Dashboard schemas for the read-only API."""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel


class PingResponse(BaseModel):
    """A stored sample."""
    timestamp: datetime
    success: bool
    dns_ip: Optional[str] = None
    dns_latency: Optional[int] = None  # ms
    router_state: Optional[str] = None
    weather_temperature_celsius: Optional[float] = None
    weather_humidity_percentage: Optional[int] = None
    weather_precipitation_mm: Optional[float] = None
    weather_wind_speed_kmh: Optional[float] = None
    weather_cloud_cover_percentage: Optional[int] = None


class LastEvent(BaseModel):
    """Most recent occurrence of an outage kind."""
    at: Optional[datetime] = None
    ago: str  # "Never", "just now", "5m ago", ...


class DashboardResponse(BaseModel):
    """Current status and outage history summary."""
    total_pings: int
    latest: Optional[PingResponse] = None
    is_down: bool
    down_since: Optional[datetime] = None
    down_for_minutes: Optional[int] = None
    down_for: Optional[str] = None  # "1h 5m"
    last_power_outage: LastEvent
    last_connectivity_loss: LastEvent
    last_firmware_update: LastEvent
    current_weather: Optional[str] = None  # "21°C, partly cloudy"


class TimelineCell(BaseModel):
    timestamp: datetime
    color: str
    tooltip: str


class TimelineHour(BaseModel):
    hour: int
    label: str  # "14:00"
    cells: List[TimelineCell]


class TimelineDay(BaseModel):
    day: date
    label: str  # "Today", "Yesterday", "Mar 04"
    hours: List[TimelineHour]
