"""Ping model - one reachability sample per probe tick."""
from sqlalchemy import Column, Integer, Float, String, DateTime, Text

from ..database import Base


class Ping(Base):
    """A stored reachability sample. Rows are only ever appended."""

    __tablename__ = "pings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    datetime = Column(DateTime, nullable=False, index=True)  # UTC, naive
    success = Column(Integer, nullable=False, index=True)  # 1=up, 0=down
    dns_ip = Column(String, nullable=True)  # Responding resolver, success only
    dns_latency = Column(Integer, nullable=True)  # ms, success only
    router_state = Column(Text, nullable=True)  # Diagnostics payload, failure only

    # Weather at capture time
    weather_temperature_celsius = Column(Float, nullable=True)
    weather_humidity_percentage = Column(Integer, nullable=True)
    weather_precipitation_mm = Column(Float, nullable=True)
    weather_wind_speed_kmh = Column(Float, nullable=True)
    weather_cloud_cover_percentage = Column(Integer, nullable=True)
