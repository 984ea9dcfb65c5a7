"""Pydantic schemas for API response models."""
from .dashboard import (
    PingResponse,
    LastEvent,
    DashboardResponse,
    TimelineCell,
    TimelineHour,
    TimelineDay,
)

__all__ = [
    "PingResponse",
    "LastEvent",
    "DashboardResponse",
    "TimelineCell",
    "TimelineHour",
    "TimelineDay",
]
