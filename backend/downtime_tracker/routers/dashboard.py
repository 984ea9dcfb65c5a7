"""Dashboard API - read-only views over the stored samples."""
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..schemas.dashboard import (
    DashboardResponse,
    LastEvent,
    PingResponse,
    TimelineCell,
    TimelineDay,
    TimelineHour,
)
from ..services.classifier import (
    OutageClassifier,
    current_outage_start,
    downtime_minutes,
    format_day_label,
    format_hour_label,
    format_tooltip,
    group_by_day_and_hour,
    sample_color,
    time_ago,
)
from ..services.downtime import format_downtime
from ..services.recorder import fetch_samples
from ..services.samples import Sample
from ..services.weather import current_weather

router = APIRouter(prefix="/api", tags=["dashboard"])


def _to_response(sample: Sample) -> PingResponse:
    weather = sample.weather
    return PingResponse(
        timestamp=sample.timestamp,
        success=sample.success,
        dns_ip=sample.dns_ip,
        dns_latency=sample.dns_latency,
        router_state=sample.router_state,
        weather_temperature_celsius=weather.temperature_celsius,
        weather_humidity_percentage=weather.humidity_percentage,
        weather_precipitation_mm=weather.precipitation_mm,
        weather_wind_speed_kmh=weather.wind_speed_kmh,
        weather_cloud_cover_percentage=weather.cloud_cover_percentage,
    )


def _last_event(at: Optional[datetime], now: datetime) -> LastEvent:
    return LastEvent(at=at, ago=time_ago(at, now))


@router.get("/pings", response_model=List[PingResponse])
async def list_pings(
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """List stored samples, newest first."""
    samples = await fetch_samples(db, limit=limit)
    return [_to_response(sample) for sample in samples]


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(db: AsyncSession = Depends(get_db)):
    """Current status, ongoing outage, and most recent outage events."""
    samples = await fetch_samples(db)
    now = datetime.now(timezone.utc)
    classifier = OutageClassifier(samples, settings.power_outage_gap_seconds)

    down_since = current_outage_start(samples)
    down_for_minutes = downtime_minutes(down_since, now) if down_since else None

    return DashboardResponse(
        total_pings=len(samples),
        latest=_to_response(samples[0]) if samples else None,
        is_down=down_since is not None,
        down_since=down_since,
        down_for_minutes=down_for_minutes,
        down_for=format_downtime(down_for_minutes) if down_for_minutes is not None else None,
        last_power_outage=_last_event(classifier.most_recent_power_outage(), now),
        last_connectivity_loss=_last_event(classifier.most_recent_connectivity_loss(), now),
        last_firmware_update=_last_event(classifier.most_recent_firmware_update(), now),
        current_weather=current_weather(samples),
    )


@router.get("/timeline", response_model=List[TimelineDay])
async def get_timeline(db: AsyncSession = Depends(get_db)):
    """Samples grouped by day and hour, with a colour and tooltip per sample."""
    samples = await fetch_samples(db)
    threshold = settings.power_outage_gap_seconds

    # Colours depend on the next older sample, so compute them on the flat list
    colors = {}
    for index, sample in enumerate(samples):
        previous = samples[index + 1] if index + 1 < len(samples) else None
        colors[id(sample)] = sample_color(sample, previous, threshold)

    today = datetime.now(timezone.utc).date()
    timeline = []
    for day, hours in group_by_day_and_hour(samples).items():
        timeline.append(TimelineDay(
            day=day,
            label=format_day_label(day, today),
            hours=[
                TimelineHour(
                    hour=hour,
                    label=format_hour_label(hour),
                    cells=[
                        TimelineCell(
                            timestamp=sample.timestamp,
                            color=colors[id(sample)],
                            tooltip=format_tooltip(sample),
                        )
                        for sample in hour_samples
                    ],
                )
                for hour, hour_samples in hours.items()
            ],
        ))
    return timeline
