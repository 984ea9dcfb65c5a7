"""Recorder service - appends one sample per probe tick to the pings table."""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import async_session
from ..models import Ping
from ..utils.db_utils import retry_on_lock
from .samples import Sample

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A sample could not be persisted."""


def sample_to_row(sample: Sample) -> Ping:
    weather = sample.weather
    return Ping(
        # Stored as naive UTC
        datetime=sample.timestamp.replace(tzinfo=None),
        success=1 if sample.success else 0,
        dns_ip=sample.dns_ip,
        dns_latency=sample.dns_latency,
        router_state=sample.router_state,
        weather_temperature_celsius=weather.temperature_celsius,
        weather_humidity_percentage=weather.humidity_percentage,
        weather_precipitation_mm=weather.precipitation_mm,
        weather_wind_speed_kmh=weather.wind_speed_kmh,
        weather_cloud_cover_percentage=weather.cloud_cover_percentage,
    )


async def fetch_samples(session: AsyncSession, limit: Optional[int] = None) -> List[Sample]:
    """All stored samples, newest first."""
    query = select(Ping).order_by(Ping.datetime.desc(), Ping.id.desc())
    if limit is not None:
        query = query.limit(limit)
    result = await session.execute(query)
    return [Sample.from_row(row) for row in result.scalars().all()]


class RecorderService:
    """Append-only sample store."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or async_session

    async def append(self, sample: Sample):
        """Persist a sample. Raises StorageError if it could not be written."""
        async def _write():
            async with self.session_factory() as session:
                session.add(sample_to_row(sample))
                await session.commit()

        try:
            await retry_on_lock(_write)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to record sample at {sample.timestamp.isoformat()}: {e}") from e


# Global instance
recorder_service = RecorderService()
