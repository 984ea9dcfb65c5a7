"""Scheduler service - runs the probe loop.

One tick = check reachability (with weather fetched alongside), append the
sample, then feed the outcome to the downtime tracker. Ticks never overlap:
the job runs with max_instances=1 and late ticks are coalesced.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from .downtime import DowntimeTracker, ProgressBar, build_downtime_tracker
from .internet import InternetService, build_internet_service
from .recorder import RecorderService, StorageError, recorder_service
from .samples import Sample
from .weather import WeatherService, weather_service

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for scheduling and running probe ticks at a fixed interval."""

    def __init__(
        self,
        internet: InternetService,
        recorder: RecorderService,
        tracker: DowntimeTracker,
        weather: WeatherService,
        interval_seconds: int = 30,
        progress: Optional[ProgressBar] = None,
    ):
        self.internet = internet
        self.recorder = recorder
        self.tracker = tracker
        self.weather = weather
        self.interval_seconds = interval_seconds
        self.progress = progress or ProgressBar()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def start(self):
        """Start the scheduler."""
        if self._running:
            return

        self.progress.reset()
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._run_tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="probe",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            # First tick runs right away instead of after a full interval
            next_run_time=datetime.now(timezone.utc),
        )
        self.scheduler.start()
        self._running = True
        logger.info(f"Probe loop started (interval={self.interval_seconds}s, endpoints={len(self.internet.endpoints)})")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            self.progress.reset()
            logger.info("Probe loop stopped")

    async def run_tick(self) -> Sample:
        """Probe, record, and update the outage session.

        Raises nothing for a storage failure: it is logged and the tracker
        is still fed, since the outage session depends only on the probe.
        """
        result, weather = await asyncio.gather(
            self.internet.check(),
            self.weather.fetch_weather(),
        )
        sample = result.to_sample(weather)

        try:
            await self.recorder.append(sample)
        except StorageError as e:
            logger.error(f"Error recording sample: {e}")

        await self.tracker.observe(down=not result.success, now=result.timestamp)
        self.progress.tick(result.success)
        return sample

    async def _run_tick(self):
        try:
            await self.run_tick()
        except Exception as e:
            logger.error(f"Error running probe: {e}")


def build_scheduler_service() -> SchedulerService:
    """Create the probe loop from application settings."""
    return SchedulerService(
        internet=build_internet_service(),
        recorder=recorder_service,
        tracker=build_downtime_tracker(),
        weather=weather_service,
        interval_seconds=settings.probe_interval_seconds,
    )


# Global instance
scheduler_service = build_scheduler_service()
