"""Services for probing, recording, classifying, and alerting."""
from .internet import InternetService
from .recorder import RecorderService
from .downtime import DowntimeTracker
from .alerter import AlerterService
from .weather import WeatherService
from .scheduler import SchedulerService

__all__ = [
    "InternetService",
    "RecorderService",
    "DowntimeTracker",
    "AlerterService",
    "WeatherService",
    "SchedulerService",
]
