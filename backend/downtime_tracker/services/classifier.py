"""Outage classifier - turns stored samples into outage events.

All functions are pure and expect samples ordered newest first, the order
the dashboard reads them in. Three kinds of event are derived:

- power outage: two adjacent samples further apart than the gap threshold,
  meaning nothing was recording (the device had no power). The event is
  dated at the newer sample of the pair.
- firmware update: a failed sample whose router state mentions an update
  or reboot.
- connectivity loss: any other failed sample.

A gap and a failed sample are evaluated independently, so the sample right
after a gap can produce both a power outage and a failure event.
"""
import json
import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .samples import Sample, round_half_up

POWER_OUTAGE_GAP_SECONDS = 120

FIRMWARE_UPDATE_MARKERS = ("software_update", "updating", "reboot")

# Timeline colours
COLOR_POWER_OUTAGE = "#000000"
COLOR_FIRMWARE_UPDATE = "#ababab"
COLOR_CONNECTIVITY_LOSS = "#e70202"
COLOR_FAST = "#196127"  # <= 40ms
COLOR_OK = "#239a3b"  # <= 80ms
COLOR_SLOW = "#f8c300"


class EventKind(str, Enum):
    CONNECTIVITY_LOSS = "connectivity_loss"
    POWER_OUTAGE = "power_outage"
    FIRMWARE_UPDATE = "firmware_update"


@dataclass(frozen=True)
class ClassifiedEvent:
    kind: EventKind
    at: datetime


def detect_firmware_update(router_state: Optional[str]) -> bool:
    """Check whether a router state reports a firmware update or reboot.

    Structured payloads are searched in their parsed form; anything that is
    not JSON is searched as raw text.
    """
    if not router_state:
        return False

    try:
        text = json.dumps(json.loads(router_state))
    except ValueError:
        text = router_state

    text = text.lower()
    return any(marker in text for marker in FIRMWARE_UPDATE_MARKERS)


def is_power_outage(
    sample: Sample,
    previous: Optional[Sample],
    threshold_seconds: int = POWER_OUTAGE_GAP_SECONDS,
) -> bool:
    """Check whether the gap between two adjacent samples exceeds the threshold."""
    if previous is None:
        return False
    gap = abs((previous.timestamp - sample.timestamp).total_seconds())
    return gap > threshold_seconds


def classify_failure(sample: Sample) -> Optional[EventKind]:
    """Classify a single sample. Successful samples are not events."""
    if sample.success:
        return None
    if detect_firmware_update(sample.router_state):
        return EventKind.FIRMWARE_UPDATE
    return EventKind.CONNECTIVITY_LOSS


def classify(
    samples: Sequence[Sample],
    threshold_seconds: int = POWER_OUTAGE_GAP_SECONDS,
) -> List[ClassifiedEvent]:
    """Derive every outage event from newest-first samples in one pass."""
    events = []
    for index, sample in enumerate(samples):
        previous = samples[index + 1] if index + 1 < len(samples) else None
        if is_power_outage(sample, previous, threshold_seconds):
            events.append(ClassifiedEvent(EventKind.POWER_OUTAGE, sample.timestamp))

        kind = classify_failure(sample)
        if kind is not None:
            events.append(ClassifiedEvent(kind, sample.timestamp))
    return events


class OutageClassifier:
    """Answers "most recent event" queries over a fixed sample sequence."""

    def __init__(self, samples: Sequence[Sample], threshold_seconds: int = POWER_OUTAGE_GAP_SECONDS):
        self.samples = samples
        self.threshold_seconds = threshold_seconds

    def events(self) -> List[ClassifiedEvent]:
        return classify(self.samples, self.threshold_seconds)

    def _most_recent(self, kind: EventKind) -> Optional[datetime]:
        for event in self.events():
            if event.kind == kind:
                return event.at
        return None

    def most_recent_power_outage(self) -> Optional[datetime]:
        return self._most_recent(EventKind.POWER_OUTAGE)

    def most_recent_connectivity_loss(self) -> Optional[datetime]:
        return self._most_recent(EventKind.CONNECTIVITY_LOSS)

    def most_recent_firmware_update(self) -> Optional[datetime]:
        return self._most_recent(EventKind.FIRMWARE_UPDATE)


def current_outage_start(samples: Sequence[Sample]) -> Optional[datetime]:
    """Start of the ongoing outage, or None if the newest sample succeeded."""
    started_at = None
    for sample in samples:
        if sample.success:
            break
        started_at = sample.timestamp
    return started_at


def downtime_minutes(started_at: datetime, now: datetime) -> int:
    """Whole minutes of downtime, rounded up."""
    return math.ceil((now - started_at).total_seconds() / 60)


def sample_color(
    sample: Sample,
    previous: Optional[Sample],
    threshold_seconds: int = POWER_OUTAGE_GAP_SECONDS,
) -> str:
    """Timeline colour for a sample; ``previous`` is the next older sample."""
    if is_power_outage(sample, previous, threshold_seconds):
        return COLOR_POWER_OUTAGE

    if not sample.success:
        if detect_firmware_update(sample.router_state):
            return COLOR_FIRMWARE_UPDATE
        return COLOR_CONNECTIVITY_LOSS

    latency = sample.dns_latency or 0
    if latency <= 40:
        return COLOR_FAST
    if latency <= 80:
        return COLOR_OK
    return COLOR_SLOW


def format_tooltip(sample: Sample) -> str:
    parts = []

    if sample.success:
        parts.append(f"{sample.dns_latency}ms")
    else:
        parts.append("No connection")

    weather = sample.weather
    if weather.temperature_celsius is not None:
        parts.append(f"{round_half_up(weather.temperature_celsius)}°C")
    if weather.cloud_cover_percentage is not None:
        parts.append(f"{weather.cloud_cover_percentage}% clouds")
    if weather.wind_speed_kmh is not None:
        parts.append(f"{round_half_up(weather.wind_speed_kmh)} km/h wind")

    timestamp = sample.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
    dns_info = f" • DNS: {sample.dns_ip}" if sample.dns_ip else ""

    return f"{timestamp}{dns_info}\n{' • '.join(parts)}"


def time_ago(instant: Optional[datetime], now: datetime) -> str:
    if instant is None:
        return "Never"

    seconds = (now - instant).total_seconds()
    if seconds < 60:
        return "just now"

    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes}m ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"

    return f"{hours // 24}d ago"


def group_by_day_and_hour(samples: Sequence[Sample]) -> Dict[date, Dict[int, List[Sample]]]:
    """Group newest-first samples by UTC day and hour.

    Days and hours come newest first; samples inside an hour come oldest
    first so each hour reads left to right.
    """
    by_day: Dict[date, Dict[int, List[Sample]]] = {}
    for sample in samples:
        hours = by_day.setdefault(sample.timestamp.date(), {})
        hours.setdefault(sample.timestamp.hour, []).append(sample)

    grouped = OrderedDict()
    for day in sorted(by_day, reverse=True):
        grouped[day] = OrderedDict(
            (hour, sorted(by_day[day][hour], key=lambda s: s.timestamp))
            for hour in sorted(by_day[day], reverse=True)
        )
    return grouped


def format_day_label(day: date, today: date) -> str:
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return day.strftime("%b %d")


def format_hour_label(hour: int) -> str:
    return f"{hour:02d}:00"
