"""Downtime tracker - follows an outage from the first failed probe to recovery.

States are ``up`` (initial) and ``down``. The outage notification is posted
exactly once, on the down -> up transition, with the downtime rounded up to
whole minutes and the matching share of the monthly ISP bill.
"""
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_CEILING
from enum import Enum
from typing import Optional, TextIO

from ..config import settings, DEFAULT_MESSAGE_TEMPLATE
from .alerter import AlerterService, PostError, PostedRef, alerter_service
from .classifier import downtime_minutes

logger = logging.getLogger(__name__)

MINUTES_PER_BILLING_MONTH = 30 * 24 * 60


class DowntimeState(str, Enum):
    UP = "up"
    DOWN = "down"


def format_downtime(minutes: int) -> str:
    """Format minutes as ``"2h 5m"``, or ``"45m"`` below an hour."""
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes}m"


def isp_bill_discount(monthly_bill: float, minutes: int) -> Decimal:
    """Share of the monthly bill covering ``minutes`` of downtime, rounded up to cents."""
    discount = Decimal(str(monthly_bill)) * minutes / MINUTES_PER_BILLING_MONTH
    return discount.quantize(Decimal("0.01"), rounding=ROUND_CEILING)


def format_discount(discount: Decimal, decimal_separator: str = ",") -> str:
    return f"{discount:.2f}".replace(".", decimal_separator)


@dataclass
class DowntimeReport:
    """Summary of a finished outage."""
    started_at: datetime
    ended_at: datetime
    downtime_minutes: int
    duration: str
    discount: Decimal
    message: str
    posted: Optional[PostedRef] = None


class DowntimeTracker:
    """In-memory outage session. At most one session is open at a time."""

    def __init__(
        self,
        alerter: Optional[AlerterService] = None,
        monthly_bill: float = 0.0,
        message_template: str = DEFAULT_MESSAGE_TEMPLATE,
        decimal_separator: str = ",",
    ):
        self.alerter = alerter
        self.monthly_bill = monthly_bill
        self.message_template = message_template
        self.decimal_separator = decimal_separator
        self.down_since: Optional[datetime] = None

    @property
    def state(self) -> DowntimeState:
        return DowntimeState.UP if self.down_since is None else DowntimeState.DOWN

    def build_report(self, started_at: datetime, ended_at: datetime) -> DowntimeReport:
        minutes = downtime_minutes(started_at, ended_at)
        duration = format_downtime(minutes)
        discount = isp_bill_discount(self.monthly_bill, minutes)
        message = self.message_template.format(
            duration=duration,
            discount=format_discount(discount, self.decimal_separator),
        )
        return DowntimeReport(
            started_at=started_at,
            ended_at=ended_at,
            downtime_minutes=minutes,
            duration=duration,
            discount=discount,
            message=message,
        )

    async def observe(self, down: bool, now: Optional[datetime] = None) -> Optional[DowntimeReport]:
        """Feed one probe outcome.

        Returns the outage report when this observation ends an outage,
        otherwise None.
        """
        now = now or datetime.now(timezone.utc)

        if self.down_since is None:
            if down:
                self.down_since = now
                logger.info("Internet is down!")
            return None

        if down:
            return None

        report = self.build_report(self.down_since, now)
        # The session ends with connectivity, whether or not the post succeeds
        self.down_since = None
        logger.info(report.message)

        if self.alerter is not None and self.alerter.enabled:
            try:
                report.posted = await self.alerter.post(report.message)
            except PostError as e:
                logger.error(f"Failed to post outage notification: {e}")

        logger.info("Internet is back up!")
        return report


class ProgressBar:
    """Heartbeat printed once per probe: ``✓`` when up, ``✗`` when down."""

    def __init__(self, width: int = 120, stream: Optional[TextIO] = None):
        self.width = width
        self.stream = stream or sys.stdout
        self.columns = 0

    def tick(self, success: bool):
        self.stream.write("✓" if success else "✗")
        self.columns += 1
        if self.columns >= self.width:
            self.stream.write("\n")
            self.columns = 0
        self.stream.flush()

    def reset(self):
        if self.columns:
            self.stream.write("\n")
            self.stream.flush()
        self.columns = 0


def build_downtime_tracker() -> DowntimeTracker:
    """Create the tracker from application settings."""
    return DowntimeTracker(
        alerter=alerter_service,
        monthly_bill=settings.isp_bill_amount,
        message_template=settings.message_template,
        decimal_separator=settings.discount_decimal_separator,
    )
