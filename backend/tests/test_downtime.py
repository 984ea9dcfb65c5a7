"""Tests for the downtime tracker state machine and its derived values."""

import io
from datetime import timedelta
from decimal import Decimal

import pytest

from downtime_tracker.services.downtime import (
    DowntimeState,
    DowntimeTracker,
    ProgressBar,
    format_discount,
    format_downtime,
    isp_bill_discount,
)

from conftest import FakeAlerter


class TestFormatDowntime:
    @pytest.mark.parametrize("minutes,expected", [
        (1, "1m"),
        (59, "59m"),
        (60, "1h 0m"),
        (61, "1h 1m"),
        (125, "2h 5m"),
    ])
    def test_format(self, minutes, expected):
        assert format_downtime(minutes) == expected


class TestDiscount:
    def test_sixty_minutes_at_an_eighth_per_minute(self):
        # 5400 / 30 / 24 / 60 = 0.125 per minute
        assert isp_bill_discount(5400.0, 60) == Decimal("7.50")

    def test_rounds_up_to_the_cent(self):
        # 90 / 43200 * 60 = 0.125
        assert isp_bill_discount(90.0, 60) == Decimal("0.13")

    def test_zero_bill(self):
        assert isp_bill_discount(0.0, 600) == Decimal("0.00")

    def test_comma_separator(self):
        assert format_discount(Decimal("7.50")) == "7,50"

    def test_dot_separator(self):
        assert format_discount(Decimal("7.50"), ".") == "7.50"


class TestDowntimeTracker:
    @pytest.mark.asyncio
    async def test_outage_posts_once_on_recovery(self, t0):
        alerter = FakeAlerter()
        tracker = DowntimeTracker(alerter=alerter, monthly_bill=5400.0)

        for offset in (0, 30, 60):
            assert await tracker.observe(True, t0 + timedelta(seconds=offset)) is None
            assert alerter.messages == []
        report = await tracker.observe(False, t0 + timedelta(seconds=95))

        assert report.downtime_minutes == 2
        assert report.started_at == t0
        assert report.duration == "2m"
        assert report.discount == Decimal("0.25")
        assert alerter.messages == ["Internet was down for 2m, here's a 0,25 discount."]
        assert report.posted.url == "https://status.example/1"
        assert tracker.state == DowntimeState.UP
        assert tracker.down_since is None

    @pytest.mark.asyncio
    async def test_up_to_up_does_nothing(self, t0):
        alerter = FakeAlerter()
        tracker = DowntimeTracker(alerter=alerter)

        for offset in (0, 30, 60):
            assert await tracker.observe(False, t0 + timedelta(seconds=offset)) is None

        assert tracker.state == DowntimeState.UP
        assert alerter.messages == []

    @pytest.mark.asyncio
    async def test_session_starts_at_first_failure(self, t0):
        tracker = DowntimeTracker(alerter=FakeAlerter())

        await tracker.observe(True, t0)
        await tracker.observe(True, t0 + timedelta(seconds=30))

        assert tracker.state == DowntimeState.DOWN
        assert tracker.down_since == t0

    @pytest.mark.asyncio
    async def test_post_failure_still_clears_session(self, t0):
        alerter = FakeAlerter(fail=True)
        tracker = DowntimeTracker(alerter=alerter)

        await tracker.observe(True, t0)
        report = await tracker.observe(False, t0 + timedelta(minutes=10))

        assert report.posted is None
        assert len(alerter.messages) == 1
        assert tracker.state == DowntimeState.UP

    @pytest.mark.asyncio
    async def test_each_outage_notifies_separately(self, t0):
        alerter = FakeAlerter()
        tracker = DowntimeTracker(alerter=alerter)

        await tracker.observe(True, t0)
        await tracker.observe(False, t0 + timedelta(minutes=1))
        await tracker.observe(False, t0 + timedelta(minutes=2))
        await tracker.observe(True, t0 + timedelta(minutes=3))
        await tracker.observe(False, t0 + timedelta(minutes=64))

        assert alerter.messages == [
            "Internet was down for 1m, here's a 0,00 discount.",
            "Internet was down for 1h 1m, here's a 0,00 discount.",
        ]

    @pytest.mark.asyncio
    async def test_custom_template_and_separator(self, t0):
        alerter = FakeAlerter()
        tracker = DowntimeTracker(
            alerter=alerter,
            monthly_bill=5400.0,
            message_template="Down {duration}; owed {discount}",
            decimal_separator=".",
        )

        await tracker.observe(True, t0)
        await tracker.observe(False, t0 + timedelta(minutes=60))

        assert alerter.messages == ["Down 1h 0m; owed 7.50"]

    @pytest.mark.asyncio
    async def test_without_alerter_still_reports(self, t0):
        tracker = DowntimeTracker(alerter=None)

        await tracker.observe(True, t0)
        report = await tracker.observe(False, t0 + timedelta(seconds=1))

        assert report.downtime_minutes == 1
        assert report.posted is None


class TestProgressBar:
    def test_marks_success_and_failure(self):
        stream = io.StringIO()
        bar = ProgressBar(stream=stream)

        bar.tick(True)
        bar.tick(False)

        assert stream.getvalue() == "✓✗"

    def test_wraps_at_width(self):
        stream = io.StringIO()
        bar = ProgressBar(width=3, stream=stream)

        for _ in range(4):
            bar.tick(True)

        assert stream.getvalue() == "✓✓✓\n✓"
        assert bar.columns == 1

    def test_reset_ends_partial_line(self):
        stream = io.StringIO()
        bar = ProgressBar(stream=stream)

        bar.tick(True)
        bar.reset()
        bar.reset()

        assert stream.getvalue() == "✓\n"
        assert bar.columns == 0
