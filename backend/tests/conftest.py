from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from downtime_tracker import models  # noqa: F401
from downtime_tracker.config import Endpoint
from downtime_tracker.database import Base
from downtime_tracker.services.alerter import PostError, PostedRef
from downtime_tracker.services.samples import Sample, WeatherAttributes

T0 = datetime(2025, 3, 4, 12, 0, 0, tzinfo=timezone.utc)


class FakePinger:
    """Pinger answering from a fixed address -> latency table."""

    def __init__(self, latencies: dict[str, int | None]):
        self.latencies = latencies
        self.calls: list[str] = []

    async def reachable(self, endpoint: Endpoint, timeout: int, attempts: int) -> int | None:
        self.calls.append(endpoint.address)
        return self.latencies.get(endpoint.address)


class FakeDiagnostics:
    def __init__(self, state: str = ""):
        self.state = state
        self.calls = 0

    async def fetch_router_state(self) -> str:
        self.calls += 1
        return self.state


class FakeAlerter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages: list[str] = []

    @property
    def enabled(self) -> bool:
        return True

    async def post(self, message: str) -> PostedRef:
        self.messages.append(message)
        if self.fail:
            raise PostError("service unavailable")
        return PostedRef(id=str(len(self.messages)), url=f"https://status.example/{len(self.messages)}")


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def endpoints() -> list[Endpoint]:
    return [
        Endpoint(address="1.1.1.1", label="Cloudflare Primary"),
        Endpoint(address="8.8.8.8", label="Google Primary"),
        Endpoint(address="200.160.2.3", label="NIC.br Primary"),
    ]


@pytest.fixture
def make_sample() -> Callable[..., Sample]:
    """Build a sample ``offset`` seconds after T0."""

    def _make(
        offset: float,
        success: bool = True,
        latency: int = 20,
        router_state: str | None = None,
        weather: WeatherAttributes | None = None,
    ) -> Sample:
        return Sample(
            timestamp=T0 + timedelta(seconds=offset),
            success=success,
            dns_ip="1.1.1.1" if success else None,
            dns_latency=latency if success else None,
            router_state=router_state,
            weather=weather or WeatherAttributes(),
        )

    return _make


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pings.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
