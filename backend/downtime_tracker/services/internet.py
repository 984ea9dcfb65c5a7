"""Internet service - decides whether the connection is up by pinging public DNS resolvers."""
import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from ..config import Endpoint, settings
from .diagnostics import RouterDiagnosticsService, diagnostics_service
from .samples import Sample, WeatherAttributes, round_half_up

logger = logging.getLogger(__name__)

# Summary line: "rtt min/avg/max/mdev = 12.3/..." (Linux)
# or "round-trip min/avg/max/stddev = 12.3/..." (BSD/macOS)
SUMMARY_PATTERN = re.compile(r"(?:rtt|round-trip) min/avg/max/(?:mdev|stddev) = (\d+(?:\.\d+)?)")
# Reply line: "64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=12.3 ms"
REPLY_PATTERN = re.compile(r"time\s*=\s*(\d+(?:\.\d+)?)\s*ms")

TOTAL_LOSS_MARKER = "100% packet loss"


def parse_ping_latency_ms(output: str) -> Optional[int]:
    """Extract the round-trip latency from ping output.

    Prefers the summary line (its first value, the minimum) and falls back
    to the first reply line. Returns None when no latency can be found or
    every packet was lost.
    """
    if not output or TOTAL_LOSS_MARKER in output:
        return None

    match = SUMMARY_PATTERN.search(output) or REPLY_PATTERN.search(output)
    if not match:
        return None
    return round_half_up(float(match.group(1)))


class Pinger(Protocol):
    """Performs one reachability attempt against an endpoint."""

    async def reachable(self, endpoint: Endpoint, timeout: int, attempts: int) -> Optional[int]:
        """Return the latency in ms, or None when the endpoint did not answer."""
        ...


class SystemPinger:
    """Pinger backed by the OS ``ping`` command."""

    async def reachable(self, endpoint: Endpoint, timeout: int, attempts: int) -> Optional[int]:
        try:
            proc = await asyncio.create_subprocess_exec(
                "ping", "-c", str(attempts), "-W", str(timeout), endpoint.address,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            # -W bounds each reply; allow a small buffer for process startup
            total_timeout = attempts * timeout + 2
            try:
                stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=total_timeout)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
                logger.debug(f"Ping timeout: {endpoint.address}")
                return None
        except OSError as e:
            logger.warning(f"Could not run ping for {endpoint.address}: {e}")
            return None

        if proc.returncode != 0:
            return None
        return parse_ping_latency_ms(stdout.decode(errors="replace"))


@dataclass
class ProbeResult:
    """Outcome of one reachability check across all endpoints."""
    timestamp: datetime
    success: bool
    dns_ip: Optional[str] = None
    dns_latency: Optional[int] = None
    router_state: Optional[str] = None

    def to_sample(self, weather: Optional[WeatherAttributes] = None) -> Sample:
        return Sample(
            timestamp=self.timestamp,
            success=self.success,
            dns_ip=self.dns_ip,
            dns_latency=self.dns_latency,
            router_state=self.router_state,
            weather=weather or WeatherAttributes(),
        )


class InternetService:
    """Checks reachability against an ordered list of endpoints with fallback."""

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        timeout: int = 3,
        attempts: int = 1,
        pinger: Optional[Pinger] = None,
        diagnostics: Optional[RouterDiagnosticsService] = None,
    ):
        if not endpoints:
            raise ValueError("at least one endpoint is required")
        self.endpoints = tuple(endpoints)
        self.timeout = timeout
        self.attempts = attempts
        self.pinger = pinger or SystemPinger()
        self.diagnostics = diagnostics

    async def check(self) -> ProbeResult:
        """Probe endpoints in order and stop at the first that answers.

        The reported latency and address belong to the first responding
        endpoint in configured order, not the fastest one. When every
        endpoint fails, router diagnostics are attached to the result.
        """
        timestamp = datetime.now(timezone.utc)

        for endpoint in self.endpoints:
            latency = await self.pinger.reachable(endpoint, self.timeout, self.attempts)
            if latency is not None:
                return ProbeResult(
                    timestamp=timestamp,
                    success=True,
                    dns_ip=endpoint.address,
                    dns_latency=latency,
                )
            logger.debug(f"{endpoint.label} ({endpoint.address}) is unreachable")

        router_state = ""
        if self.diagnostics is not None:
            router_state = await self.diagnostics.fetch_router_state()

        return ProbeResult(timestamp=timestamp, success=False, router_state=router_state)

    async def is_down(self) -> bool:
        """Probe every endpoint, reporting each unreachable one.

        Down only when no endpoint answered. No diagnostics are fetched.
        """
        reachable = False
        for endpoint in self.endpoints:
            latency = await self.pinger.reachable(endpoint, self.timeout, self.attempts)
            if latency is None:
                logger.info(f"{endpoint.label} ({endpoint.address}) is unreachable")
            else:
                reachable = True
        return not reachable


def build_internet_service() -> InternetService:
    """Create the service from application settings."""
    return InternetService(
        endpoints=settings.dns_endpoints,
        timeout=settings.probe_timeout_seconds,
        attempts=settings.probe_attempts,
        diagnostics=diagnostics_service if settings.router_diagnostics_enabled else None,
    )
