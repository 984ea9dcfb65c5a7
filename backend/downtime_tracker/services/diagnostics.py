"""Router diagnostics service - captures the dish status when the internet is down."""
import asyncio
import logging
import shutil

from ..config import settings

logger = logging.getLogger(__name__)

GET_STATUS_REQUEST = '{"get_status":{}}'
HANDLE_METHOD = "SpaceX.API.Device.Device/Handle"


class RouterDiagnosticsService:
    """Fetches router state through ``grpcurl``.

    The payload is stored as opaque text. Any failure yields an empty
    string so a missing diagnostic never fails a probe tick.
    """

    def __init__(self, address: str, timeout: int = 5, executable: str = "grpcurl"):
        self.address = address
        self.timeout = timeout
        self.executable = executable

    def _build_command(self) -> list:
        return [
            self.executable,
            "-plaintext",
            "-d", GET_STATUS_REQUEST,
            self.address,
            HANDLE_METHOD,
        ]

    async def fetch_router_state(self) -> str:
        if shutil.which(self.executable) is None:
            logger.warning(f"{self.executable} not found - router state unavailable")
            return ""

        try:
            proc = await asyncio.create_subprocess_exec(
                *self._build_command(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
                logger.warning(f"Router diagnostics timed out after {self.timeout}s")
                return ""
        except OSError as e:
            logger.warning(f"Failed to fetch router state: {e}")
            return ""

        if proc.returncode != 0:
            logger.warning(
                f"Router diagnostics failed ({proc.returncode}): "
                f"{stderr.decode(errors='replace').strip()[:200]}"
            )
            return ""

        return stdout.decode(errors="replace").strip()


# Global instance
diagnostics_service = RouterDiagnosticsService(
    address=settings.router_address,
    timeout=settings.router_diagnostics_timeout_seconds,
)
