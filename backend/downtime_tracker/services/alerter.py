"""Alerter service - posts the outage summary once the internet is back up."""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class PostError(Exception):
    """The status post could not be published."""


@dataclass(frozen=True)
class PostedRef:
    """Reference to a published post."""
    id: Optional[str]
    url: Optional[str]


class AlerterService:
    """Publishes status posts to a social/status endpoint over HTTP."""

    def __init__(
        self,
        url: Optional[str],
        token: Optional[str] = None,
        thread_id: Optional[str] = None,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.token = token
        self.thread_id = thread_id
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _build_payload(self, message: str) -> dict:
        payload = {"status": message}
        if self.thread_id:
            payload["in_reply_to_status_id"] = self.thread_id
        return payload

    def _build_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def post(self, message: str) -> PostedRef:
        """Publish a message, replying to the configured thread if any."""
        if not self.enabled:
            raise PostError("alert URL not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json=self._build_payload(message),
                    headers=self._build_headers(),
                )
        except httpx.HTTPError as e:
            raise PostError(f"failed to post status: {e}") from e

        if response.status_code >= 400:
            raise PostError(f"status post returned {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        post_id = data.get("id")
        ref = PostedRef(
            id=str(post_id) if post_id is not None else None,
            url=data.get("url"),
        )
        logger.info(f"Posted at {ref.url or ref.id or self.url}")
        return ref


# Global instance
alerter_service = AlerterService(
    url=settings.alert_url,
    token=settings.alert_token,
    thread_id=settings.message_thread_id,
)
