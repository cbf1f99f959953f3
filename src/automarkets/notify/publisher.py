"""Event publishers. Failures are logged and never propagate into a cycle."""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog

log = structlog.get_logger(__name__)

MARKET_CREATED = "market:created"
MARKET_RESOLVED = "market:resolved"
MARKET_REFUNDED = "market:refunded"


class Publisher(Protocol):
    def publish(self, event_type: str, data: dict[str, Any]) -> None: ...


class LogPublisher:
    """Publishes to the structured log only."""

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        log.info("event_published", event_type=event_type, **data)


class WebhookPublisher:
    """POSTs {"type", "data"} to a webhook URL."""

    def __init__(self, url: str, timeout: float = 5.0, http_client: httpx.Client | None = None) -> None:
        self.url = url
        self._client = http_client or httpx.Client(timeout=timeout)

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        try:
            resp = self._client.post(self.url, json={"type": event_type, "data": data})
            resp.raise_for_status()
        except httpx.HTTPError as e:
            log.warning("event_publish_failed", event_type=event_type, url=self.url, error=str(e))
            return
        log.debug("event_published", event_type=event_type, url=self.url)

    def close(self) -> None:
        self._client.close()
