"""Notification publisher contract and implementations.

Publishing is best-effort and fire-and-forget: implementations log delivery
failures and never raise them to the caller.
"""

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class NotificationPublisher(Protocol):
    """Best-effort message delivery to a named topic."""

    async def publish(self, topic: str, payload: dict[str, Any]) -> None: ...

    async def aclose(self) -> None: ...


class HttpNotificationPublisher:
    """Publishes messages as JSON POSTs to a webhook endpoint.

    The request body is ``{"topic": ..., "message": payload}``. The
    downstream consumer (e.g. an email dispatcher) owns delivery.

    Args:
        endpoint: URL that accepts the POST.
        timeout: Per-request timeout in seconds.
        client: Optional pre-built client (tests); owned by this publisher.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """POST the message; log and swallow delivery failures."""
        try:
            resp = await self._client.post(
                self._endpoint,
                json={"topic": topic, "message": payload},
            )
            resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning(
                "Failed to publish notification", extra={"topic": topic}, exc_info=True
            )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


class LoggingNotificationPublisher:
    """Publisher used when no endpoint is configured (local development).

    Records the topic and the non-sensitive payload keys only.
    """

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        logger.info(
            "Notification not delivered (no endpoint configured)",
            extra={"topic": topic, "payload_keys": sorted(payload)},
        )

    async def aclose(self) -> None:
        return None
