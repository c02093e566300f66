"""HTTP webhook backend for chat notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from commissioner.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryOutcome:
    ok: bool
    reason: str | None = None
    status_code: int | None = None

    @classmethod
    def success(cls, status_code: int | None = None) -> DeliveryOutcome:
        return cls(ok=True, status_code=status_code)

    @classmethod
    def failure(cls, reason: str, status_code: int | None = None) -> DeliveryOutcome:
        return cls(ok=False, reason=reason, status_code=status_code)


class WebhookBackend:
    """POST JSON payloads to a webhook URL; never raises, never retries."""

    def __init__(self, client: httpx.Client | None = None, timeout: float | None = None) -> None:
        self.timeout = timeout if timeout is not None else get_settings().webhook_timeout_seconds
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self) -> None:
        """Close a client this backend created; an injected client is left open."""

        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def post(self, url: str, payload: dict[str, Any]) -> DeliveryOutcome:
        if not url:
            return DeliveryOutcome.failure("No webhook URL configured.")
        try:
            response = self.client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Webhook transport error: %s", exc)
            return DeliveryOutcome.failure(f"Transport error: {exc}")
        if not response.is_success:
            logger.error("Webhook rejected payload: %s", response.status_code)
            return DeliveryOutcome.failure(
                f"Webhook responded with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return DeliveryOutcome.success(response.status_code)
