"""Webhook-backed sinks: POST device settings and status updates as JSON."""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from cellzone.areas.models import RingerMode, VolumeChannel

logger = logging.getLogger(__name__)


def post_webhook(url: str, payload: dict[str, Any], timeout: float = 10.0) -> bool:
    """POST a JSON payload. Failures are logged, never raised."""
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(url, json=payload)
            if response.is_success:
                logger.debug(
                    "Webhook delivered: %s → %s (HTTP %d)",
                    payload["event"],
                    url,
                    response.status_code,
                )
            else:
                logger.warning(
                    "Webhook failed: %s → %s (HTTP %d)",
                    payload["event"],
                    url,
                    response.status_code,
                )
            return response.is_success
    except Exception as e:
        logger.error("Webhook dispatch error: %s → %s: %s", payload["event"], url, e)
        return False


def _payload(event: str, **fields: Any) -> dict[str, Any]:
    return {"event": event, "timestamp": datetime.now(UTC).isoformat(), **fields}


class WebhookConfigurationSink:
    """Forwards each device setting to a webhook (e.g. a phone automation bridge)."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def set_volume(self, channel: VolumeChannel, level: int) -> None:
        post_webhook(
            self.url,
            _payload("volume", channel=str(channel), level=level),
            timeout=self.timeout,
        )

    def set_wifi_enabled(self, enabled: bool) -> None:
        post_webhook(self.url, _payload("wifi", enabled=enabled), timeout=self.timeout)

    def set_ringer_mode(self, mode: RingerMode) -> None:
        post_webhook(self.url, _payload("ringer_mode", mode=mode.name), timeout=self.timeout)


class WebhookStatusIndicator:
    """Publishes status lines to a webhook."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def show(self, title: str, subtitle: str) -> None:
        post_webhook(
            self.url,
            _payload("status", title=title, subtitle=subtitle),
            timeout=self.timeout,
        )
