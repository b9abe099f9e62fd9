"""
HTTP client for the external real-time channel.
"""
from __future__ import annotations

import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class RealtimeChannelError(Exception):
    """Channel rejected or failed to accept an event."""


class RealtimeChannelClient:
    """Posts event payloads to the channel's ingest endpoint.

    The channel fans events out to subscribed admin and customer sessions.
    Each payload carries ``event_id`` so the channel can drop replays.
    """

    def __init__(self, url: str | None = None, timeout: float | None = None,
                 session: requests.Session | None = None):
        self.url = url if url is not None else settings.REALTIME_CHANNEL_URL
        self.timeout = timeout if timeout is not None else settings.REALTIME_CHANNEL_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
        })

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def send(self, event_type: str, payload: dict) -> None:
        if not self.enabled:
            logger.debug("realtime_channel_disabled", extra={"event_type": event_type})
            return
        try:
            response = self.session.post(
                self.url,
                json={"event": event_type, "data": payload},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RealtimeChannelError(f"Failed to reach real-time channel: {e}") from e
        if response.status_code >= 400:
            raise RealtimeChannelError(
                f"Real-time channel answered {response.status_code}: {response.text[:200]}"
            )
