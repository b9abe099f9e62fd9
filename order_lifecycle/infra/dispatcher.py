"""
Outbox dispatcher: forwards queued events to the real-time channel.
"""
from __future__ import annotations

import logging

from django.conf import settings

from order_lifecycle.infra.outbox import OutboxEvent, OutboxRepository
from order_lifecycle.infra.realtime import RealtimeChannelClient, RealtimeChannelError
from order_lifecycle.infra.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class OutboxDispatcher:
    """Drains unprocessed outbox rows, oldest first.

    Delivery is at-least-once: a row is marked processed only after the
    channel accepted it. Rows that keep failing stop being picked up once
    their retry count reaches ``OUTBOX_MAX_RETRIES``.
    """

    def __init__(
        self,
        outbox_repo: OutboxRepository | None = None,
        client: RealtimeChannelClient | None = None,
        max_retries: int | None = None,
        sleep=None,
    ):
        self.outbox_repo = outbox_repo or OutboxRepository()
        self.client = client or RealtimeChannelClient()
        self.max_retries = max_retries if max_retries is not None else settings.OUTBOX_MAX_RETRIES
        retry_kwargs = {"sleep": sleep} if sleep is not None else {}
        self._send = retry_with_backoff(
            max_retries=2,
            initial_delay=0.5,
            max_delay=5.0,
            exceptions=(RealtimeChannelError,),
            **retry_kwargs,
        )(self.client.send)

    def process_outbox_events(self, limit: int = 100) -> int:
        """Send pending events; returns how many were delivered."""
        events = self.outbox_repo.get_unprocessed_events(limit=limit, max_retries=self.max_retries)
        processed_count = 0

        for event in events:
            try:
                self._dispatch(event)
            except RealtimeChannelError as e:
                self.outbox_repo.increment_retry(event.id, error=str(e))
                logger.error(
                    "outbox_dispatch_failed",
                    extra={
                        "event_id": str(event.event_id),
                        "event_type": event.event_type,
                        "retry_count": event.retry_count + 1,
                        "error": str(e),
                    },
                )
                continue
            self.outbox_repo.mark_processed(event.id)
            processed_count += 1

        return processed_count

    def _dispatch(self, event: OutboxEvent) -> None:
        self._send(event.event_type, event.event_data)
        logger.info(
            "outbox_event_dispatched",
            extra={"event_id": str(event.event_id), "event_type": event.event_type},
        )
