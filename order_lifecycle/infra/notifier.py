"""
Event notifier: queues domain events once the state change has committed.
"""
from __future__ import annotations

import logging

from django.db import transaction

from order_lifecycle.domain.events import DomainEvent
from order_lifecycle.infra.outbox import OutboxRepository

logger = logging.getLogger(__name__)


class EventNotifier:
    """Fire-and-forget publisher.

    Events are written to the outbox only after the surrounding transaction
    commits, so a rolled back operation publishes nothing and a failed
    publish never rolls back the operation.
    """

    def __init__(self, outbox_repo: OutboxRepository | None = None):
        self.outbox_repo = outbox_repo or OutboxRepository()

    def publish(self, event: DomainEvent) -> None:
        transaction.on_commit(lambda: self._write(event))

    def _write(self, event: DomainEvent) -> None:
        try:
            self.outbox_repo.add_event(event, "Order")
        except Exception as e:
            logger.error(
                "event_publish_failed",
                extra={
                    "event_type": event.event_type,
                    "order_id": str(event.aggregate_id),
                    "error": str(e),
                },
                exc_info=True,
            )
            return
        logger.info(
            "event_published",
            extra={"event_type": event.event_type, "order_id": str(event.aggregate_id)},
        )
