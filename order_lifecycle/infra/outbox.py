"""
Transactional outbox for domain events.
"""
from __future__ import annotations

import logging
from dataclasses import asdict
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from django.db import models
from django.db.models import F
from django.utils import timezone

from order_lifecycle.domain.events import DomainEvent
from order_lifecycle.infra.models import TimeStampedModel

logger = logging.getLogger(__name__)


class OutboxEvent(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    # Domain event id; consumers drop replays by it
    event_id = models.UUIDField(unique=True)
    aggregate_id = models.UUIDField()
    aggregate_type = models.CharField(max_length=50)
    event_type = models.CharField(max_length=100)
    event_data = models.JSONField()
    processed = models.BooleanField(default=False)
    processed_at = models.DateTimeField(null=True, blank=True)
    retry_count = models.IntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    class Meta:
        indexes = [
            models.Index(fields=("processed", "created_at")),
            models.Index(fields=("aggregate_id", "aggregate_type")),
        ]


class OutboxRepository:
    """Repository for outbox events."""

    def add_event(self, event: DomainEvent, aggregate_type: str = "Order") -> UUID:
        event_data = serialize_event(event)
        outbox_event, _ = OutboxEvent.objects.get_or_create(
            event_id=event.event_id,
            defaults={
                "aggregate_id": event.aggregate_id,
                "aggregate_type": aggregate_type,
                "event_type": event.event_type,
                "event_data": event_data,
            },
        )
        return outbox_event.id

    def get_unprocessed_events(self, limit: int = 100, max_retries: int | None = None) -> list[OutboxEvent]:
        queryset = OutboxEvent.objects.filter(processed=False)
        if max_retries is not None:
            queryset = queryset.filter(retry_count__lt=max_retries)
        return list(queryset.order_by("created_at")[:limit])

    def mark_processed(self, outbox_id: UUID) -> None:
        OutboxEvent.objects.filter(id=outbox_id).update(
            processed=True,
            processed_at=timezone.now(),
        )

    def increment_retry(self, outbox_id: UUID, error: str = "") -> None:
        OutboxEvent.objects.filter(id=outbox_id).update(
            retry_count=F("retry_count") + 1,
            last_error=error,
        )


def _json_value(value):
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


def serialize_event(event: DomainEvent) -> dict:
    """Flatten an event into a JSON-safe payload."""
    return {key: _json_value(value) for key, value in asdict(event).items()}
