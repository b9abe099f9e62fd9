"""
Domain events published to the real-time channel.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


class EventVersion(str, Enum):
    """Event version for upcasting."""
    V1 = "1.0"


class EventType(str, Enum):
    ORDER_STATUS_UPDATED = "order_status_updated"
    PICTURE_REPLY_RECEIVED = "picture_reply_received"
    CONFIRMATION_SUBMITTED = "confirmation_submitted"
    REFUND_REQUESTED = "refund_requested"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class DomainEvent:
    """Base domain event."""
    aggregate_id: UUID
    # event_type, event_id, version and occurred_at are set in subclasses to
    # avoid dataclass field ordering issues


@dataclass
class OrderStatusUpdated(DomainEvent):
    previous_status: str
    status: str
    event_type: str = EventType.ORDER_STATUS_UPDATED.value
    event_id: UUID = field(default_factory=uuid4)
    version: EventVersion = EventVersion.V1
    occurred_at: str = field(default_factory=_now)


@dataclass
class PictureReplyReceived(DomainEvent):
    """Admin attached new proofs."""
    line_item_ids: list[str]
    reply_ids: list[str]
    event_type: str = EventType.PICTURE_REPLY_RECEIVED.value
    event_id: UUID = field(default_factory=uuid4)
    version: EventVersion = EventVersion.V1
    occurred_at: str = field(default_factory=_now)


@dataclass
class ConfirmationSubmitted(DomainEvent):
    """Customer decided on one or more proofs."""
    approved_item_ids: list[str]
    rejected_item_ids: list[str]
    awaiting_item_ids: list[str]
    event_type: str = EventType.CONFIRMATION_SUBMITTED.value
    event_id: UUID = field(default_factory=uuid4)
    version: EventVersion = EventVersion.V1
    occurred_at: str = field(default_factory=_now)


@dataclass
class RefundRequested(DomainEvent):
    refund_id: UUID
    refund_type: str
    amount: Decimal
    item_ids: list[str]
    event_type: str = EventType.REFUND_REQUESTED.value
    event_id: UUID = field(default_factory=uuid4)
    version: EventVersion = EventVersion.V1
    occurred_at: str = field(default_factory=_now)
