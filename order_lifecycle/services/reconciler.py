"""
Picture reply reconciler: matches proofs and customer decisions to line items.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from order_lifecycle.domain.errors import StateTransitionError, ValidationError
from order_lifecycle.domain.events import ConfirmationSubmitted, PictureReplyReceived
from order_lifecycle.domain.order import CustomerConfirmation, OrderStatus, PictureReply
from order_lifecycle.domain.state_machine import OrderStateMachine
from order_lifecycle.services.lifecycle import OrderServiceBase

logger = logging.getLogger(__name__)

REPLY_STATES = (
    OrderStatus.PENDING_REVIEW,
    OrderStatus.PICTURE_REPLY_PENDING,
    OrderStatus.PICTURE_REPLY_REJECTED,
)


def _item_id(data: dict) -> str:
    item_id = data.get("lineItemId") or data.get("line_item_id")
    if not item_id:
        raise ValidationError("lineItemId is required")
    return str(item_id)


class PictureReplyReconciler(OrderServiceBase):
    """Drives the proof exchange between admin and customer.

    Replies and confirmations reference line items by their exact id; an
    unknown id is a NotFoundError.
    """

    @transaction.atomic
    def submit_replies(self, order_id: UUID, replies: list[dict]):
        order = self.order_repo.load(order_id)
        if order.status not in REPLY_STATES:
            raise StateTransitionError(
                order.status,
                OrderStatus.PICTURE_REPLY_PENDING,
                "picture replies are accepted only in pending-review, picture-reply-pending or picture-reply-rejected",
            )

        version = order.version
        now = timezone.now()
        attached = order.attach_replies(
            [
                PictureReply(
                    line_item_id=_item_id(data),
                    image_ref=data.get("imageRef") or data.get("image_ref") or "",
                    notes=data.get("notes") or "",
                )
                for data in replies
            ],
            at=now,
        )

        events: list = [PictureReplyReceived(
            aggregate_id=order.id,
            line_item_ids=[r.line_item_id for r in attached],
            reply_ids=[str(r.id) for r in attached],
        )]
        # A re-upload covering only some rejected items is stored and waits
        # for the rest. Proofs added in picture-reply-pending keep the status.
        if OrderStateMachine.can_transition(order, OrderStatus.PICTURE_REPLY_PENDING):
            self._transition(order, OrderStatus.PICTURE_REPLY_PENDING, events)

        logger.info(
            "picture_replies_submitted",
            extra={"order_id": str(order.id), "replies_count": len(attached), "status": order.status.value},
        )
        return self._save(order, version, events)

    @transaction.atomic
    def submit_confirmations(self, order_id: UUID, confirmations: list[dict]):
        order = self.order_repo.load(order_id)
        if order.status != OrderStatus.PICTURE_REPLY_PENDING:
            raise StateTransitionError(
                order.status,
                OrderStatus.PICTURE_REPLY_APPROVED,
                "confirmations are accepted only in picture-reply-pending",
            )

        version = order.version
        now = timezone.now()
        recorded = order.record_confirmations(
            [
                CustomerConfirmation(
                    line_item_id=_item_id(data),
                    confirmed=bool(data.get("confirmed")),
                    notes=data.get("notes") or "",
                )
                for data in confirmations
            ],
            at=now,
        )

        events: list = [ConfirmationSubmitted(
            aggregate_id=order.id,
            approved_item_ids=[c.line_item_id for c in recorded if c.confirmed],
            rejected_item_ids=[c.line_item_id for c in recorded if not c.confirmed],
            awaiting_item_ids=order.awaiting_decision_item_ids,
        )]

        if order.rejected_item_ids:
            self._transition(order, OrderStatus.PICTURE_REPLY_REJECTED, events)
        elif order.all_proofs_approved:
            self._transition(order, OrderStatus.PICTURE_REPLY_APPROVED, events)
            self._transition(order, OrderStatus.PENDING_PAYMENT, events)

        logger.info(
            "confirmations_submitted",
            extra={
                "order_id": str(order.id),
                "confirmations_count": len(recorded),
                "status": order.status.value,
            },
        )
        return self._save(order, version, events)
