"""
GraphQL schema definition using Ariadne.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from ariadne import (
    MutationType,
    ObjectType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)
from graphql.utilities import value_from_ast_untyped

from order_lifecycle.domain.errors import ValidationError
from order_lifecycle.domain.materials import calculate_material_costs
from order_lifecycle.domain.order import OrderStatus
from order_lifecycle.domain.refund import RefundReason, RefundType
from order_lifecycle.domain.state_machine import OrderStateMachine
from order_lifecycle.services.lifecycle import OrderLifecycleService
from order_lifecycle.services.reconciler import PictureReplyReconciler
from order_lifecycle.services.refunds import RefundService

SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = "\n".join([
    load_schema_from_path(SCHEMAS_DIR / "common"),
    load_schema_from_path(SCHEMAS_DIR / "query"),
    load_schema_from_path(SCHEMAS_DIR / "mutation"),
])

query = QueryType()
mutation = MutationType()
order_type = ObjectType("Order")
line_item_type = ObjectType("LineItem")
refund_request_type = ObjectType("RefundRequest")
refund_quote_type = ObjectType("RefundQuote")


def _status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown order status: {value}")


def _refund_type(value: str) -> RefundType:
    try:
        return RefundType(value)
    except ValueError:
        raise ValidationError(f"Unknown refund type: {value}")


def _refund_reason(value: str | None) -> RefundReason:
    try:
        return RefundReason(value or RefundReason.OTHER.value)
    except ValueError:
        raise ValidationError(f"Unknown refund reason: {value}")


# Queries

@query.field("order")
def resolve_order(_, info, id):
    return OrderLifecycleService().get_order(id)


@query.field("orders")
def resolve_orders(_, info, status=None, customer_id=None, limit=50, offset=0):
    return OrderLifecycleService().list_orders(
        status=_status(status) if status else None,
        customer_id=customer_id,
        limit=min(limit, 200),
        offset=offset,
    )


@query.field("refundQuote")
def resolve_refund_quote(_, info, order_id, refund_type, item_ids=None):
    return RefundService().quote_refund(order_id, _refund_type(refund_type), item_ids)


@query.field("materialCosts")
def resolve_material_costs(_, info, width, height):
    service = OrderLifecycleService()
    return calculate_material_costs(width, height, service.material_repo.current())


# Mutations

@mutation.field("submitOrder")
def resolve_submit_order(_, info, input: dict):
    return OrderLifecycleService().submit_order(
        customer_id=input.get("customer_id"),
        items=input["items"],
        shipping=input.get("shipping") or Decimal("0"),
        tax=input.get("tax") or Decimal("0"),
        customer_notes=input.get("customer_notes") or "",
    )


@mutation.field("resubmitOrder")
def resolve_resubmit_order(_, info, order_id, customer_notes=None):
    return OrderLifecycleService().resubmit(order_id, customer_notes)


@mutation.field("rejectSubmission")
def resolve_reject_submission(_, info, order_id, admin_notes=None):
    return OrderLifecycleService().reject_submission(order_id, admin_notes or "")


@mutation.field("updateOrderStatus")
def resolve_update_order_status(_, info, order_id, status, admin_notes=None):
    return OrderLifecycleService().update_status(order_id, _status(status), admin_notes)


@mutation.field("submitPictureReplies")
def resolve_submit_picture_replies(_, info, order_id, replies):
    return PictureReplyReconciler().submit_replies(order_id, replies)


@mutation.field("submitConfirmations")
def resolve_submit_confirmations(_, info, order_id, confirmations):
    return PictureReplyReconciler().submit_confirmations(order_id, confirmations)


@mutation.field("confirmPayment")
def resolve_confirm_payment(_, info, order_id, reference=None):
    return OrderLifecycleService().handle_payment_confirmed(order_id, reference or "")


@mutation.field("reportPaymentFailure")
def resolve_report_payment_failure(_, info, order_id, reason):
    OrderLifecycleService().handle_payment_failed(order_id, reason)
    return False


@mutation.field("requestRefund")
def resolve_request_refund(_, info, input: dict):
    return RefundService().request_refund(
        order_id=input["order_id"],
        refund_type=_refund_type(input["refund_type"]),
        item_ids=input.get("item_ids"),
        reason=_refund_reason(input.get("reason")),
        description=input.get("description") or "",
    )


@mutation.field("approveRefund")
def resolve_approve_refund(_, info, order_id, refund_id, admin_notes=None):
    return RefundService().approve_refund(order_id, refund_id, admin_notes or "")


@mutation.field("rejectRefund")
def resolve_reject_refund(_, info, order_id, refund_id, reason, admin_notes=None):
    return RefundService().reject_refund(order_id, refund_id, reason, admin_notes or "")


@mutation.field("cancelRefund")
def resolve_cancel_refund(_, info, order_id, refund_id):
    return RefundService().cancel_refund(order_id, refund_id)


# Object fields

@order_type.field("status")
def resolve_order_status(order, info):
    return order.status.value


@order_type.field("paymentStatus")
def resolve_payment_status(order, info):
    return order.payment_status.value


@order_type.field("refundStatus")
def resolve_refund_status(order, info):
    return order.refund_status.value


@order_type.field("awaitingConfirmationItemIds")
def resolve_awaiting_confirmation(order, info):
    return order.awaiting_decision_item_ids


@order_type.field("allowedTransitions")
def resolve_allowed_transitions(order, info):
    return sorted(
        target.value
        for target in OrderStateMachine.allowed_targets(order.status)
        if OrderStateMachine.can_transition(order, target)
    )


@line_item_type.field("customization")
def resolve_customization(item, info):
    return item.customization.to_dict() if item.customization else None


@refund_request_type.field("status")
def resolve_refund_request_status(request, info):
    return request.status.value


@refund_request_type.field("refundType")
@refund_quote_type.field("refundType")
def resolve_refund_type(obj, info):
    return obj.refund_type.value


@refund_request_type.field("reason")
def resolve_refund_reason(request, info):
    return request.reason.value


# Custom scalars

decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")
datetime_scalar = ScalarType("DateTime")
json_scalar = ScalarType("JSON")


@decimal_scalar.serializer
def serialize_decimal(value):
    return str(value)


@decimal_scalar.value_parser
def parse_decimal_value(value):
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid decimal: {value!r}")


@uuid_scalar.serializer
def serialize_uuid(value):
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@datetime_scalar.serializer
def serialize_datetime(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@datetime_scalar.value_parser
def parse_datetime_value(value):
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


@json_scalar.serializer
def serialize_json(value):
    return value


@json_scalar.value_parser
def parse_json_value(value):
    return value


@json_scalar.literal_parser
def parse_json_literal(ast, variable_values=None):
    return value_from_ast_untyped(ast, variable_values)


schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    order_type,
    line_item_type,
    refund_request_type,
    refund_quote_type,
    datetime_scalar,
    decimal_scalar,
    uuid_scalar,
    json_scalar,
    convert_names_case=True,
)
