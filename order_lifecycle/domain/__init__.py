from order_lifecycle.domain.order import CustomerConfirmation, LineItem, Order, OrderStatus, PictureReply
from order_lifecycle.domain.pricing import PricingBreakdown, price_line_item
from order_lifecycle.domain.refund import RefundRequest, RefundType, calculate_refund
from order_lifecycle.domain.state_machine import OrderStateMachine

__all__ = [
    "CustomerConfirmation",
    "LineItem",
    "Order",
    "OrderStateMachine",
    "OrderStatus",
    "PictureReply",
    "PricingBreakdown",
    "RefundRequest",
    "RefundType",
    "calculate_refund",
    "price_line_item",
]
