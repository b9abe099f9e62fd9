from django.contrib import admin

from order_lifecycle.infra.models import (
    CatalogProductORM,
    CustomerConfirmationORM,
    LineItemORM,
    MaterialCostORM,
    OrderORM,
    PictureReplyORM,
    RefundRequestORM,
)
from order_lifecycle.infra.outbox import OutboxEvent


class LineItemInline(admin.TabularInline):
    model = LineItemORM
    extra = 0
    readonly_fields = ("item_id", "position", "product_id", "quantity", "customization", "pricing")
    can_delete = False


@admin.register(OrderORM)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "customer_id", "status", "total_amount", "payment_status", "refund_status", "created_at")
    list_filter = ("status", "payment_status", "refund_status", "created_at")
    search_fields = ("id", "customer_id")
    # Status changes go through the lifecycle services, not the admin form
    readonly_fields = ("status", "subtotal", "total_amount", "refunded_amount", "version")
    inlines = (LineItemInline,)


@admin.register(PictureReplyORM)
class PictureReplyAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "line_item_id", "sequence", "uploaded_at")
    search_fields = ("order__id", "line_item_id")


@admin.register(CustomerConfirmationORM)
class CustomerConfirmationAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "line_item_id", "confirmed", "sequence", "confirmed_at")
    list_filter = ("confirmed",)


@admin.register(RefundRequestORM)
class RefundRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "refund_type", "status", "amount", "reason", "requested_at")
    list_filter = ("refund_type", "status", "reason")


@admin.register(MaterialCostORM)
class MaterialCostAdmin(admin.ModelAdmin):
    list_display = ("name", "cost", "width", "length", "waste_factor", "is_active")
    list_editable = ("cost", "width", "length", "waste_factor", "is_active")


@admin.register(CatalogProductORM)
class CatalogProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "base_price", "is_active")
    search_fields = ("id", "name")


@admin.register(OutboxEvent)
class OutboxEventAdmin(admin.ModelAdmin):
    list_display = ("id", "aggregate_id", "event_type", "processed", "retry_count", "created_at")
    list_filter = ("processed", "event_type", "created_at")
    readonly_fields = (
        "id", "event_id", "aggregate_id", "aggregate_type", "event_type", "event_data",
        "processed", "processed_at", "retry_count", "last_error",
    )
