# returns/admin.py

from django.contrib import admin

from returns.models import Return, ReturnItem


class ReturnItemInline(admin.TabularInline):
    model = ReturnItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "sale_item",
        "product_name",
        "quantity_returned",
        "original_quantity",
        "unit_price",
        "line_total",
        "condition",
    )


@admin.register(Return)
class ReturnAdmin(admin.ModelAdmin):
    list_display = (
        "return_number",
        "sale",
        "customer",
        "status",
        "refund_status",
        "total_amount",
        "refund_amount",
        "return_date",
    )
    list_filter = ("status", "refund_status", "return_type", "reason")
    search_fields = ("return_number", "sale__sale_number", "customer__name")
    readonly_fields = (
        "return_number",
        "total_amount",
        "refund_amount",
        "status",
        "refund_status",
        "processed_by",
        "processed_at",
        "created_at",
        "updated_at",
    )
    inlines = [ReturnItemInline]
