# payments/admin.py

from django.contrib import admin

from payments.models import OrderPaymentEvent, Payment, PaymentAllocation, PaymentMethod


# ======================================================
# PAYMENT METHOD ADMIN
# ======================================================


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "is_active",
        "requires_reference",
        "requires_approval",
        "is_credit",
        "is_internal",
    )
    list_filter = ("is_active", "is_credit")
    search_fields = ("code", "name")


# ======================================================
# PAYMENT ADMIN (READ-ONLY MONEY FIELDS)
# ======================================================


class PaymentAllocationInline(admin.TabularInline):
    model = PaymentAllocation
    extra = 0
    can_delete = False
    readonly_fields = (
        "order_type",
        "order_id",
        "order_number",
        "allocated_amount",
        "order_total",
        "previously_paid",
        "remaining_after_payment",
        "allocated_at",
    )


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "payment_number",
        "customer",
        "amount",
        "payment_method",
        "status",
        "allocated_amount",
        "unallocated_amount",
        "payment_date",
    )
    list_filter = ("status", "payment_method", "payment_date")
    search_fields = ("payment_number", "reference", "customer__name")
    readonly_fields = (
        "payment_number",
        "amount",
        "allocated_amount",
        "unallocated_amount",
        "original_payment",
        "source_return",
        "created_at",
        "updated_at",
    )
    inlines = [PaymentAllocationInline]


@admin.register(OrderPaymentEvent)
class OrderPaymentEventAdmin(admin.ModelAdmin):
    list_display = ("order_type", "order_id", "allocated_amount", "status", "attempts", "created_at")
    list_filter = ("status", "order_type")
    readonly_fields = ("payment", "order_id", "order_type", "order_number", "allocated_amount", "payment_status")
