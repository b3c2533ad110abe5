# customers/admin.py

from django.contrib import admin

from customers.models import Customer, CustomerCreditMovement


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "status", "credit_limit", "used_credit")
    list_filter = ("status",)
    search_fields = ("code", "name", "email")


@admin.register(CustomerCreditMovement)
class CustomerCreditMovementAdmin(admin.ModelAdmin):
    list_display = (
        "customer",
        "movement_type",
        "amount",
        "previous_used_credit",
        "new_used_credit",
        "created_at",
    )
    readonly_fields = list_display
