# sales/admin.py

from django.contrib import admin

from sales.models import Sale, SaleItem


# ======================================================
# SALE ADMIN
# ======================================================


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    readonly_fields = ("line_total", "created_at")


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "sale_number",
        "customer",
        "status",
        "total_amount",
        "created_at",
    )
    readonly_fields = ("sale_number", "created_at", "completed_at")
    search_fields = ("sale_number",)
    list_filter = ("status", "created_at")
    inlines = [SaleItemInline]
