# returns/serializers/sale_return.py

from decimal import Decimal

from rest_framework import serializers

from returns.models import Return, ReturnItem


# ======================================================
# READ SERIALIZERS
# ======================================================


class ReturnItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReturnItem
        fields = [
            "id",
            "sale_item",
            "product_id",
            "product_name",
            "product_sku",
            "quantity_returned",
            "original_quantity",
            "unit_price",
            "line_total",
            "condition",
            "notes",
        ]
        read_only_fields = fields


class ReturnSerializer(serializers.ModelSerializer):
    """
    Return with its lines and the refund payment(s) it produced.
    """

    sale_number = serializers.CharField(source="sale.sale_number", read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    items = ReturnItemSerializer(many=True, read_only=True)
    refund_payment_numbers = serializers.SerializerMethodField()

    class Meta:
        model = Return
        fields = [
            "id",
            "return_number",
            "sale",
            "sale_number",
            "customer",
            "customer_name",
            "return_date",
            "return_type",
            "reason",
            "total_amount",
            "refund_amount",
            "status",
            "refund_status",
            "processed_by",
            "processed_at",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "refund_payment_numbers",
        ]
        read_only_fields = fields

    def get_refund_payment_numbers(self, obj):
        return [p.payment_number for p in obj.refund_payments.all()]


# ======================================================
# COMMAND SERIALIZERS
# ======================================================


class ReturnItemInputSerializer(serializers.Serializer):
    sale_item_id = serializers.UUIDField()
    quantity_returned = serializers.IntegerField(min_value=1)
    condition = serializers.ChoiceField(
        choices=ReturnItem.CONDITION_CHOICES,
        required=False,
        default=ReturnItem.CONDITION_GOOD,
    )
    notes = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=255
    )


class ReturnCreateSerializer(serializers.Serializer):
    sale_id = serializers.UUIDField()
    return_date = serializers.DateField(required=False)
    return_type = serializers.ChoiceField(choices=Return.TYPE_CHOICES, required=False)
    reason = serializers.ChoiceField(choices=Return.REASON_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = ReturnItemInputSerializer(many=True, allow_empty=False)


class ReturnUpdateSerializer(serializers.Serializer):
    return_date = serializers.DateField(required=False)
    return_type = serializers.ChoiceField(choices=Return.TYPE_CHOICES, required=False)
    reason = serializers.ChoiceField(choices=Return.REASON_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = ReturnItemInputSerializer(many=True, required=False, allow_empty=False)


class ReturnProcessSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Return.STATUS_APPROVED, Return.STATUS_REJECTED]
    )
    refund_amount = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        allow_null=True,
        default=None,
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class ReturnStatsSerializer(serializers.Serializer):
    total_returns = serializers.IntegerField()
    total_return_amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    total_refund_amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    completed_returns = serializers.IntegerField()
    pending_returns = serializers.IntegerField()
    rejected_returns = serializers.IntegerField()
    full_returns = serializers.IntegerField()
    partial_returns = serializers.IntegerField()


# ======================================================
# QUERY SERIALIZERS (list / stats filters)
# ======================================================


class ReturnListQuerySerializer(serializers.Serializer):
    sale_id = serializers.UUIDField(required=False)
    customer_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=Return.STATUS_CHOICES, required=False)
    refund_status = serializers.ChoiceField(
        choices=Return.REFUND_STATUS_CHOICES, required=False
    )
    return_type = serializers.ChoiceField(choices=Return.TYPE_CHOICES, required=False)
    reason = serializers.ChoiceField(choices=Return.REASON_CHOICES, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError(
                {"date_to": "date_to must be on or after date_from."}
            )
        return attrs
