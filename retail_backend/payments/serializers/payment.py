# payments/serializers/payment.py

from decimal import Decimal

from rest_framework import serializers

from payments.models import Payment, PaymentAllocation, PaymentMethod


# ======================================================
# READ SERIALIZERS
# ======================================================


class PaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = [
            "code",
            "name",
            "description",
            "is_active",
            "requires_reference",
            "requires_approval",
            "is_credit",
        ]
        read_only_fields = fields


class PaymentAllocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentAllocation
        fields = [
            "id",
            "order_id",
            "order_type",
            "order_number",
            "allocated_amount",
            "order_total",
            "previously_paid",
            "remaining_after_payment",
            "allocated_at",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    """
    Payment with its allocation set (read-only).
    """

    customer_name = serializers.CharField(source="customer.name", read_only=True)
    payment_method_name = serializers.CharField(
        source="payment_method.name", read_only=True
    )
    original_payment_number = serializers.CharField(
        source="original_payment.payment_number", read_only=True, default=None
    )
    allocations = PaymentAllocationSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "payment_number",
            "customer",
            "customer_name",
            "amount",
            "payment_method",
            "payment_method_name",
            "payment_date",
            "status",
            "allocated_amount",
            "unallocated_amount",
            "reference",
            "notes",
            "original_payment",
            "original_payment_number",
            "source_return",
            "approved_by",
            "approved_at",
            "created_by",
            "created_at",
            "updated_at",
            "allocations",
        ]
        read_only_fields = fields


# ======================================================
# COMMAND SERIALIZERS (input only, no DB access)
# ======================================================


class AllocationInputSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    order_type = serializers.ChoiceField(choices=PaymentAllocation.ORDER_TYPE_CHOICES)
    allocated_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    order_number = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=64
    )
    order_total = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True, default=None
    )
    previously_paid = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, default="0.00"
    )


class PaymentCreateSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_method = serializers.CharField(max_length=32)
    payment_date = serializers.DateField(required=False)
    status = serializers.ChoiceField(
        choices=[Payment.STATUS_PENDING, Payment.STATUS_COMPLETED],
        required=False,
    )
    reference = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=128
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    allocations = AllocationInputSerializer(many=True, required=False, default=list)


class PaymentUpdateSerializer(serializers.Serializer):
    """
    Partial update. Omitting `allocations` keeps the current set;
    sending `allocations: []` clears it.
    """

    customer_id = serializers.UUIDField(required=False)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    payment_method = serializers.CharField(max_length=32, required=False)
    payment_date = serializers.DateField(required=False)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=128)
    notes = serializers.CharField(required=False, allow_blank=True)
    allocations = AllocationInputSerializer(many=True, required=False, allow_empty=True)


class PaymentRefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.01")
    )
    reason = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=255
    )


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Payment.STATUS_FAILED, Payment.STATUS_CANCELLED]
    )


class PaymentStatsSerializer(serializers.Serializer):
    total_payments = serializers.IntegerField()
    completed_payments = serializers.IntegerField()
    pending_payments = serializers.IntegerField()
    failed_payments = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    average_amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    total_unallocated = serializers.DecimalField(max_digits=16, decimal_places=2)


class AllocationStatsSerializer(serializers.Serializer):
    total_allocations = serializers.IntegerField()
    total_allocated = serializers.DecimalField(max_digits=16, decimal_places=2)
    average_allocation = serializers.DecimalField(max_digits=16, decimal_places=2)
    payments_with_allocations = serializers.IntegerField()
    orders_with_payments = serializers.IntegerField()


class OrderAllocationSerializer(PaymentAllocationSerializer):
    """
    Allocation seen from the order side, with the paying payment's identity.
    """

    payment_number = serializers.CharField(source="payment.payment_number", read_only=True)
    payment_status = serializers.CharField(source="payment.status", read_only=True)
    customer = serializers.UUIDField(source="payment.customer_id", read_only=True)

    class Meta(PaymentAllocationSerializer.Meta):
        fields = PaymentAllocationSerializer.Meta.fields + [
            "payment",
            "payment_number",
            "payment_status",
            "customer",
        ]
        read_only_fields = fields


# ======================================================
# QUERY SERIALIZERS (list / stats filters)
# ======================================================


class DateRangeQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError(
                {"date_to": "date_to must be on or after date_from."}
            )
        return attrs


class PaymentListQuerySerializer(DateRangeQuerySerializer):
    customer_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=Payment.STATUS_CHOICES, required=False)
    payment_method = serializers.CharField(required=False, allow_blank=True, max_length=32)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)


class OrderAllocationQuerySerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    order_type = serializers.ChoiceField(
        choices=PaymentAllocation.ORDER_TYPE_CHOICES, required=False
    )
