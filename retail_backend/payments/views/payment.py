# payments/views/payment.py

"""
PAYMENT API (STAFF)

Thin layer over the payment ledger:
- input shape validated by command serializers (DRF-native 400s)
- list / stats query params validated by query serializers (same 400s)
- ledger errors translated to {"error": {"code", "message"}}
- writes that touch allocations go through the reconciliation orchestrator
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.api import ledger_error_response
from core.exceptions import LedgerError
from payments.serializers import (
    AllocationStatsSerializer,
    DateRangeQuerySerializer,
    OrderAllocationQuerySerializer,
    OrderAllocationSerializer,
    PaymentCreateSerializer,
    PaymentListQuerySerializer,
    PaymentMethodSerializer,
    PaymentRefundSerializer,
    PaymentSerializer,
    PaymentStatsSerializer,
    PaymentStatusSerializer,
    PaymentUpdateSerializer,
)
from payments.services import method_registry, payment_service
from reconciliation.services import orchestrator


def _filters_from_query(params, serializer_class=PaymentListQuerySerializer) -> dict:
    qs = serializer_class(data=params)
    qs.is_valid(raise_exception=True)
    return {k: v for k, v in qs.validated_data.items() if v not in (None, "")}


# ======================================================
# PAYMENT METHODS (READ-ONLY)
# ======================================================


class PaymentMethodListView(generics.ListAPIView):
    serializer_class = PaymentMethodSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        return method_registry.get_active_methods()


# ======================================================
# PAYMENTS
# ======================================================


class PaymentViewSet(viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return payment_service.list_payments(
            filters=_filters_from_query(self.request.query_params)
        )

    # --------------------------------------------------
    # READ
    # --------------------------------------------------

    def list(self, request):
        qs = self.get_queryset()
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(PaymentSerializer(page, many=True).data)
        return Response(PaymentSerializer(qs, many=True).data)

    def retrieve(self, request, pk=None):
        try:
            payment = payment_service.get_payment_by_id(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(PaymentSerializer(payment).data)

    @extend_schema(responses={200: PaymentStatsSerializer})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        data = payment_service.get_payment_stats(
            filters=_filters_from_query(request.query_params)
        )
        return Response(PaymentStatsSerializer(data).data)

    # --------------------------------------------------
    # ORDER-SIDE READS
    # --------------------------------------------------

    @extend_schema(
        parameters=[
            OpenApiParameter("order_id", str, required=True),
            OpenApiParameter("order_type", str, required=False),
        ],
        responses={200: OrderAllocationSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="order-allocations")
    def order_allocations(self, request):
        qs = OrderAllocationQuerySerializer(data=request.query_params)
        qs.is_valid(raise_exception=True)

        order_id = qs.validated_data["order_id"]
        order_type = qs.validated_data.get("order_type")

        allocations = payment_service.allocations_for_order(
            order_id=order_id, order_type=order_type
        )
        total = payment_service.total_allocated_for_order(
            order_id=order_id, order_type=order_type
        )

        return Response(
            {
                "order_id": str(order_id),
                "order_type": order_type,
                "total_allocated": str(total),
                "allocations": OrderAllocationSerializer(allocations, many=True).data,
            }
        )

    @extend_schema(responses={200: AllocationStatsSerializer})
    @action(detail=False, methods=["get"], url_path="allocation-stats")
    def allocation_stats(self, request):
        data = payment_service.get_allocation_stats(
            filters=_filters_from_query(request.query_params, DateRangeQuerySerializer)
        )
        return Response(AllocationStatsSerializer(data).data)

    # --------------------------------------------------
    # WRITE
    # --------------------------------------------------

    @extend_schema(request=PaymentCreateSerializer, responses={201: PaymentSerializer})
    def create(self, request):
        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        data = dict(ser.validated_data)
        allocations = data.pop("allocations", [])

        try:
            payment = orchestrator.create_payment(
                payment_data=data,
                allocations=allocations,
                user=request.user,
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=PaymentUpdateSerializer, responses={200: PaymentSerializer})
    def partial_update(self, request, pk=None):
        ser = PaymentUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patch = dict(ser.validated_data)
        allocations = patch.pop("allocations", None)

        try:
            payment = orchestrator.update_payment(
                payment_id=pk,
                patch=patch,
                allocations=allocations,
                user=request.user,
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(PaymentSerializer(payment).data)

    def destroy(self, request, pk=None):
        try:
            payment_service.delete_payment(payment_id=pk)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # --------------------------------------------------
    # REFUND / APPROVAL / STATUS
    # --------------------------------------------------

    @extend_schema(request=PaymentRefundSerializer, responses={201: PaymentSerializer})
    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        ser = PaymentRefundSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            refund = orchestrator.refund_payment(
                payment_id=pk,
                amount=ser.validated_data["amount"],
                reason=ser.validated_data.get("reason", ""),
                user=request.user,
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(PaymentSerializer(refund).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: PaymentSerializer})
    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        try:
            payment = payment_service.approve_payment(
                payment_id=pk, approved_by=request.user
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(PaymentSerializer(payment).data)

    @extend_schema(request=PaymentStatusSerializer, responses={200: PaymentSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        ser = PaymentStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            payment = payment_service.set_payment_status(
                payment_id=pk, status=ser.validated_data["status"]
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(PaymentSerializer(payment).data)
