# returns/views/sale_return.py

"""
RETURN API (STAFF)

- create / process go through the reconciliation orchestrator
- reads and header edits go straight to the return ledger
- sale state endpoints expose the read-only reconstructor
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.api import ledger_error_response
from core.exceptions import LedgerError
from reconciliation.services import orchestrator
from returns.serializers import (
    ReturnCreateSerializer,
    ReturnListQuerySerializer,
    ReturnProcessSerializer,
    ReturnSerializer,
    ReturnStatsSerializer,
    ReturnUpdateSerializer,
)
from returns.services import return_service, sale_state


def _filters_from_query(params) -> dict:
    qs = ReturnListQuerySerializer(data=params)
    qs.is_valid(raise_exception=True)
    return {k: v for k, v in qs.validated_data.items() if v not in (None, "")}


# ======================================================
# RETURNS
# ======================================================


class ReturnViewSet(viewsets.GenericViewSet):
    serializer_class = ReturnSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return return_service.list_returns(
            filters=_filters_from_query(self.request.query_params)
        )

    def list(self, request):
        qs = self.get_queryset()
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(ReturnSerializer(page, many=True).data)
        return Response(ReturnSerializer(qs, many=True).data)

    def retrieve(self, request, pk=None):
        try:
            sale_return = return_service.get_return_by_id(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(ReturnSerializer(sale_return).data)

    @extend_schema(responses={200: ReturnStatsSerializer})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        data = return_service.get_return_stats(
            filters=_filters_from_query(request.query_params)
        )
        return Response(ReturnStatsSerializer(data).data)

    @extend_schema(request=ReturnCreateSerializer, responses={201: ReturnSerializer})
    def create(self, request):
        ser = ReturnCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        data = dict(ser.validated_data)
        items = data.pop("items")

        try:
            sale_return = orchestrator.create_return(
                return_data=data,
                items=items,
                user=request.user,
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ReturnSerializer(sale_return).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ReturnUpdateSerializer, responses={200: ReturnSerializer})
    def partial_update(self, request, pk=None):
        ser = ReturnUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        patch = dict(ser.validated_data)
        items = patch.pop("items", None)

        try:
            sale_return = return_service.update_return(
                return_id=pk, patch=patch, items=items
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ReturnSerializer(sale_return).data)

    def destroy(self, request, pk=None):
        try:
            return_service.delete_return(return_id=pk)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=ReturnProcessSerializer, responses={200: ReturnSerializer})
    @action(detail=True, methods=["post"], url_path="process")
    def process(self, request, pk=None):
        ser = ReturnProcessSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            sale_return = orchestrator.process_return(
                return_id=pk,
                status=ser.validated_data["status"],
                refund_amount=ser.validated_data.get("refund_amount"),
                notes=ser.validated_data.get("notes"),
                user=request.user,
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ReturnSerializer(sale_return).data)


# ======================================================
# SALE STATE (RECONSTRUCTOR)
# ======================================================


class SaleReturnsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: ReturnSerializer(many=True)})
    def get(self, request, sale_id):
        try:
            returns = return_service.get_sale_returns(sale_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(ReturnSerializer(returns, many=True).data)


class SaleStateBeforeReturnView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[OpenApiParameter("return_id", str, required=False)],
        responses={200: serializers.DictField()},
    )
    def get(self, request, sale_id):
        return_id = (request.query_params.get("return_id") or "").strip() or None
        try:
            state = sale_state.get_sale_state_before_return(sale_id, return_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(state)


class SaleStateAfterReturnView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: serializers.DictField()})
    def get(self, request, sale_id, return_id):
        try:
            state = sale_state.get_sale_state_after_return(sale_id, return_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(state)
