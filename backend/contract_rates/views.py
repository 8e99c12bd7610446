from __future__ import annotations

import logging
from typing import List, Tuple

from rest_framework import serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .dataclasses import AppliedRate, BookingQuantities, ContractRateMatrix, RateCardBillingContext
from .serializers import (
    AMOUNT_FIELD,
    MAX_QUANTITY,
    AppliedRateSerializer,
    BillingItemSerializer,
    RateCardBillingRequestSerializer,
    RatePreviewRequestSerializer,
    build_matrix,
)
from .services.billing_bridge import (
    generate_rate_card_billing_items,
    has_existing_rate_card_billing,
    total_billing_amount,
)
from .services.booking_rating import rate_booking
from .services.mode_columns import resolve_booking_mode
from .services.rate_engine import instantiate_rates, summarize_applied_rates

logger = logging.getLogger(__name__)


class RatePreviewSerializer(serializers.Serializer):
    modeColumn = serializers.CharField(source="mode_column", allow_blank=True)
    appliedRates = AppliedRateSerializer(source="applied_rates", many=True)
    total = serializers.DecimalField(**AMOUNT_FIELD)


class RateCardBillingSerializer(serializers.Serializer):
    items = BillingItemSerializer(many=True)
    total = serializers.DecimalField(**AMOUNT_FIELD)
    count = serializers.IntegerField()


def _rate_from_request(data) -> Tuple[ContractRateMatrix, str, List[AppliedRate]]:
    matrix = build_matrix(data["matrix"])
    booking = data.get("booking") or {}
    mode = resolve_booking_mode(
        data.get("mode") or booking.get("mode"),
        data.get("shipment_freight"),
        data.get("freight_category"),
    )
    selections = data.get("selections")

    if "quantities" in data:
        quantities = BookingQuantities(**data["quantities"])
        return matrix, mode, instantiate_rates(matrix, quantities, mode, selections)

    applied = rate_booking(matrix, booking, mode, data.get("service_type"), selections)
    # Booking payloads are free-form, so their counts are only bounded here
    if any(rate.quantity > MAX_QUANTITY for rate in applied):
        raise serializers.ValidationError({"booking": [f"Billable quantities are limited to {MAX_QUANTITY}."]})
    return matrix, mode, applied


class RatePreviewView(APIView):
    """Live preview of rate card charges while a booking is edited. Nothing is saved."""

    def post(self, request, *args, **kwargs):
        ser = RatePreviewRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        matrix, mode, applied = _rate_from_request(ser.validated_data)
        if not applied:
            logger.info(f"No applicable rate card charges for matrix {matrix.id} in mode {mode or '-'}")

        out = RatePreviewSerializer(
            {"mode_column": mode, "applied_rates": applied, "total": summarize_applied_rates(applied)}
        )
        return Response(out.data, status=status.HTTP_200_OK)


class RateCardBillingView(APIView):
    """Billing items for a booking from its contract rate card; the caller persists them."""

    def post(self, request, *args, **kwargs):
        ser = RateCardBillingRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        booking_id = data["booking_id"]
        if has_existing_rate_card_billing(data.get("existing_items") or [], booking_id):
            return Response({"detail": "rates already applied"}, status=status.HTTP_409_CONFLICT)

        matrix, _, applied = _rate_from_request(data)
        context = RateCardBillingContext(
            booking_id=booking_id,
            contract_id=data["contract_id"],
            contract_number=data.get("contract_number") or "",
            service_type=data.get("service_type") or matrix.service_type,
            customer_name=data.get("customer_name"),
        )
        items = generate_rate_card_billing_items(applied, context)

        out = RateCardBillingSerializer({"items": items, "total": total_billing_amount(items), "count": len(items)})
        return Response(out.data, status=status.HTTP_200_OK)
