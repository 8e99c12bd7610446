from __future__ import annotations

from typing import Any, Dict, Mapping

from rest_framework import serializers

from .dataclasses import BillingStatus, ContractRateMatrix, ContractRateRow, UnitType
from .services.config import default_currency
from .services.mode_columns import split_legacy_column

# Amounts hold any rate x MAX_QUANTITY (both tiers) without rounding.
RATE_FIELD = dict(max_digits=20, decimal_places=6)
AMOUNT_FIELD = dict(max_digits=30, decimal_places=6)
MAX_QUANTITY = 1_000_000

LEGACY_ROW_KEYS = {
    "unit": "unitType",
    "selection_group": "selectionGroup",
    "charge_type_id": "chargeTypeId",
    "is_at_cost": "isAtCost",
    "group_label": "groupLabel",
}


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def adapt_legacy_row(data: Mapping) -> Dict[str, Any]:
    """Convert the snake_case row shape saved by older contract screens."""
    row = {k: v for k, v in data.items() if k not in LEGACY_ROW_KEYS and k not in ("rates", "succeeding_rule")}
    for old, new in LEGACY_ROW_KEYS.items():
        if old in data and new not in row:
            row[new] = data[old]

    if "rates" in data and "modeColumns" not in row:
        columns = {}
        for column, rate in (data.get("rates") or {}).items():
            if rate is None:
                continue
            for mode in split_legacy_column(column):
                columns[mode] = rate
        row["modeColumns"] = columns

    rule = data.get("succeeding_rule")
    if isinstance(rule, Mapping):
        row.setdefault("succeedingRate", rule.get("rate"))
        row.setdefault("succeedingThreshold", rule.get("after_qty"))
    return row


class ContractRateRowSerializer(serializers.Serializer):
    id = serializers.CharField()
    particular = serializers.CharField(required=False, allow_blank=True, default="")
    unitType = serializers.ChoiceField(source="unit_type", choices=UnitType.CHOICES, default=UnitType.PER_CONTAINER)
    modeColumns = serializers.DictField(
        source="mode_columns", child=serializers.DecimalField(**RATE_FIELD), required=False, default=dict
    )
    baseRate = serializers.DecimalField(source="base_rate", required=False, allow_null=True, **RATE_FIELD)
    succeedingRate = serializers.DecimalField(source="succeeding_rate", required=False, allow_null=True, **RATE_FIELD)
    succeedingThreshold = serializers.IntegerField(source="succeeding_threshold", required=False, allow_null=True, min_value=0)
    selectionGroup = serializers.CharField(source="selection_group", required=False, allow_null=True, allow_blank=True)
    selectionKey = serializers.CharField(source="selection_key", required=False, allow_null=True, allow_blank=True)
    selectionValue = serializers.CharField(source="selection_value", required=False, allow_null=True, allow_blank=True)
    chargeTypeId = serializers.CharField(source="charge_type_id", required=False, allow_null=True, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    isAtCost = serializers.BooleanField(source="is_at_cost", required=False, default=False)
    groupLabel = serializers.CharField(source="group_label", required=False, allow_null=True, allow_blank=True)

    def to_internal_value(self, data):
        if isinstance(data, Mapping) and ({"rates", "succeeding_rule"} | set(LEGACY_ROW_KEYS)) & set(data):
            data = adapt_legacy_row(data)
        return super().to_internal_value(data)


class ContractRateMatrixSerializer(serializers.Serializer):
    id = serializers.CharField()
    serviceType = serializers.CharField(source="service_type")
    currency = serializers.CharField(required=False, allow_blank=True, max_length=3)
    columns = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    rows = ContractRateRowSerializer(many=True)

    def to_internal_value(self, data):
        if isinstance(data, Mapping) and "service_type" in data and "serviceType" not in data:
            data = {**data, "serviceType": data["service_type"]}
        return super().to_internal_value(data)

    def validate_currency(self, value: str) -> str:
        return (value or "").strip().upper()

    def validate_columns(self, value):
        modes = []
        for column in value:
            for mode in split_legacy_column(column):
                if mode not in modes:
                    modes.append(mode)
        return modes

    def create(self, validated_data) -> ContractRateMatrix:
        return build_matrix(validated_data)


def build_matrix(validated: Mapping) -> ContractRateMatrix:
    rows = []
    for r in validated.get("rows", []):
        rows.append(
            ContractRateRow(
                id=r["id"],
                particular=r.get("particular") or "",
                unit_type=r.get("unit_type", UnitType.PER_CONTAINER),
                mode_columns=dict(r.get("mode_columns") or {}),
                base_rate=r.get("base_rate"),
                succeeding_rate=r.get("succeeding_rate"),
                succeeding_threshold=r.get("succeeding_threshold"),
                selection_group=_blank_to_none(r.get("selection_group")),
                selection_key=_blank_to_none(r.get("selection_key")),
                selection_value=_blank_to_none(r.get("selection_value")),
                charge_type_id=_blank_to_none(r.get("charge_type_id")),
                remarks=_blank_to_none(r.get("remarks")),
                is_at_cost=bool(r.get("is_at_cost")),
                group_label=_blank_to_none(r.get("group_label")),
            )
        )
    return ContractRateMatrix(
        id=validated["id"],
        service_type=validated["service_type"],
        currency=validated.get("currency") or default_currency(),
        rows=rows,
        columns=list(validated.get("columns") or []),
    )


class BookingQuantitiesSerializer(serializers.Serializer):
    containers = serializers.IntegerField(min_value=0, max_value=MAX_QUANTITY, required=False, default=0)
    shipments = serializers.IntegerField(min_value=0, max_value=MAX_QUANTITY, required=False, default=0)
    bls = serializers.IntegerField(min_value=0, max_value=MAX_QUANTITY, required=False, default=0)
    sets = serializers.IntegerField(min_value=0, max_value=MAX_QUANTITY, required=False, default=0)
    containersBySize = serializers.DictField(
        source="containers_by_size", child=serializers.IntegerField(min_value=0, max_value=MAX_QUANTITY), required=False, default=dict
    )


class AppliedRateSerializer(serializers.Serializer):
    sourceRowId = serializers.CharField(source="source_row_id")
    particular = serializers.CharField()
    unitType = serializers.CharField(source="unit_type")
    unitRate = serializers.DecimalField(source="unit_rate", **AMOUNT_FIELD)
    succeedingRate = serializers.DecimalField(source="succeeding_rate", allow_null=True, **AMOUNT_FIELD)
    quantity = serializers.IntegerField()
    quantityBilledAtBase = serializers.IntegerField(source="quantity_billed_at_base")
    quantityBilledAtSucceeding = serializers.IntegerField(source="quantity_billed_at_succeeding")
    subtotal = serializers.DecimalField(**AMOUNT_FIELD)
    currency = serializers.CharField()
    mode = serializers.CharField()
    ruleApplied = serializers.CharField(source="rule_applied")
    selectionGroup = serializers.CharField(source="selection_group", allow_null=True)
    lineItemId = serializers.CharField(source="line_item_id", allow_null=True)
    destination = serializers.CharField(allow_null=True)


class BillingItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    description = serializers.CharField()
    amount = serializers.DecimalField(**AMOUNT_FIELD)
    currency = serializers.CharField()
    status = serializers.ChoiceField(choices=BillingStatus.CHOICES)
    source_type = serializers.CharField()
    source_id = serializers.CharField(allow_null=True)
    booking_id = serializers.CharField(allow_null=True)
    contract_id = serializers.CharField(allow_null=True)
    contract_number = serializers.CharField(allow_null=True)
    service_type = serializers.CharField(allow_null=True)
    quotation_category = serializers.CharField(allow_null=True)
    quantity = serializers.IntegerField(allow_null=True)
    unit_rate = serializers.DecimalField(allow_null=True, **AMOUNT_FIELD)
    rule_applied = serializers.CharField(allow_blank=True)
    mode = serializers.CharField(allow_blank=True)
    line_item_id = serializers.CharField(allow_null=True)


class RatePreviewRequestSerializer(serializers.Serializer):
    matrix = ContractRateMatrixSerializer()
    mode = serializers.CharField(required=False, allow_blank=True, default="")
    shipmentFreight = serializers.CharField(source="shipment_freight", required=False, allow_blank=True, allow_null=True)
    freightCategory = serializers.CharField(source="freight_category", required=False, allow_blank=True, allow_null=True)
    serviceType = serializers.CharField(source="service_type", required=False, allow_blank=True)
    quantities = BookingQuantitiesSerializer(required=False)
    booking = serializers.JSONField(required=False)
    selections = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False, allow_null=True)

    def validate_booking(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("booking must be an object.")
        return value

    def validate(self, attrs):
        if "quantities" not in attrs and "booking" not in attrs:
            raise serializers.ValidationError("Provide either quantities or booking.")
        return attrs


class RateCardBillingRequestSerializer(RatePreviewRequestSerializer):
    bookingId = serializers.CharField(source="booking_id")
    contractId = serializers.CharField(source="contract_id")
    contractNumber = serializers.CharField(source="contract_number", required=False, allow_blank=True, default="")
    customerName = serializers.CharField(source="customer_name", required=False, allow_blank=True, allow_null=True)
    existingItems = serializers.ListField(
        source="existing_items", child=serializers.DictField(), required=False, default=list
    )
