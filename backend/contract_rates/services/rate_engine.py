"""
Contract Rate Instantiation Engine

Applies a contract rate matrix to a booking's quantities and returns the
billable AppliedRate lines:

- unit-based multiplication (per_container, per_shipment, per_bl, per_set)
- succeeding rates (first N units at the base rate, the rest at another rate)
- exact mode-column lookup (FCL / LCL / AIR)
- zero-quantity suppression
- selection groups (mutually exclusive alternative rows)

Everything here is pure: same matrix, quantities, mode and selections in,
same AppliedRate list out. Rows are evaluated independently; output keeps
matrix row order.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from ..dataclasses import AppliedRate, BookingQuantities, ContractRateMatrix, ContractRateRow, UnitType
from .errors import UnknownUnitTypeError
from .mode_columns import resolve_mode_column
from .utils import ZERO, format_amount

logger = logging.getLogger(__name__)

QUANTITY_FIELD_BY_UNIT = {
    UnitType.PER_CONTAINER: "containers",
    UnitType.PER_SHIPMENT: "shipments",
    UnitType.PER_BL: "bls",
    UnitType.PER_SET: "sets",
}

DEFAULT_SUCCEEDING_THRESHOLD = 1


# --------------------- Helpers ---------------------

def quantity_for_unit(unit_type: str, quantities: BookingQuantities) -> int:
    try:
        field_name = QUANTITY_FIELD_BY_UNIT[unit_type]
    except KeyError:
        raise UnknownUnitTypeError(
            f"Unknown unit type '{unit_type}'. Expected one of: {', '.join(UnitType.CHOICES)}"
        )
    return getattr(quantities, field_name, 0) or 0


def effective_selection_group(matrix: ContractRateMatrix, row: ContractRateRow) -> Optional[str]:
    # Older trucking cards grouped destinations through the remarks column
    if row.selection_group:
        return row.selection_group
    if matrix.is_trucking and row.remarks:
        return row.remarks
    return None


def selection_key(matrix: ContractRateMatrix, row: ContractRateRow) -> Optional[str]:
    return row.selection_key or effective_selection_group(matrix, row)


def selection_matches(row: ContractRateRow, picked: Optional[str]) -> bool:
    if picked is None:
        return False
    if row.selection_value is not None:
        return picked == row.selection_value
    return picked == row.particular or (row.charge_type_id is not None and picked == row.charge_type_id)


def is_row_selected(
    matrix: ContractRateMatrix,
    row: ContractRateRow,
    selections: Optional[Dict[str, str]],
) -> bool:
    """Ungrouped rows are always eligible; grouped rows need a matching selection."""
    if effective_selection_group(matrix, row) is None:
        return True
    if not selections:
        return False
    return selection_matches(row, selections.get(selection_key(matrix, row)))


def split_tiers(row: ContractRateRow, quantity: int) -> Tuple[int, int]:
    """Return (quantity billed at base, quantity billed at succeeding rate)."""
    if row.succeeding_rate is None:
        return quantity, 0
    threshold = row.succeeding_threshold
    if threshold is None:
        threshold = DEFAULT_SUCCEEDING_THRESHOLD
    if threshold <= 0:
        return quantity, 0
    at_base = min(quantity, threshold)
    return at_base, max(0, quantity - threshold)


def describe_rule(unit_rate: Decimal, at_base: int, succeeding_rate: Optional[Decimal], at_succeeding: int, currency: str) -> str:
    if at_succeeding > 0 and succeeding_rate is not None:
        return (
            f"{at_base} x {format_amount(unit_rate, currency)}"
            f" + {at_succeeding} x {format_amount(succeeding_rate, currency)}"
        )
    return f"{at_base} x {format_amount(unit_rate, currency)}"


# --------------------- Core engine ---------------------

def instantiate_row(
    matrix: ContractRateMatrix,
    row: ContractRateRow,
    quantities: BookingQuantities,
    mode: str,
    selections: Optional[Dict[str, str]] = None,
) -> Optional[AppliedRate]:
    """Rate a single row; None means the row does not bill for this booking."""
    if row.is_header or row.is_at_cost:
        return None

    if not is_row_selected(matrix, row, selections):
        logger.debug(f"Row {row.id} skipped: not the selected alternative")
        return None

    if not row.has_pricing:
        logger.warning(f"Row {row.id} in matrix {matrix.id} has no pricing data; no charge produced")
        return None

    unit_rate = resolve_mode_column(row, mode)
    if unit_rate is None:
        logger.debug(f"Row {row.id} skipped: not priced for mode {mode}")
        return None
    if unit_rate < ZERO:
        logger.warning(f"Row {row.id} in matrix {matrix.id} has a negative rate for mode {mode}; no charge produced")
        return None
    if unit_rate == ZERO:
        logger.debug(f"Row {row.id} skipped: zero rate for mode {mode}")
        return None

    quantity = quantity_for_unit(row.unit_type, quantities)
    if quantity <= 0:
        return None

    at_base, at_succeeding = split_tiers(row, quantity)
    subtotal = unit_rate * at_base + (row.succeeding_rate or ZERO) * at_succeeding

    return AppliedRate(
        source_row_id=row.id,
        particular=row.particular,
        unit_type=row.unit_type,
        unit_rate=unit_rate,
        quantity=quantity,
        quantity_billed_at_base=at_base,
        quantity_billed_at_succeeding=at_succeeding,
        subtotal=subtotal,
        currency=matrix.currency,
        succeeding_rate=row.succeeding_rate,
        mode=mode,
        rule_applied=describe_rule(unit_rate, at_base, row.succeeding_rate, at_succeeding, matrix.currency),
        selection_group=effective_selection_group(matrix, row),
    )


def instantiate_rates(
    matrix: ContractRateMatrix,
    quantities: BookingQuantities,
    mode: str,
    selections: Optional[Dict[str, str]] = None,
) -> List[AppliedRate]:
    applied: List[AppliedRate] = []
    for row in matrix.rows:
        rate = instantiate_row(matrix, row, quantities, mode, selections)
        if rate is not None:
            applied.append(rate)
    return applied


def find_matrix(matrices: List[ContractRateMatrix], service_type: str) -> Optional[ContractRateMatrix]:
    wanted = (service_type or "").strip().lower()
    for matrix in matrices:
        if (matrix.service_type or "").strip().lower() == wanted:
            return matrix
    return None


def summarize_applied_rates(applied_rates: List[AppliedRate]) -> Decimal:
    return sum((r.subtotal for r in applied_rates), ZERO)


def calculate_contract_billing(
    matrices: List[ContractRateMatrix],
    service_type: str,
    mode: str,
    quantities: BookingQuantities,
    selections: Optional[Dict[str, str]] = None,
) -> Tuple[List[AppliedRate], Decimal]:
    """Pick the service's matrix out of a contract and rate it."""
    matrix = find_matrix(matrices, service_type)
    if matrix is None:
        logger.warning(f"No rate matrix found for service type '{service_type}'")
        return [], ZERO

    applied = instantiate_rates(matrix, quantities, mode, selections)
    return applied, summarize_applied_rates(applied)
