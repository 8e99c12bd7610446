from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from ..dataclasses import ContractRateMatrix, ContractRateRow
from .config import air_freight_categories, mode_aliases

logger = logging.getLogger(__name__)


def resolve_mode_column(row: ContractRateRow, mode: str) -> Optional[Decimal]:
    """Unit rate of `row` for booking `mode`, or None when the row is not priced for it.

    Lookup is exact. A row without any mode columns is mode-agnostic and
    resolves to its base rate.
    """
    if row.mode_columns:
        return row.mode_columns.get(mode)
    return row.base_rate


def resolve_booking_mode(
    form_mode: Optional[str],
    shipment_freight: Optional[str] = None,
    freight_category: Optional[str] = None,
) -> str:
    """Normalize a booking's mode into the key used by rate rows.

    Examples:
        "Multi-modal"                 -> "FCL"
        "LCL" + "AIR FREIGHT"         -> "AIR"
        None + "CONSOLIDATION"        -> "LCL"
    """
    raw = (form_mode or shipment_freight or "").upper().strip()

    # Category override only applies when the mode itself is ambiguous
    category = (freight_category or "").upper().strip()
    if category and category in air_freight_categories() and raw in ("", "LCL"):
        raw = "AIR"

    return mode_aliases().get(raw, raw)


def get_contract_mode_columns(matrices: List[ContractRateMatrix], service_type: str) -> List[str]:
    from .rate_engine import find_matrix  # local import to avoid circulars

    matrix = find_matrix(matrices, service_type)
    return matrix.modes() if matrix else []


def split_legacy_column(column: str) -> List[str]:
    """'LCL / AIR' -> ['LCL', 'AIR']; 'FCL' -> ['FCL']."""
    parts = [p.strip().upper() for p in (column or "").split("/")]
    return [p for p in parts if p]
