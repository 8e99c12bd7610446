from __future__ import annotations

import logging
from typing import List

from ..dataclasses import ContractRateMatrix, UnitType
from .errors import MatrixValidationError
from .mode_columns import resolve_mode_column
from .rate_engine import effective_selection_group
from .utils import ZERO

logger = logging.getLogger(__name__)


def validate_rate_matrix(matrix: ContractRateMatrix) -> List[str]:
    """Return warnings for rows that would mis-price or never price."""
    warnings: List[str] = []
    seen_ids = set()

    for row in matrix.rows:
        label = f"Row {row.id} ({row.particular or row.group_label or '?'})"

        if row.id in seen_ids:
            warnings.append(f"{label}: duplicate row id - billing items would not trace back uniquely.")
        seen_ids.add(row.id)

        if row.is_header or row.is_at_cost:
            continue

        if row.unit_type not in UnitType.CHOICES:
            warnings.append(f"{label}: unknown unit type '{row.unit_type}'.")

        if not row.has_pricing:
            warnings.append(f"{label}: no base rate and no mode columns - row can never bill.")
            continue

        priced = list(row.mode_columns.items()) or [("", resolve_mode_column(row, ""))]
        for mode, rate in priced:
            if rate < ZERO:
                warnings.append(f"{label}: negative rate {rate} for {mode or 'all modes'}.")
            if row.succeeding_rate is not None and row.succeeding_rate > rate:
                warnings.append(
                    f"{label}: succeeding rate ({row.succeeding_rate}) exceeds {mode or 'base'} rate ({rate}) - check data."
                )

        if row.succeeding_threshold is not None and row.succeeding_rate is None:
            warnings.append(f"{label}: succeeding threshold set without a succeeding rate; threshold is ignored.")

        if effective_selection_group(matrix, row) and not (row.selection_value or row.particular or row.charge_type_id):
            warnings.append(f"{label}: alternative row has nothing to select it by.")

    return warnings


def ensure_valid_matrix(matrix: ContractRateMatrix) -> None:
    problems = validate_rate_matrix(matrix)
    if problems:
        logger.warning(f"Rate matrix {matrix.id} failed validation with {len(problems)} problem(s)")
        raise MatrixValidationError(f"Rate matrix {matrix.id} has {len(problems)} problem(s)", problems)
