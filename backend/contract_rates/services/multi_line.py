from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from ..dataclasses import (
    AppliedRate,
    ContractRateMatrix,
    MultiLineTruckingResult,
    TruckingLineItem,
    TruckingLineResult,
)
from .quantity_extractor import extract_multi_line_selections_and_quantities
from .rate_engine import instantiate_rates, summarize_applied_rates
from .utils import ZERO

logger = logging.getLogger(__name__)


def calculate_multi_line_trucking_result(
    line_items: List[TruckingLineItem],
    matrix: ContractRateMatrix,
    mode: str,
    selections: Optional[Dict[str, str]] = None,
) -> MultiLineTruckingResult:
    """
    Rate every dispatch line of a trucking booking on its own.

    Each line gets its own selections and quantities, so a rate row that
    fires for two destinations shows up twice, once per line, tagged with the
    line id and destination. Lines are never merged.

    Selections are inferred per line from its truck type and destination;
    passing `selections` applies that one map to every line instead.
    """
    extractions = extract_multi_line_selections_and_quantities(line_items, [matrix])

    line_results: List[TruckingLineResult] = []
    for extraction in extractions:
        li = extraction.line_item
        line_selections = extraction.selections if selections is None else selections
        applied = [
            replace(rate, line_item_id=li.id, destination=li.destination)
            for rate in instantiate_rates(matrix, extraction.quantities, mode, line_selections)
        ]
        if not applied:
            logger.debug(f"Trucking line {li.id} ({li.destination} x {li.truck_type}) produced no charges")
        line_results.append(
            TruckingLineResult(line_item=li, applied_rates=applied, subtotal=summarize_applied_rates(applied))
        )

    return MultiLineTruckingResult(
        line_results=line_results,
        grand_total=sum((lr.subtotal for lr in line_results), ZERO),
    )


def calculate_multi_line_trucking_billing(
    line_items: List[TruckingLineItem],
    matrix: ContractRateMatrix,
    mode: str,
    selections: Optional[Dict[str, str]] = None,
) -> List[AppliedRate]:
    """Concatenated AppliedRates of all dispatch lines, in line order."""
    return calculate_multi_line_trucking_result(line_items, matrix, mode, selections).applied_rates
