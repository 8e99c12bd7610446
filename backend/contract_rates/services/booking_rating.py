from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from ..dataclasses import AppliedRate, ContractRateMatrix
from .multi_line import calculate_multi_line_trucking_billing
from .quantity_extractor import (
    derive_quantities_from_booking,
    extract_trucking_selections,
    normalize_trucking_line_items,
)
from .rate_engine import instantiate_rates

logger = logging.getLogger(__name__)


def rate_booking(
    matrix: ContractRateMatrix,
    booking: Mapping,
    mode: str,
    service_type: Optional[str] = None,
    selections: Optional[Dict[str, str]] = None,
) -> List[AppliedRate]:
    """Booking payload in, AppliedRates out.

    Multi-line trucking bookings are rated per dispatch line. Trucking
    selections are inferred from each line's truck type and address unless
    the caller passed them explicitly, in which case they apply to every line.
    """
    service = (service_type or matrix.service_type or "").strip().lower()

    if service == "trucking":
        line_items = normalize_trucking_line_items(booking)
        if len(line_items) > 1:
            logger.debug(f"Rating {len(line_items)} trucking lines against matrix {matrix.id}")
            return calculate_multi_line_trucking_billing(line_items, matrix, mode, selections)
        if selections is None:
            fields = line_items[0] if line_items else booking
            selections = extract_trucking_selections(fields, [matrix])

    quantities = derive_quantities_from_booking(booking, service)
    if quantities.is_empty():
        logger.debug(f"Booking has no billable quantities for {service or 'unknown service'}")
    return instantiate_rates(matrix, quantities, mode, selections)
