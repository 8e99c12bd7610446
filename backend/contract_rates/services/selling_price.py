"""
Contract rates as quote selling-price categories.

One category per mode column of the service's matrix. With booking
quantities the categories carry the billable lines; without them they list
every priced row at a quantity of one, so a quote can be built from the card.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..dataclasses import (
    AppliedRate,
    BookingQuantities,
    ContractRateMatrix,
    SellingPriceCategory,
    SellingPriceLineItem,
    TruckingLineItem,
    UnitType,
)
from .multi_line import calculate_multi_line_trucking_result
from .rate_engine import find_matrix, instantiate_rates, instantiate_row, selection_key, summarize_applied_rates

logger = logging.getLogger(__name__)

UNIT_LABELS = {
    UnitType.PER_CONTAINER: "Container",
    UnitType.PER_SHIPMENT: "Shipment",
    UnitType.PER_BL: "B/L",
    UnitType.PER_SET: "Set",
}

LISTING_QUANTITIES = BookingQuantities(containers=1, shipments=1, bls=1, sets=1)


def unit_label(unit_type: str) -> str:
    return UNIT_LABELS.get(unit_type, "Unit")


def _columns(matrix: ContractRateMatrix, mode_columns: Optional[List[str]]) -> List[str]:
    available = matrix.modes()
    if mode_columns:
        wanted = [col for col in mode_columns if col in available]
        if wanted:
            return wanted
    return available


def _line_item(matrix: ContractRateMatrix, column: str, service_type: str, rate: AppliedRate, remarks: str) -> SellingPriceLineItem:
    return SellingPriceLineItem(
        id=f"contract-{matrix.id}-{column}-{rate.source_row_id}",
        description=rate.particular,
        price=rate.unit_rate,
        currency=rate.currency,
        quantity=rate.quantity,
        unit=unit_label(rate.unit_type),
        unit_type=rate.unit_type,
        amount=rate.subtotal,
        service=service_type,
        remarks=remarks,
        amount_added=rate.subtotal,
        final_price=rate.unit_rate,
    )


def _listing_rates(
    matrix: ContractRateMatrix,
    column: str,
    selections: Optional[Dict[str, str]],
) -> List[AppliedRate]:
    """Every priced row at one unit; alternatives are all listed unless selections narrow them."""
    rates: List[AppliedRate] = []
    for row in matrix.rows:
        row_selections = selections
        if row_selections is None:
            key = selection_key(matrix, row)
            if key is not None:
                row_selections = {key: row.selection_value or row.charge_type_id or row.particular}
        rate = instantiate_row(matrix, row, LISTING_QUANTITIES, column, row_selections)
        if rate is not None:
            rates.append(rate)
    return rates


def _category_name(service_type: str, column: str, columns: List[str]) -> str:
    if len(columns) > 1:
        return f"{service_type} - {column}"
    return f"{service_type} Charges"


def contract_rates_to_selling_price(
    matrices: List[ContractRateMatrix],
    service_type: str,
    mode_columns: Optional[List[str]] = None,
    quantities: Optional[BookingQuantities] = None,
    selections: Optional[Dict[str, str]] = None,
) -> List[SellingPriceCategory]:
    """
    Turn a contract's rates for one service into selling-price categories.

    Requested mode columns the matrix does not price are ignored; when none
    remain every column is used. Categories without line items are dropped.
    """
    matrix = find_matrix(matrices, service_type)
    if matrix is None:
        logger.warning(f"No rate matrix found for service type '{service_type}'")
        return []

    columns = _columns(matrix, mode_columns)
    if not columns:
        logger.warning(f"Rate matrix {matrix.id} has no mode columns to price")
        return []

    row_remarks = {row.id: row.remarks or "" for row in matrix.rows}
    categories: List[SellingPriceCategory] = []
    for column in columns:
        if quantities is not None:
            rates = instantiate_rates(matrix, quantities, column, selections)
            items = [_line_item(matrix, column, service_type, rate, rate.rule_applied) for rate in rates]
        else:
            rates = _listing_rates(matrix, column, selections)
            items = [_line_item(matrix, column, service_type, rate, row_remarks[rate.source_row_id]) for rate in rates]

        if not items:
            continue
        categories.append(
            SellingPriceCategory(
                id=f"contract-cat-{matrix.id}-{column}",
                category_name=_category_name(service_type, column, columns),
                line_items=items,
                subtotal=summarize_applied_rates(rates),
            )
        )
    return categories


def _line_category_name(li: TruckingLineItem) -> str:
    units = "unit" if li.quantity == 1 else "units"
    return f"Trucking - {li.destination or 'All Destinations'} x {li.truck_type or '-'} ({li.quantity} {units})"


def multi_line_rates_to_selling_price(
    line_items: List[TruckingLineItem],
    matrices: List[ContractRateMatrix],
    mode_columns: Optional[List[str]] = None,
) -> List[SellingPriceCategory]:
    """
    One selling-price category per dispatch line and mode column.

    Categories are named after the line's destination, truck type and unit
    count; category and line item ids carry the line id so lines sharing a
    rate row stay distinct.
    """
    matrix = find_matrix(matrices, "Trucking")
    if matrix is None:
        logger.warning("No rate matrix found for service type 'Trucking'")
        return []

    columns = _columns(matrix, mode_columns)
    if not columns:
        logger.warning(f"Rate matrix {matrix.id} has no mode columns to price")
        return []

    # Line extraction does not depend on the mode, so line results align by index
    results = {column: calculate_multi_line_trucking_result(line_items, matrix, column) for column in columns}

    categories: List[SellingPriceCategory] = []
    for index, line_result in enumerate(results[columns[0]].line_results):
        li = line_result.line_item
        for column in columns:
            rates = results[column].line_results[index].applied_rates
            if not rates:
                continue
            items = []
            for rate in rates:
                item = _line_item(matrix, column, "Trucking", rate, rate.rule_applied)
                item.id = f"{item.id}-line-{li.id}"
                items.append(item)
            name = _line_category_name(li)
            if len(columns) > 1:
                name = f"{name} - {column}"
            categories.append(
                SellingPriceCategory(
                    id=f"contract-cat-{matrix.id}-{column}-line-{li.id}",
                    category_name=name,
                    line_items=items,
                    subtotal=summarize_applied_rates(rates),
                )
            )
    return categories
