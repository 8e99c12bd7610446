"""
Rate card -> billing items

Maps engine output onto the generic billing ledger shape. Items come out
'unbilled' and carry their provenance (source row, contract, booking) so an
invoice line can be traced back to the contract rate row that produced it.
Persisting them is the caller's job.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, List, Mapping, Union

from ..dataclasses import (
    LEGACY_RATE_CARD_SOURCES,
    RATE_CARD_SOURCE,
    AppliedRate,
    BillingItem,
    BillingStatus,
    RateCardBillingContext,
)
from .utils import ZERO

logger = logging.getLogger(__name__)

BillingRecord = Union[BillingItem, Mapping[str, Any]]


def _describe(rate: AppliedRate, context: RateCardBillingContext) -> str:
    particular = rate.particular
    if rate.destination:
        particular = f"{particular} - {rate.destination}"
    return f"{particular} ({context.contract_number})" if context.contract_number else particular


def generate_rate_card_billing_items(
    applied_rates: List[AppliedRate],
    context: RateCardBillingContext,
) -> List[BillingItem]:
    items: List[BillingItem] = []
    category = f"{context.service_type} Charges" if context.service_type else None

    for idx, rate in enumerate(applied_rates):
        # Temporary id; the billing store assigns the real one on batch save
        items.append(
            BillingItem(
                id=f"rate-card-{context.booking_id}-{idx}",
                description=_describe(rate, context),
                amount=rate.subtotal,
                currency=rate.currency,
                status=BillingStatus.UNBILLED,
                source_type=RATE_CARD_SOURCE,
                source_id=rate.source_row_id,
                booking_id=context.booking_id,
                contract_id=context.contract_id,
                contract_number=context.contract_number,
                service_type=context.service_type,
                quotation_category=category,
                quantity=rate.quantity,
                unit_rate=rate.unit_rate,
                rule_applied=rate.rule_applied,
                mode=rate.mode,
                line_item_id=rate.line_item_id,
            )
        )

    logger.info(
        f"Generated {len(items)} rate card billing items for booking {context.booking_id} "
        f"from contract {context.contract_number or context.contract_id}"
    )
    return items


def _get(item: BillingRecord, name: str, camel: str):
    if isinstance(item, Mapping):
        return item.get(name, item.get(camel))
    return getattr(item, name, None)


def _belongs_to_booking(item: BillingRecord, booking_id: str) -> bool:
    return _get(item, "booking_id", "bookingId") == booking_id or _get(item, "source_booking_id", "sourceBookingId") == booking_id


def is_rate_card_item(item: BillingRecord) -> bool:
    source = _get(item, "source_type", "sourceType")
    return source == RATE_CARD_SOURCE or source in LEGACY_RATE_CARD_SOURCES


def has_existing_rate_card_billing(existing_items: List[BillingRecord], booking_id: str) -> bool:
    """True when the booking already holds rate-card items, i.e. rates were applied before."""
    return any(_belongs_to_booking(item, booking_id) and is_rate_card_item(item) for item in existing_items)


def count_booking_billing_items(existing_items: List[BillingRecord], booking_id: str) -> int:
    return sum(1 for item in existing_items if _belongs_to_booking(item, booking_id))


def total_billing_amount(items: List[BillingItem]) -> Decimal:
    return sum((item.amount for item in items), ZERO)
