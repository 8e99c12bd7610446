from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Union

from .services.utils import ZERO


class UnitType:
    PER_CONTAINER = "per_container"
    PER_SHIPMENT = "per_shipment"
    PER_BL = "per_bl"
    PER_SET = "per_set"

    CHOICES = (PER_CONTAINER, PER_SHIPMENT, PER_BL, PER_SET)


class BillingStatus:
    UNBILLED = "unbilled"
    BILLED = "billed"
    PAID = "paid"

    CHOICES = (UNBILLED, BILLED, PAID)


RATE_CARD_SOURCE = "rate_card"
# Quote lines priced from a contract; items written before the rename also carry it.
CONTRACT_RATE_SOURCE = "contract_rate"
LEGACY_RATE_CARD_SOURCES = (CONTRACT_RATE_SOURCE,)


@dataclass
class ContractRateRow:
    id: str
    particular: str
    unit_type: str = UnitType.PER_CONTAINER
    mode_columns: Dict[str, Decimal] = field(default_factory=dict)
    base_rate: Optional[Decimal] = None
    succeeding_rate: Optional[Decimal] = None
    succeeding_threshold: Optional[int] = None
    selection_group: Optional[str] = None
    selection_key: Optional[str] = None
    selection_value: Optional[str] = None
    charge_type_id: Optional[str] = None
    remarks: Optional[str] = None
    is_at_cost: bool = False
    group_label: Optional[str] = None

    @property
    def is_header(self) -> bool:
        return bool(self.group_label) and not self.particular

    @property
    def has_pricing(self) -> bool:
        return bool(self.mode_columns) or self.base_rate is not None


@dataclass
class ContractRateMatrix:
    id: str
    service_type: str
    currency: str
    rows: List[ContractRateRow] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)

    @property
    def is_trucking(self) -> bool:
        return (self.service_type or "").strip().lower() == "trucking"

    def modes(self) -> List[str]:
        """Declared columns first, then any extra mode keys found on rows."""
        seen: List[str] = list(self.columns)
        for row in self.rows:
            for mode in row.mode_columns:
                if mode not in seen:
                    seen.append(mode)
        return seen


@dataclass
class BookingQuantities:
    containers: int = 0
    shipments: int = 0
    bls: int = 0
    sets: int = 0
    containers_by_size: Dict[str, int] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.containers or self.shipments or self.bls or self.sets)


@dataclass
class AppliedRate:
    source_row_id: str
    particular: str
    unit_type: str
    unit_rate: Decimal
    quantity: int
    quantity_billed_at_base: int
    quantity_billed_at_succeeding: int
    subtotal: Decimal
    currency: str
    succeeding_rate: Optional[Decimal] = None
    mode: str = ""
    rule_applied: str = ""
    selection_group: Optional[str] = None
    line_item_id: Optional[str] = None
    destination: Optional[str] = None


@dataclass
class TruckingLineItem:
    destination: str = ""
    truck_type: str = ""
    quantity: int = 0
    id: Optional[str] = None


@dataclass
class LineItemExtraction:
    line_item: TruckingLineItem
    selections: Optional[Dict[str, str]]
    quantities: BookingQuantities


@dataclass
class TruckingLineResult:
    line_item: TruckingLineItem
    applied_rates: List[AppliedRate]
    subtotal: Decimal = ZERO


@dataclass
class MultiLineTruckingResult:
    line_results: List[TruckingLineResult] = field(default_factory=list)
    grand_total: Decimal = ZERO

    @property
    def applied_rates(self) -> List[AppliedRate]:
        return [rate for result in self.line_results for rate in result.applied_rates]


@dataclass
class BillingItem:
    id: str
    description: str
    amount: Decimal
    currency: str
    status: str = BillingStatus.UNBILLED
    source_type: str = RATE_CARD_SOURCE
    source_id: Optional[str] = None
    booking_id: Optional[str] = None
    contract_id: Optional[str] = None
    contract_number: Optional[str] = None
    service_type: Optional[str] = None
    quotation_category: Optional[str] = None
    quantity: Optional[int] = None
    unit_rate: Optional[Decimal] = None
    rule_applied: str = ""
    mode: str = ""
    line_item_id: Optional[str] = None


@dataclass
class RateCardBillingContext:
    booking_id: str
    contract_id: str
    contract_number: str
    service_type: Optional[str] = None
    customer_name: Optional[str] = None


# ---------------------- Selling price ----------------------

@dataclass
class SellingPriceLineItem:
    id: str
    description: str
    price: Decimal
    currency: str
    quantity: int
    unit: str
    unit_type: str
    amount: Decimal
    service: str
    remarks: str = ""
    is_taxed: bool = False
    base_cost: Decimal = ZERO
    amount_added: Decimal = ZERO
    percentage_added: Decimal = ZERO
    final_price: Decimal = ZERO
    rate_source: str = CONTRACT_RATE_SOURCE


@dataclass
class SellingPriceCategory:
    id: str
    category_name: str
    line_items: List[SellingPriceLineItem] = field(default_factory=list)
    subtotal: Decimal = ZERO
    is_expanded: bool = True


# ---------------------- Booking variants ----------------------

@dataclass
class ContainerEntry:
    type: str = ""
    qty: int = 0


@dataclass
class SeaBooking:
    mode: str = ""
    container_numbers: List[str] = field(default_factory=list)
    containers: List[ContainerEntry] = field(default_factory=list)
    qty_20ft: int = 0
    qty_40ft: int = 0
    qty_45ft: int = 0
    mbl_mawb: List[str] = field(default_factory=list)


@dataclass
class BrokerageBooking(SeaBooking):
    pass


@dataclass
class ForwardingBooking(SeaBooking):
    pass


@dataclass
class TruckingBooking:
    line_items: List[TruckingLineItem] = field(default_factory=list)
    vehicle_references: List[str] = field(default_factory=list)
    mode: str = ""

    @property
    def is_multi_line(self) -> bool:
        return len(self.line_items) > 1


@dataclass
class OthersBooking:
    mode: str = ""


BookingInput = Union[BrokerageBooking, ForwardingBooking, TruckingBooking, OthersBooking]
