"""
Booking quantity extraction

Turns the loosely-shaped booking / form payloads coming from the operations
screens into the canonical BookingQuantities the rate engine multiplies
against, plus the selections map that picks between alternative trucking rows.

All field sniffing happens in parse_booking(); everything after it works on
the typed booking variants. Missing or malformed fields count as zero, never
raise.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..dataclasses import (
    BookingInput,
    BookingQuantities,
    BrokerageBooking,
    ContainerEntry,
    ContractRateMatrix,
    ForwardingBooking,
    LineItemExtraction,
    OthersBooking,
    SeaBooking,
    TruckingBooking,
    TruckingLineItem,
)
from .config import truck_type_charge_ids
from .mode_columns import resolve_booking_mode
from .rate_engine import effective_selection_group, find_matrix, selection_key
from .utils import to_count

logger = logging.getLogger(__name__)

CONTAINER_SIZES = ("20ft", "40ft", "45ft")
FCL_MODES = ("FCL",)

_ENTRY_SPLIT = re.compile(r"[,;\n]")


def _first(data: Mapping, *keys, default=None):
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def count_entries(text: Union[str, Iterable[str], None]) -> int:
    """Number of non-empty references in a comma/semicolon/newline separated field.

    >>> count_entries("MSCU5285725, HLXU2008419, TLLU5146210")
    3
    """
    return len(split_entries(text))


def split_entries(text: Union[str, Iterable[str], None]) -> List[str]:
    if not text:
        return []
    if isinstance(text, str):
        parts = _ENTRY_SPLIT.split(text)
    elif isinstance(text, (list, tuple)):
        parts = [str(p) for p in text if p is not None]
    else:
        return []
    return [p.strip() for p in parts if p and p.strip()]


def sum_container_entries(entries: Iterable[ContainerEntry]) -> int:
    return sum(e.qty for e in entries or [])


def _container_entries(raw: Any) -> List[ContainerEntry]:
    if not isinstance(raw, list):
        return []
    entries = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        entries.append(ContainerEntry(type=str(item.get("type") or ""), qty=to_count(item.get("qty"))))
    return entries


# ----------------------- Parsing -----------------------

def _parse_line_item(raw: Mapping, index: int) -> TruckingLineItem:
    return TruckingLineItem(
        id=str(_first(raw, "id", default=f"line-{index}")),
        destination=str(_first(raw, "destination", "deliveryAddress", "delivery_address", default="")),
        truck_type=str(_first(raw, "truckType", "truck_type", default="")),
        quantity=to_count(_first(raw, "quantity", "qty")),
    )


def normalize_trucking_line_items(booking: Union[Mapping, TruckingBooking]) -> List[TruckingLineItem]:
    """All dispatch lines of a trucking booking.

    Bookings saved before multi-line dispatch carry a single truckType /
    deliveryAddress / qty triple; that becomes a one-element list. A booking
    with no trucking data at all yields an empty list.
    """
    if isinstance(booking, TruckingBooking):
        return list(booking.line_items)
    if not isinstance(booking, Mapping):
        return []

    raw_items = _first(booking, "truckingLineItems", "trucking_line_items", "lineItems")
    if isinstance(raw_items, list) and raw_items:
        items = []
        for index, raw in enumerate(raw_items):
            if isinstance(raw, TruckingLineItem):
                items.append(raw)
            elif isinstance(raw, Mapping):
                items.append(_parse_line_item(raw, index))
        return items

    truck_type = str(_first(booking, "truckType", "truck_type", default=""))
    destination = str(_first(booking, "deliveryAddress", "delivery_address", "destination", default=""))
    if truck_type or destination:
        return [
            TruckingLineItem(
                id="legacy-0",
                destination=destination,
                truck_type=truck_type,
                quantity=to_count(_first(booking, "qty", "quantity")),
            )
        ]
    return []


def is_multi_line_booking(booking: Union[Mapping, TruckingBooking]) -> bool:
    return len(normalize_trucking_line_items(booking)) > 1


def _parse_sea_booking(data: Mapping, cls) -> SeaBooking:
    return cls(
        mode=str(_first(data, "mode", default="")),
        container_numbers=split_entries(_first(data, "containerNumbers", "container_numbers")),
        containers=_container_entries(data.get("containers")),
        qty_20ft=to_count(_first(data, "qty20ft", "qty_20ft", "fcl20ft")),
        qty_40ft=to_count(_first(data, "qty40ft", "qty_40ft", "fcl40ft")),
        qty_45ft=to_count(_first(data, "qty45ft", "qty_45ft", "fcl45ft")),
        mbl_mawb=split_entries(_first(data, "mblMawb", "mbl_mawb")),
    )


def parse_booking(data: Mapping, service_type: str) -> BookingInput:
    """Read a raw booking/form payload into its service-specific variant."""
    data = data if isinstance(data, Mapping) else {}
    service = (service_type or "").strip().lower()

    if service == "brokerage":
        return _parse_sea_booking(data, BrokerageBooking)
    if service == "forwarding":
        return _parse_sea_booking(data, ForwardingBooking)
    if service == "trucking":
        return TruckingBooking(
            line_items=normalize_trucking_line_items(data),
            vehicle_references=split_entries(_first(data, "vehicleReferenceNumber", "vehicle_reference_number")),
            mode=str(_first(data, "mode", default="")),
        )
    return OthersBooking(mode=str(_first(data, "mode", default="")))


# ----------------------- Quantities -----------------------

def _sea_containers_by_size(booking: SeaBooking) -> Dict[str, int]:
    by_size: Dict[str, int] = {}
    for entry in booking.containers:
        if entry.type and entry.qty:
            by_size[entry.type] = by_size.get(entry.type, 0) + entry.qty
    if not by_size:
        for size, qty in zip(CONTAINER_SIZES, (booking.qty_20ft, booking.qty_40ft, booking.qty_45ft)):
            if qty:
                by_size[size] = qty
    return by_size


def _sea_quantities(booking: SeaBooking) -> BookingQuantities:
    by_size = _sea_containers_by_size(booking)

    # Container numbers typed in by Ops win over planned counts
    containers = len(booking.container_numbers)
    if containers == 0:
        containers = sum_container_entries(booking.containers)
    if containers == 0:
        containers = booking.qty_20ft + booking.qty_40ft + booking.qty_45ft

    return BookingQuantities(
        containers=containers,
        shipments=1,
        bls=len(booking.mbl_mawb),
        sets=1,
        containers_by_size=by_size,
    )


def _trucking_quantities(booking: TruckingBooking) -> BookingQuantities:
    trucks = len(booking.vehicle_references)
    if trucks == 0:
        trucks = sum(li.quantity for li in booking.line_items)

    by_type: Dict[str, int] = {}
    for li in booking.line_items:
        if li.truck_type and li.quantity:
            by_type[li.truck_type] = by_type.get(li.truck_type, 0) + li.quantity

    return BookingQuantities(containers=trucks, shipments=1, bls=1, sets=1, containers_by_size=by_type)


def quantities_for_booking(booking: BookingInput) -> BookingQuantities:
    if isinstance(booking, SeaBooking):
        return _sea_quantities(booking)
    if isinstance(booking, TruckingBooking):
        return _trucking_quantities(booking)
    if isinstance(booking, OthersBooking):
        return BookingQuantities(containers=0, shipments=1, bls=0, sets=1)
    raise TypeError(f"Unsupported booking variant: {type(booking).__name__}")


def derive_quantities_from_booking(booking: Union[Mapping, BookingInput], service_type: Optional[str] = None) -> BookingQuantities:
    """Derive BookingQuantities from a saved booking's operational fields.

    Counts container numbers, B/L numbers and vehicle references already
    entered by Operations, falling back to planned per-size counts.

    Examples:
        {"containerNumbers": "MSCU5285725, HLXU2008419", "mblMawb": "MBL-1"}, "Brokerage"
            -> containers=2, bls=1, shipments=1, sets=1
        {"vehicleReferenceNumber": "ABC-123, DEF-456"}, "Trucking"
            -> containers=2, shipments=1, sets=1
    """
    if isinstance(booking, Mapping):
        booking = parse_booking(booking, service_type or "")
    return quantities_for_booking(booking)


def extract_quantities_from_booking_form(form: Mapping, service_type: str) -> BookingQuantities:
    """Quantities for the live billing preview while a booking form is being filled in."""
    form = form if isinstance(form, Mapping) else {}
    booking = parse_booking(form, service_type)

    if isinstance(booking, SeaBooking):
        planned = sum_container_entries(booking.containers)
        if planned == 0:
            planned = booking.qty_20ft + booking.qty_40ft + booking.qty_45ft
        if planned == 0:
            planned = to_count(form.get("fclQty"))
        is_fcl = resolve_booking_mode(booking.mode) in FCL_MODES
        return BookingQuantities(
            containers=planned if is_fcl else 0,
            shipments=1,
            bls=1,
            sets=1,
            containers_by_size=_sea_containers_by_size(booking) if is_fcl else {},
        )

    if isinstance(booking, TruckingBooking):
        trucks = sum(li.quantity for li in booking.line_items)
        return BookingQuantities(containers=trucks, shipments=1, bls=1, sets=1)

    return BookingQuantities(containers=0, shipments=1, bls=0, sets=1)


# ----------------------- Selections -----------------------

def _trucking_matrix(matrices: List[ContractRateMatrix]) -> Optional[ContractRateMatrix]:
    matrix = find_matrix(matrices, "Trucking")
    if matrix is None and len(matrices) == 1:
        matrix = matrices[0]
    return matrix


def extract_contract_destinations(matrices: List[ContractRateMatrix]) -> List[str]:
    """Distinct destination groups on the contract's trucking card, in row order."""
    matrix = _trucking_matrix(matrices)
    if matrix is None:
        return []
    groups: List[str] = []
    for row in matrix.rows:
        group = effective_selection_group(matrix, row)
        if group and group not in groups:
            groups.append(group)
    return groups


def match_destination(address: str, groups: List[str]) -> Optional[str]:
    """Exact match, then address-contains-group, then group-contains-address."""
    address = (address or "").strip().lower()
    if not address:
        return None
    for group in groups:
        if group.lower() == address:
            return group
    for group in groups:
        if group.lower() in address:
            return group
    for group in groups:
        if address in group.lower():
            return group
    return None


def charge_id_for_truck_type(truck_type: str) -> Optional[str]:
    truck_type = (truck_type or "").strip()
    if not truck_type:
        return None
    mapping = truck_type_charge_ids()
    if truck_type not in mapping:
        logger.warning(f"Truck type '{truck_type}' has no charge id mapping; matching rows on it verbatim")
        return truck_type
    return mapping[truck_type]


def extract_trucking_selections(
    booking_fields: Union[Mapping, TruckingLineItem],
    matrices: List[ContractRateMatrix],
) -> Optional[Dict[str, str]]:
    """Selections map for the trucking card from the chosen truck type and address.

    Returns None when the card has no alternative rows (nothing to choose
    between) or no truck type was picked. An address that matches none of the
    card's destinations yields {} so that every alternative row is skipped.
    """
    if isinstance(booking_fields, TruckingLineItem):
        truck_type, address = booking_fields.truck_type, booking_fields.destination
    else:
        fields = booking_fields if isinstance(booking_fields, Mapping) else {}
        truck_type = str(_first(fields, "truckType", "truck_type", default=""))
        address = str(_first(fields, "deliveryAddress", "delivery_address", "destination", default=""))

    matrix = _trucking_matrix(matrices)
    groups = extract_contract_destinations(matrices)
    if matrix is None or not groups:
        return None

    charge_id = charge_id_for_truck_type(truck_type)
    if charge_id is None:
        return None

    if address.strip():
        matched = match_destination(address, groups)
        if matched is None:
            logger.debug(f"Destination '{address}' is outside the contract's trucking destinations")
            return {}
        chosen = [matched]
    else:
        # No address yet: same truck type across every destination
        chosen = groups

    selections: Dict[str, str] = {}
    for row in matrix.rows:
        if effective_selection_group(matrix, row) in chosen:
            selections[selection_key(matrix, row)] = charge_id
    return selections


def extract_multi_line_selections_and_quantities(
    line_items: List[TruckingLineItem],
    matrices: List[ContractRateMatrix],
) -> List[LineItemExtraction]:
    """Per dispatch line: its own selections and quantities. Lines without a truck type or quantity are dropped."""
    extractions = []
    for li in line_items:
        if not li.truck_type or li.quantity <= 0:
            continue
        extractions.append(
            LineItemExtraction(
                line_item=li,
                selections=extract_trucking_selections(li, matrices),
                quantities=BookingQuantities(
                    containers=li.quantity,
                    shipments=1,
                    bls=1,
                    sets=1,
                    containers_by_size={li.truck_type: li.quantity},
                ),
            )
        )
    return extractions
