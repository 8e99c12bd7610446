"""
Multi-line trucking: every dispatch line is rated on its own.
"""

from decimal import Decimal

from ..dataclasses import ContractRateMatrix, ContractRateRow, TruckingLineItem, UnitType
from ..services.booking_rating import rate_booking
from ..services.multi_line import (
    calculate_multi_line_trucking_billing,
    calculate_multi_line_trucking_result,
)


def _row(id, particular, rate, charge_id=None, group=None, unit_type=UnitType.PER_CONTAINER):
    return ContractRateRow(
        id=id,
        particular=particular,
        unit_type=unit_type,
        mode_columns={"FCL": Decimal(rate)},
        charge_type_id=charge_id,
        selection_group=group,
    )


def destination_card():
    return ContractRateMatrix(
        id="trucking",
        service_type="Trucking",
        currency="PHP",
        rows=[
            _row("v-40", "20ft / 40ft", "15000", "20ft_40ft", "Valenzuela City"),
            _row("m-40", "20ft / 40ft", "12000", "20ft_40ft", "Metro Manila"),
            _row("m-4w", "4 Wheeler", "6000", "4wheeler", "Metro Manila"),
        ],
    )


def flat_card():
    return ContractRateMatrix(
        id="flat",
        service_type="Trucking",
        currency="PHP",
        rows=[
            _row("haul", "Trucking fee", "5000"),
            _row("doc", "Trip ticket", "200", unit_type=UnitType.PER_SHIPMENT),
        ],
    )


class TestMultiLineTrucking:
    def test_each_line_priced_with_its_own_destination(self):
        lines = [
            TruckingLineItem(id="a", destination="Valenzuela City", truck_type="40ft", quantity=2),
            TruckingLineItem(id="b", destination="Metro Manila", truck_type="4W", quantity=3),
        ]
        result = calculate_multi_line_trucking_result(lines, destination_card(), "FCL")

        assert [lr.subtotal for lr in result.line_results] == [Decimal("30000"), Decimal("18000")]
        assert result.grand_total == Decimal("48000")
        assert [(r.source_row_id, r.line_item_id, r.destination) for r in result.applied_rates] == [
            ("v-40", "a", "Valenzuela City"),
            ("m-4w", "b", "Metro Manila"),
        ]

    def test_same_row_on_two_lines_is_not_merged(self):
        lines = [
            TruckingLineItem(id="a", destination="Valenzuela City", truck_type="40ft", quantity=1),
            TruckingLineItem(id="b", destination="Batangas", truck_type="40ft", quantity=1),
        ]
        applied = calculate_multi_line_trucking_billing(lines, flat_card(), "FCL")

        assert [(r.source_row_id, r.line_item_id) for r in applied] == [
            ("haul", "a"),
            ("doc", "a"),
            ("haul", "b"),
            ("doc", "b"),
        ]
        assert [r.subtotal for r in applied if r.source_row_id == "haul"] == [Decimal("5000"), Decimal("5000")]

    def test_lines_without_truck_type_or_quantity_are_skipped(self):
        lines = [
            TruckingLineItem(id="a", destination="Valenzuela City", truck_type="40ft", quantity=0),
            TruckingLineItem(id="b", destination="Metro Manila", truck_type="", quantity=2),
        ]
        result = calculate_multi_line_trucking_result(lines, destination_card(), "FCL")
        assert result.line_results == []
        assert result.grand_total == Decimal("0")

    def test_line_outside_contract_destinations_produces_no_charges(self):
        lines = [TruckingLineItem(id="a", destination="Cebu", truck_type="40ft", quantity=1)]
        result = calculate_multi_line_trucking_result(lines, destination_card(), "FCL")

        [line] = result.line_results
        assert line.applied_rates == []
        assert line.subtotal == Decimal("0")


class TestRateBooking:
    """Booking payload straight to AppliedRates"""

    def test_multi_line_booking_goes_through_line_rating(self):
        booking = {
            "truckingLineItems": [
                {"id": "a", "destination": "Valenzuela City", "truckType": "40ft", "quantity": 2},
                {"id": "b", "destination": "Metro Manila", "truckType": "4W", "quantity": 3},
            ]
        }
        applied = rate_booking(destination_card(), booking, "FCL")
        assert [r.line_item_id for r in applied] == ["a", "b"]
        assert sum(r.subtotal for r in applied) == Decimal("48000")

    def test_single_line_booking_infers_selections(self):
        booking = {"truckType": "40ft", "deliveryAddress": "Metro Manila", "vehicleReferenceNumber": "ABC-123"}
        [applied] = rate_booking(destination_card(), booking, "FCL")

        assert applied.source_row_id == "m-40"
        assert applied.quantity == 1
        assert applied.line_item_id is None

    def test_explicit_selections_win(self):
        booking = {"truckType": "40ft", "deliveryAddress": "Metro Manila", "qty": 1}
        [applied] = rate_booking(destination_card(), booking, "FCL", selections={"Metro Manila": "4wheeler"})
        assert applied.source_row_id == "m-4w"

    def test_brokerage_booking(self):
        matrix = ContractRateMatrix(
            id="brk",
            service_type="Brokerage",
            currency="PHP",
            rows=[
                _row("clearance", "Customs clearance", "4500", unit_type=UnitType.PER_SHIPMENT),
                _row("handling", "Container handling", "1500"),
            ],
        )
        applied = rate_booking(matrix, {"containerNumbers": "A1, A2"}, "FCL")
        assert [(r.source_row_id, r.subtotal) for r in applied] == [
            ("clearance", Decimal("4500")),
            ("handling", Decimal("3000")),
        ]


class TestPerBillOfLadingTruckingRows:
    """A trucking booking carries one B/L, so per_bl rows on the card bill"""

    def _card(self):
        return ContractRateMatrix(
            id="trk-doc",
            service_type="Trucking",
            currency="PHP",
            rows=[
                _row("haul", "Trucking fee", "5000"),
                _row("doc", "Documentation", "300", unit_type=UnitType.PER_BL),
            ],
        )

    def test_every_line_bills_its_documentation_row(self):
        lines = [
            TruckingLineItem(id="a", destination="Valenzuela City", truck_type="40ft", quantity=2),
            TruckingLineItem(id="b", destination="Batangas", truck_type="4W", quantity=1),
        ]
        applied = calculate_multi_line_trucking_billing(lines, self._card(), "FCL")

        assert [(r.source_row_id, r.line_item_id) for r in applied] == [
            ("haul", "a"),
            ("doc", "a"),
            ("haul", "b"),
            ("doc", "b"),
        ]
        assert [r.subtotal for r in applied if r.source_row_id == "doc"] == [Decimal("300"), Decimal("300")]

    def test_single_line_booking_bills_documentation_row(self):
        applied = rate_booking(self._card(), {"truckType": "40ft", "qty": 2}, "FCL")
        assert [(r.source_row_id, r.subtotal) for r in applied] == [
            ("haul", Decimal("10000")),
            ("doc", Decimal("300")),
        ]


class TestExplicitSelectionsOnMultiLineBookings:
    def test_explicit_selections_apply_to_every_line(self):
        booking = {
            "truckingLineItems": [
                {"id": "a", "destination": "Metro Manila", "truckType": "40ft", "quantity": 1},
                {"id": "b", "destination": "Metro Manila", "truckType": "40ft", "quantity": 2},
            ]
        }
        applied = rate_booking(destination_card(), booking, "FCL", selections={"Metro Manila": "4wheeler"})

        assert [(r.source_row_id, r.line_item_id, r.subtotal) for r in applied] == [
            ("m-4w", "a", Decimal("6000")),
            ("m-4w", "b", Decimal("12000")),
        ]

    def test_without_selections_each_line_infers_its_own(self):
        booking = {
            "truckingLineItems": [
                {"id": "a", "destination": "Metro Manila", "truckType": "40ft", "quantity": 1},
                {"id": "b", "destination": "Metro Manila", "truckType": "4W", "quantity": 2},
            ]
        }
        applied = rate_booking(destination_card(), booking, "FCL")
        assert [(r.source_row_id, r.line_item_id) for r in applied] == [("m-40", "a"), ("m-4w", "b")]
