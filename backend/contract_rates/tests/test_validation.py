import json
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from ..dataclasses import ContractRateMatrix, ContractRateRow, UnitType
from ..services.errors import MatrixValidationError
from ..services.validation import ensure_valid_matrix, validate_rate_matrix


def _matrix(*rows, service_type="Brokerage"):
    return ContractRateMatrix(id="m1", service_type=service_type, currency="PHP", rows=list(rows))


class TestValidateRateMatrix:
    def test_clean_matrix(self):
        matrix = _matrix(
            ContractRateRow(id="r1", particular="Container", mode_columns={"FCL": Decimal("4500")}, succeeding_rate=Decimal("1800")),
            ContractRateRow(id="hdr", particular="", group_label="Valenzuela City"),
            ContractRateRow(id="cost", particular="Duties", is_at_cost=True),
        )
        assert validate_rate_matrix(matrix) == []

    def test_row_that_can_never_bill(self):
        [warning] = validate_rate_matrix(_matrix(ContractRateRow(id="r1", particular="Container")))
        assert "can never bill" in warning

    def test_duplicate_ids(self):
        rows = [ContractRateRow(id="r1", particular="A", base_rate=Decimal("1")) for _ in range(2)]
        [warning] = validate_rate_matrix(_matrix(*rows))
        assert "duplicate row id" in warning

    def test_succeeding_rate_above_base(self):
        row = ContractRateRow(id="r1", particular="A", base_rate=Decimal("100"), succeeding_rate=Decimal("150"))
        [warning] = validate_rate_matrix(_matrix(row))
        assert "exceeds base rate" in warning

    def test_negative_rate_and_orphan_threshold(self):
        row = ContractRateRow(id="r1", particular="A", mode_columns={"LCL": Decimal("-5")}, succeeding_threshold=3)
        warnings = validate_rate_matrix(_matrix(row))
        assert any("negative rate -5 for LCL" in w for w in warnings)
        assert any("threshold is ignored" in w for w in warnings)

    def test_unknown_unit_type(self):
        row = ContractRateRow(id="r1", particular="A", unit_type="per_pallet", base_rate=Decimal("1"))
        [warning] = validate_rate_matrix(_matrix(row))
        assert "per_pallet" in warning

    def test_ensure_valid_matrix_raises_with_problems(self):
        with pytest.raises(MatrixValidationError) as exc:
            ensure_valid_matrix(_matrix(ContractRateRow(id="r1", particular="A", unit_type=UnitType.PER_BL)))
        assert len(exc.value.problems) == 1


class TestValidateRateMatrixCommand:
    def _write(self, tmp_path, payload):
        path = tmp_path / "matrices.json"
        path.write_text(json.dumps(payload))
        return str(path)

    def test_all_good(self, tmp_path):
        path = self._write(
            tmp_path,
            {"id": "m1", "serviceType": "Brokerage", "rows": [{"id": "r1", "particular": "A", "modeColumns": {"FCL": 100}}]},
        )
        out = StringIO()
        call_command("validate_rate_matrix", path, stdout=out)
        assert "All 1 matrices look good" in out.getvalue()

    def test_reports_warnings(self, tmp_path):
        path = self._write(
            tmp_path,
            [
                {"id": "m1", "serviceType": "Brokerage", "rows": [{"id": "r1", "particular": "A"}]},
                {"id": "m2", "serviceType": "Trucking", "rows": "not-a-list"},
            ],
        )
        out = StringIO()
        call_command("validate_rate_matrix", path, stdout=out)

        output = out.getvalue()
        assert "can never bill" in output
        assert "Matrix #1 could not be read" in output
        assert "Found issues in 2 out of 2 matrices" in output

    def test_strict_fails(self, tmp_path):
        path = self._write(tmp_path, [{"id": "m1", "serviceType": "Brokerage", "rows": [{"id": "r1", "particular": "A"}]}])
        with pytest.raises(CommandError, match="Found issues"):
            call_command("validate_rate_matrix", path, "--strict", stdout=StringIO())

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(CommandError, match="Cannot read"):
            call_command("validate_rate_matrix", str(tmp_path / "missing.json"), stdout=StringIO())
