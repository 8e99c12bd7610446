import json

from django.core.management.base import BaseCommand, CommandError

from contract_rates.serializers import ContractRateMatrixSerializer
from contract_rates.services.validation import validate_rate_matrix


class Command(BaseCommand):
    help = "Validates contract rate matrices exported as JSON (one matrix or a list of them)."

    def add_arguments(self, parser):
        parser.add_argument("path", type=str, help="JSON file holding a rate matrix or a list of rate matrices")
        parser.add_argument("--strict", action="store_true", help="Exit with an error if any matrix has warnings")

    def handle(self, *args, **options):
        path = options["path"]
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except OSError as e:
            raise CommandError(f"Cannot read {path}: {e}")
        except json.JSONDecodeError as e:
            raise CommandError(f"Invalid JSON in {path}: {e}")

        raw_matrices = payload if isinstance(payload, list) else [payload]
        if not raw_matrices:
            self.stdout.write(self.style.WARNING("No rate matrices found in the file to validate."))
            return

        self.stdout.write(f"Validating {len(raw_matrices)} rate matri{'x' if len(raw_matrices) == 1 else 'ces'}...")
        matrices_with_warnings = 0

        for index, raw in enumerate(raw_matrices):
            ser = ContractRateMatrixSerializer(data=raw)
            if not ser.is_valid():
                matrices_with_warnings += 1
                self.stdout.write(self.style.WARNING(f"--- Matrix #{index} could not be read ---"))
                self.stdout.write(f"  - {json.dumps(ser.errors)}")
                continue

            matrix = ser.save()
            warnings = validate_rate_matrix(matrix)
            if warnings:
                matrices_with_warnings += 1
                self.stdout.write(self.style.WARNING(f"--- Matrix {matrix.id} ({matrix.service_type}, {len(matrix.rows)} rows) ---"))
                for warning in warnings:
                    self.stdout.write(f"  - {warning}")

        self.stdout.write("-" * 20)
        if matrices_with_warnings > 0:
            message = f"Validation complete. Found issues in {matrices_with_warnings} out of {len(raw_matrices)} matrices."
            if options["strict"]:
                raise CommandError(message)
            self.stdout.write(self.style.ERROR(f"\n{message}"))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nValidation complete. All {len(raw_matrices)} matrices look good."))
