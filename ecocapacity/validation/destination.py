"""Destination record validator."""

from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ecocapacity.models.domain import Destination
from ecocapacity.validation.errors import ValidationError


class DestinationValidator:
    """Validates raw destination records before they reach policy or scoring.

    Checks:
    - Required fields present (id, name, max_capacity, current_occupancy,
      ecological_sensitivity)
    - Field types and bounds (max_capacity > 0, current_occupancy >= 0,
      known sensitivity tier, coordinate ranges)
    - Sustainability feature ratios within [0, 1]
    """

    def required_fields(self) -> list[str]:
        """Return fields every destination record must carry."""
        return ["id", "name", "max_capacity", "current_occupancy", "ecological_sensitivity"]

    def validate(self, record: dict[str, Any]) -> list[ValidationError]:
        """Validate one raw destination record.

        Args:
            record: Column mapping as read from the record store

        Returns:
            List of validation errors (empty if valid)
        """
        destination_id = record.get("id")
        missing = [
            field for field in self.required_fields() if record.get(field) in (None, "")
        ]
        if missing:
            return [
                ValidationError(
                    message=f"Missing required fields: {', '.join(missing)}",
                    field="fields",
                    destination_id=destination_id,
                )
            ]

        try:
            Destination.model_validate(record)
        except PydanticValidationError as e:
            return [
                ValidationError(
                    message=f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}",
                    field=str(err["loc"][0]) if err["loc"] else None,
                    destination_id=destination_id,
                )
                for err in e.errors()
            ]

        return []


def parse_destinations(
    records: Iterable[dict[str, Any]],
    validator: DestinationValidator | None = None,
) -> tuple[list[Destination], list[ValidationError]]:
    """Split raw records into valid destinations and reported errors.

    Args:
        records: Raw destination records
        validator: Validator to use (default: DestinationValidator())

    Returns:
        Tuple of (destinations, errors), destinations in input order
    """
    validator = validator or DestinationValidator()
    destinations: list[Destination] = []
    errors: list[ValidationError] = []

    for record in records:
        record_errors = validator.validate(record)
        if record_errors:
            errors.extend(record_errors)
            continue
        destinations.append(Destination.model_validate(record))

    return destinations, errors
