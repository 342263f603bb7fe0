"""Validation for destination records read from the record store.

A malformed destination is excluded from policy, alert and scoring output
with a reported ValidationError; the remaining destinations proceed unaffected.
"""

from ecocapacity.validation.destination import DestinationValidator, parse_destinations
from ecocapacity.validation.errors import ValidationError

__all__ = [
    "ValidationError",
    "DestinationValidator",
    "parse_destinations",
]
