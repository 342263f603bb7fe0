"""Exceptions for the eco capacity engine."""


class EcoCapacityError(Exception):
    """Base exception for engine errors."""


class DestinationNotFoundError(EcoCapacityError):
    """Raised when a destination id is unknown to the record store."""

    def __init__(self, destination_id: str):
        super().__init__(f"Destination {destination_id!r} not found")
        self.destination_id = destination_id


class AlertNotFoundError(EcoCapacityError):
    """Raised when an alert id is unknown to the record store."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert {alert_id!r} not found")
        self.alert_id = alert_id


class WeatherProviderError(EcoCapacityError):
    """Raised when the weather provider is unavailable or returns malformed data.

    Callers treat this as retryable: nothing was written for the destination.
    """


class InvalidDestinationError(EcoCapacityError):
    """Raised when a stored destination record fails validation."""

    def __init__(self, destination_id: str, errors: list):
        messages = "; ".join(error.message for error in errors)
        super().__init__(f"Destination {destination_id!r} is malformed: {messages}")
        self.destination_id = destination_id
        self.errors = errors


class InvalidOverrideError(EcoCapacityError):
    """Raised when a capacity override could never apply."""
