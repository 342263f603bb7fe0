"""Outbound clients."""

from ecocapacity.clients.weather_provider import WeatherProviderClient

__all__ = ["WeatherProviderClient"]
