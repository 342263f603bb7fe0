"""HTTP client for the external realtime weather provider.

Speaks the Tomorrow.io v4 realtime shape:

    GET {base_url}/realtime?location={lat},{lon}&units=metric&apikey=...

    {"data": {"time": "...", "values": {"temperature": 31.2, "humidity": 80,
              "windSpeed": 4.1, "precipitationIntensity": 0.3, ...}}}

Every failure mode (transport error, timeout, non-2xx status, payload that
does not describe a valid reading) surfaces as WeatherProviderError so the
ingest step can treat it as one retryable category.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from ecocapacity.config import ProviderConfig
from ecocapacity.exceptions import WeatherProviderError
from ecocapacity.models.domain import WeatherReading

logger = logging.getLogger(__name__)


def parse_realtime_payload(payload: Any) -> WeatherReading:
    """Map a realtime response body onto a WeatherReading.

    Raises:
        WeatherProviderError: If required fields are missing or out of range
    """
    try:
        data = payload["data"]
        values = data["values"]
        return WeatherReading(
            temperature=values["temperature"],
            humidity=values["humidity"],
            wind_speed=values["windSpeed"],
            precipitation_intensity=values.get("precipitationIntensity", 0.0),
            recorded_at=data["time"],
        )
    except (KeyError, TypeError) as e:
        msg = f"Malformed provider payload: missing {e}"
        raise WeatherProviderError(msg) from e
    except PydanticValidationError as e:
        msg = f"Malformed provider payload: {e.error_count()} invalid field(s)"
        raise WeatherProviderError(msg) from e


class WeatherProviderClient:
    """Synchronous realtime weather client.

    Safe to share between ingest worker threads: httpx.Client is thread-safe
    and pools connections.

    Attributes:
        config: Provider configuration (base URL, API key, timeout)
    """

    def __init__(self, config: ProviderConfig | None = None, client: httpx.Client | None = None):
        self.config = config or ProviderConfig()
        self._client = client or httpx.Client(timeout=self.config.request_timeout_seconds)

    def fetch_reading(self, latitude: float, longitude: float) -> WeatherReading:
        """Fetch the current reading for a coordinate.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees

        Returns:
            WeatherReading

        Raises:
            WeatherProviderError: On any transport, status or payload failure
        """
        if not self.config.is_configured:
            raise WeatherProviderError("Weather provider API key is not configured")

        url = f"{self.config.base_url.rstrip('/')}/realtime"
        params = {
            "location": f"{latitude},{longitude}",
            "units": "metric",
            "apikey": self.config.api_key,
        }

        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            msg = f"Weather provider timed out for {latitude},{longitude}"
            raise WeatherProviderError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"Weather provider returned HTTP {e.response.status_code}"
            raise WeatherProviderError(msg) from e
        except httpx.HTTPError as e:
            msg = f"Weather provider request failed: {e}"
            raise WeatherProviderError(msg) from e
        except ValueError as e:
            msg = "Weather provider returned a non-JSON body"
            raise WeatherProviderError(msg) from e

        reading = parse_realtime_payload(payload)
        logger.debug(f"Fetched reading for {latitude},{longitude} at {reading.recorded_at}")
        return reading

    def close(self) -> None:
        self._client.close()
