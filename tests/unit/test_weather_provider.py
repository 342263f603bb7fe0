"""Unit tests for the weather provider client."""

import httpx
import pytest

from ecocapacity.clients import WeatherProviderClient
from ecocapacity.clients.weather_provider import parse_realtime_payload
from ecocapacity.config import ProviderConfig
from ecocapacity.exceptions import WeatherProviderError

PAYLOAD = {
    "data": {
        "time": "2026-10-15T06:00:00Z",
        "values": {
            "temperature": 31.2,
            "humidity": 80,
            "windSpeed": 4.1,
            "precipitationIntensity": 0.3,
        },
    }
}


@pytest.fixture
def config():
    return ProviderConfig(base_url="https://weather.test/v4/weather", api_key="secret")


def client_for(config, handler) -> WeatherProviderClient:
    transport = httpx.MockTransport(handler)
    return WeatherProviderClient(config, client=httpx.Client(transport=transport))


class TestParseRealtimePayload:
    def test_parses_reading(self):
        reading = parse_realtime_payload(PAYLOAD)

        assert reading.temperature == 31.2
        assert reading.wind_speed == 4.1
        assert reading.precipitation_intensity == 0.3
        assert reading.recorded_at.year == 2026

    def test_missing_values(self):
        with pytest.raises(WeatherProviderError, match="missing"):
            parse_realtime_payload({"data": {"time": "2026-10-15T06:00:00Z"}})

    def test_out_of_range_values(self):
        payload = {"data": {**PAYLOAD["data"], "values": {**PAYLOAD["data"]["values"]}}}
        payload["data"]["values"]["humidity"] = 140

        with pytest.raises(WeatherProviderError, match="invalid field"):
            parse_realtime_payload(payload)

    def test_non_mapping_payload(self):
        with pytest.raises(WeatherProviderError):
            parse_realtime_payload(["not", "a", "mapping"])


class TestWeatherProviderClient:
    """Tests for fetch_reading against a mocked transport."""

    def test_fetch_reading_sends_location_and_key(self, config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json=PAYLOAD)

        reading = client_for(config, handler).fetch_reading(30.72, 79.6)

        assert reading.temperature == 31.2
        assert seen["url"].path == "/v4/weather/realtime"
        assert seen["url"].params["location"] == "30.72,79.6"
        assert seen["url"].params["units"] == "metric"
        assert seen["url"].params["apikey"] == "secret"

    def test_http_error_status(self, config):
        client = client_for(config, lambda request: httpx.Response(503))

        with pytest.raises(WeatherProviderError, match="HTTP 503"):
            client.fetch_reading(0, 0)

    def test_timeout(self, config):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(WeatherProviderError, match="timed out"):
            client_for(config, handler).fetch_reading(0, 0)

    def test_connection_error(self, config):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(WeatherProviderError, match="request failed"):
            client_for(config, handler).fetch_reading(0, 0)

    def test_non_json_body(self, config):
        client = client_for(config, lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(WeatherProviderError, match="non-JSON"):
            client.fetch_reading(0, 0)

    def test_unconfigured_key(self):
        client = WeatherProviderClient(ProviderConfig(api_key=""))

        with pytest.raises(WeatherProviderError, match="not configured"):
            client.fetch_reading(0, 0)
