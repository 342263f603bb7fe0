"""End-to-end tests of the HTTP API over an in-memory store."""

import pytest

from ecocapacity.exceptions import WeatherProviderError
from ecocapacity.models.enums import EventType

pytestmark = pytest.mark.integration


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "subscribers": 0, "monitor_running": False}

    def test_trace_id_echoed(self, client):
        response = client.get("/health", headers={"x-request-id": "trace-123"})

        assert response.headers["x-request-id"] == "trace-123"


class TestDestinationEndpoints:
    def test_list_destinations(self, client):
        response = client.get("/destinations")

        assert response.status_code == 200
        assert [d["id"] for d in response.json()] == ["forest", "meadow", "valley"]

    def test_list_includes_inactive(self, client):
        response = client.get("/destinations", params={"active_only": False})

        assert "closed" in [d["id"] for d in response.json()]

    def test_capacity(self, client):
        response = client.get("/destinations/forest/capacity")

        assert response.status_code == 200
        body = response.json()
        assert body["base_capacity"] == 255
        assert body["adjusted_capacity"] == 255
        assert body["available_spots"] == 225

    def test_capacity_unknown_destination(self, client):
        response = client.get("/destinations/nowhere/capacity")

        assert response.status_code == 404
        assert "nowhere" in response.json()["detail"]

    def test_capacity_malformed_destination(self, client, malformed_destination):
        response = client.get(f"/destinations/{malformed_destination}/capacity")

        assert response.status_code == 422
        assert "max_capacity" in response.json()["detail"]

    def test_booking_within_capacity(self, client):
        response = client.get("/destinations/forest/booking", params={"group_size": 10})

        assert response.status_code == 200
        assert response.json()["allowed"] is True

    def test_booking_rejects_zero_group(self, client):
        response = client.get("/destinations/forest/booking", params={"group_size": 0})

        assert response.status_code == 422

    def test_update_occupancy(self, client, context, mocker):
        publish = mocker.spy(context.broadcaster, "publish_type")

        response = client.put("/destinations/forest/occupancy", json={"occupancy": 100})

        assert response.status_code == 200
        assert response.json()["available_spots"] == 155
        assert context.repository.fetch_destination("forest").current_occupancy == 100
        publish.assert_called_once_with(EventType.CAPACITY_UPDATE, "forest")

    def test_update_occupancy_rejects_negative(self, client):
        response = client.put("/destinations/forest/occupancy", json={"occupancy": -5})

        assert response.status_code == 422

    def test_sustainability(self, client):
        response = client.get("/destinations/meadow/sustainability")

        assert response.status_code == 200
        body = response.json()
        assert body["destination_id"] == "meadow"
        assert 0 <= body["overall_score"] <= 100

    def test_carbon_offset(self, client):
        response = client.get("/destinations/meadow/carbon-offset", params={"group_size": 2})

        assert response.status_code == 200
        assert response.json()["estimated_co2_kg"] > 0

    def test_alternatives(self, client):
        response = client.get("/destinations/valley/alternatives", params={"k": 1})

        assert response.status_code == 200
        assert [d["id"] for d in response.json()] == ["meadow"]

    def test_set_capacity_override(self, client, context, mocker):
        publish = mocker.spy(context.broadcaster, "publish_type")

        response = client.put(
            "/destinations/forest/capacity-override",
            json={"multiplier": 0.5, "reason": "Trail repairs"},
        )

        assert response.status_code == 200
        body = response.json()
        # round_half_up(255 x 0.5)
        assert body["adjusted_capacity"] == 128
        assert body["active_factors"]["override"] is True
        assert body["binding_factor"] == "override"
        assert body["display_message"].endswith("by operator override: Trail repairs")
        publish.assert_called_once_with(EventType.CAPACITY_UPDATE, "forest")
        assert client.get("/destinations/forest/capacity").json()["adjusted_capacity"] == 128

    def test_clear_capacity_override(self, client, context, mocker):
        client.put(
            "/destinations/forest/capacity-override",
            json={"multiplier": 0.5, "reason": "Trail repairs"},
        )
        publish = mocker.spy(context.broadcaster, "publish_type")

        response = client.delete("/destinations/forest/capacity-override")

        assert response.status_code == 204
        publish.assert_called_once_with(EventType.CAPACITY_UPDATE, "forest")
        body = client.get("/destinations/forest/capacity").json()
        assert body["adjusted_capacity"] == 255
        assert body["active_factors"]["override"] is False

    @pytest.mark.parametrize(
        "payload",
        [
            {"multiplier": 0, "reason": "Closed"},
            {"multiplier": 1.2, "reason": "Festival"},
            {"multiplier": 0.5, "reason": ""},
            {"multiplier": 0.5, "reason": "Repairs", "expires_at": "2099-01-01T00:00:00"},
            {"multiplier": 0.5, "reason": "Repairs", "expires_at": "2000-01-01T00:00:00Z"},
        ],
    )
    def test_capacity_override_rejects_invalid(self, client, payload):
        response = client.put("/destinations/forest/capacity-override", json=payload)

        assert response.status_code == 422
        assert client.get("/destinations/forest/capacity").json()["override_factor"] == 1.0

    def test_capacity_override_unknown_destination(self, client):
        response = client.put(
            "/destinations/nowhere/capacity-override",
            json={"multiplier": 0.5, "reason": "Trail repairs"},
        )

        assert response.status_code == 404


class TestSnapshot:
    def test_snapshot(self, client):
        response = client.get("/snapshot")

        assert response.status_code == 200
        body = response.json()
        assert len(body["destinations"]) == 3
        critical = [a for a in body["alerts"] if a["severity"] == "critical"]
        assert [a["id"] for a in critical] == ["eco-capacity-valley"]
        assert body["errors"] == []


class TestAlertEndpoints:
    def test_create_list_and_deactivate(self, client):
        created = client.post(
            "/alerts",
            json={
                "type": "maintenance",
                "title": "Bridge repair",
                "message": "North bridge closed",
                "severity": "medium",
                "destination_id": "forest",
            },
        )
        assert created.status_code == 201
        alert_id = created.json()["id"]

        listed = client.get("/alerts").json()
        assert alert_id in [a["id"] for a in listed]

        assert client.delete(f"/alerts/{alert_id}").status_code == 204
        assert alert_id not in [a["id"] for a in client.get("/alerts").json()]

    def test_create_for_unknown_destination(self, client):
        response = client.post(
            "/alerts",
            json={
                "type": "emergency",
                "title": "Flood",
                "message": "Evacuate",
                "severity": "critical",
                "destination_id": "nowhere",
            },
        )

        assert response.status_code == 404

    def test_create_rejects_blank_title(self, client):
        response = client.post(
            "/alerts",
            json={"type": "emergency", "title": "", "message": "Evacuate", "severity": "high"},
        )

        assert response.status_code == 422

    def test_deactivate_unknown_alert(self, client):
        assert client.delete("/alerts/missing").status_code == 404


class TestWeatherEndpoints:
    def test_check_all(self, client, context, mocker):
        publish = mocker.spy(context.broadcaster, "publish_type")

        response = client.post("/weather/check")

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == 3
        assert body["failed"] == 0
        assert body["alerts_raised"] == 3
        publish.assert_called_once_with(EventType.WEATHER_UPDATE_AVAILABLE)

    def test_check_destination_narrows_capacity(self, client):
        response = client.post("/weather/check/forest")

        assert response.status_code == 200
        assert response.json()["alert_level"] == "high"
        capacity = client.get("/destinations/forest/capacity").json()
        # 255 x 0.65
        assert capacity["adjusted_capacity"] == 166
        assert capacity["binding_factor"] == "weather"

    def test_check_destination_provider_failure(self, client, provider):
        provider.fetch_reading.side_effect = WeatherProviderError("HTTP 503 from provider")

        response = client.post("/weather/check/forest")

        assert response.status_code == 502
        assert client.get("/destinations/forest/capacity").json()["weather_factor"] == 1.0

    def test_check_unknown_destination(self, client):
        assert client.post("/weather/check/nowhere").status_code == 404
