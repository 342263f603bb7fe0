"""Unit tests for logging, tracing and metrics helpers."""

import json
import logging

from starlette.applications import Starlette
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from ecocapacity.common.log_utils import EndpointFilter, ExtraFieldsFilter, configure_logging
from ecocapacity.common.metrics import counter, gauge
from ecocapacity.common.tracing import TraceIdMiddleware, ctx_trace_id


def make_record(message: str) -> logging.LogRecord:
    return logging.LogRecord("uvicorn.access", logging.INFO, __file__, 1, message, None, None)


class TestEndpointFilter:
    def test_filters_listed_paths(self):
        endpoint_filter = EndpointFilter(["/health", "/events"])

        assert not endpoint_filter.filter(make_record('127.0.0.1 - "GET /health HTTP/1.1" 200'))
        assert not endpoint_filter.filter(make_record('127.0.0.1 - "GET /events HTTP/1.1" 200'))
        assert endpoint_filter.filter(make_record('127.0.0.1 - "GET /snapshot HTTP/1.1" 200'))

    def test_single_path(self):
        endpoint_filter = EndpointFilter("/health")

        assert endpoint_filter.filter(make_record('"GET /healthcheck HTTP/1.1" 200'))


class TestExtraFieldsFilter:
    def test_adds_trace_id(self):
        token = ctx_trace_id.set("abc123")
        try:
            record = make_record("hello")
            ExtraFieldsFilter().filter(record)
        finally:
            ctx_trace_id.reset(token)

        assert record.trace == {"id": "abc123"}
        assert record.trace_id == "abc123"

    def test_outside_request(self):
        record = make_record("hello")

        ExtraFieldsFilter().filter(record)

        assert record.trace_id == "-"
        assert not hasattr(record, "trace")


class TestTraceIdMiddleware:
    def app(self):
        async def whoami(request):
            return JSONResponse({"trace_id": ctx_trace_id.get()})

        app = Starlette(routes=[Route("/whoami", whoami)])
        app.add_middleware(TraceIdMiddleware)
        return app

    def test_propagates_inbound_id(self):
        response = TestClient(self.app()).get("/whoami", headers={"x-request-id": "req-1"})

        assert response.json() == {"trace_id": "req-1"}
        assert response.headers["x-request-id"] == "req-1"

    def test_generates_missing_id(self):
        response = TestClient(self.app()).get("/whoami")

        generated = response.headers["x-request-id"]
        assert len(generated) == 32
        assert response.json() == {"trace_id": generated}


class TestConfigureLogging:
    def test_uses_dev_config_locally(self, tmp_path, monkeypatch, mocker):
        monkeypatch.delenv("ECS_CONTAINER_METADATA_URI_V4", raising=False)
        monkeypatch.delenv("ECS_CONTAINER_METADATA_URI", raising=False)
        monkeypatch.delenv("LOG_CONFIG", raising=False)
        config = {"version": 1, "disable_existing_loggers": False}
        (tmp_path / "logging-dev.json").write_text(json.dumps(config))
        dict_config = mocker.patch("logging.config.dictConfig")

        configure_logging(tmp_path)

        dict_config.assert_called_once_with(config)

    def test_uses_ecs_config_in_ecs(self, tmp_path, monkeypatch, mocker):
        monkeypatch.setenv("ECS_CONTAINER_METADATA_URI_V4", "http://169.254.170.2/v4")
        monkeypatch.delenv("LOG_CONFIG", raising=False)
        config = {"version": 1, "root": {"level": "INFO"}}
        (tmp_path / "logging.json").write_text(json.dumps(config))
        dict_config = mocker.patch("logging.config.dictConfig")

        configure_logging(tmp_path)

        dict_config.assert_called_once_with(config)

    def test_falls_back_without_file(self, tmp_path, monkeypatch, mocker):
        monkeypatch.delenv("LOG_CONFIG", raising=False)
        basic_config = mocker.patch("logging.basicConfig")

        configure_logging(tmp_path)

        basic_config.assert_called_once()


class TestMetrics:
    def test_counter_puts_metric(self, mocker):
        put_metric = mocker.patch("ecocapacity.common.metrics._put_metric")

        counter("WeatherIngestFailures", 3)

        put_metric.assert_called_once_with("WeatherIngestFailures", 3, "Count", {})

    def test_counter_dimensions(self, mocker):
        put_metric = mocker.patch("ecocapacity.common.metrics._put_metric")

        counter("WeatherIngestFailures", 2, kind="timeout")

        put_metric.assert_called_once_with("WeatherIngestFailures", 2, "Count", {"kind": "timeout"})

    def test_counter_never_raises(self, mocker):
        mocker.patch("ecocapacity.common.metrics._put_metric", side_effect=RuntimeError("no agent"))

        counter("WeatherIngestFailures")

    def test_gauge(self, mocker):
        put_metric = mocker.patch("ecocapacity.common.metrics._put_metric")

        gauge("ConnectedObservers", 4)

        put_metric.assert_called_once_with("ConnectedObservers", 4, "None", {})
