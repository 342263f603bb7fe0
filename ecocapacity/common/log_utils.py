"""Logging setup and filters for ECS-compatible structured logging.

Provides:
- configure_logging(): dictConfig from logging.json (ECS) or logging-dev.json (local)
- ExtraFieldsFilter: trace id and HTTP request/response details in ECS format
- EndpointFilter: drops access-log lines for noisy endpoints (/health, /events)
"""

import json
import logging
import logging.config
import os
from pathlib import Path

from ecocapacity.common.tracing import ctx_request, ctx_response, ctx_trace_id

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def is_running_in_ecs() -> bool:
    """Detect if running in AWS ECS.

    ECS injects metadata URI environment variables into every container;
    they are never present locally.
    """
    return bool(
        os.environ.get("ECS_CONTAINER_METADATA_URI_V4")
        or os.environ.get("ECS_CONTAINER_METADATA_URI")
    )


def configure_logging(config_dir: Path = PROJECT_ROOT) -> None:
    """Configure logging based on environment.

    In ECS: Uses logging.json with ECS-compatible structured logging,
    trace ID injection, and health check filtering.

    Locally: Uses logging-dev.json with simple text format for readability.
    LOG_CONFIG overrides the file path in either case.
    """
    config_file = "logging.json" if is_running_in_ecs() else "logging-dev.json"
    config_path = Path(os.environ.get("LOG_CONFIG", config_dir / config_file))

    if config_path.exists():
        with open(config_path) as f:
            logging.config.dictConfig(json.load(f))
    else:
        logging.basicConfig(
            level=logging.INFO,
            format=(
                '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                '"logger": "%(name)s", "message": "%(message)s"}'
            ),
            datefmt="%Y-%m-%dT%H:%M:%S",
        )


class ExtraFieldsFilter(logging.Filter):
    """Adds ECS-compatible fields to log records.

    Enhances log records with:
    - trace.id: Request trace ID for cross-service correlation
    - trace_id: The same id as a flat field ("-" outside requests) for format strings
    - url.full: Full request URL
    - http.request.method: HTTP method
    - http.response.status_code: Response status code
    """

    def filter(self, record: logging.LogRecord) -> bool:
        trace_id = ctx_trace_id.get()
        req = ctx_request.get()
        resp = ctx_response.get()

        record.trace_id = trace_id or "-"
        if trace_id:
            record.trace = {"id": trace_id}

        http = {}
        if req:
            record.url = {"full": req.get("url")}
            http["request"] = {"method": req.get("method")}
        if resp:
            http["response"] = resp
        if http:
            record.http = http

        return True


class EndpointFilter(logging.Filter):
    """Filters out access-log messages for the given endpoints.

    Args:
        paths: Endpoint paths to filter (e.g., ["/health", "/events"])
    """

    def __init__(self, paths: list[str] | str, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._paths = [paths] if isinstance(paths, str) else list(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        return not any(f" {path} " in message or message.endswith(path) for path in self._paths)
