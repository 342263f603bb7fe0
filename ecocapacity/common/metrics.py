"""CloudWatch metrics via AWS Embedded Metrics Format (EMF).

Ingest outcomes and observer connections are reported as EMF metrics; the
library ships them to the CloudWatch agent when one is configured.

Configuration via environment variables:
- AWS_EMF_ENVIRONMENT: Set to "local" to print metrics to stdout instead
- AWS_EMF_AGENT_ENDPOINT: CloudWatch agent endpoint (e.g., tcp://127.0.0.1:25888)
- AWS_EMF_NAMESPACE: CloudWatch namespace for metrics
- AWS_EMF_SERVICE_NAME: Service dimension (e.g., ecocapacity)
"""

from logging import getLogger

from aws_embedded_metrics import metric_scope
from aws_embedded_metrics.storage_resolution import StorageResolution

logger = getLogger(__name__)


@metric_scope
def _put_metric(
    metric_name: str, value: float, unit: str, dimensions: dict[str, str], metrics
) -> None:
    logger.debug("put metric: %s - %s - %s %s", metric_name, value, unit, dimensions)
    if dimensions:
        metrics.put_dimensions(dimensions)
    metrics.put_metric(metric_name, value, unit, StorageResolution.STANDARD)


def _emit(metric_name: str, value: float, unit: str, dimensions: dict[str, str]) -> None:
    # Metric failures are logged and never reach the caller
    try:
        _put_metric(metric_name, value, unit, dimensions)
    except Exception as e:
        logger.error("Error calling put_metric: %s", e)


def counter(metric_name: str, value: float = 1, **dimensions: str) -> None:
    """Increment a CloudWatch counter metric.

    Args:
        metric_name: Name of the metric in CloudWatch
        value: Counter value to record (default: 1)
        **dimensions: Extra dimensions, e.g. ``kind="provider"``
    """
    _emit(metric_name, value, "Count", dimensions)


def gauge(metric_name: str, value: float) -> None:
    """Record the current level of something, e.g. connected observers."""
    _emit(metric_name, value, "None", {})
