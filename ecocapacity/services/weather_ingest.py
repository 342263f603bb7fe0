"""Weather observation ingest.

For each destination: fetch a reading from the provider, classify it, and
persist the observation plus (when its level is above none) a weather alert
in one transaction. Observation and alert ids are derived from the
destination id and the reading time, so re-running with the same reading
upserts the same rows and at-least-once retry is safe.

Batches run every destination independently on a thread pool. A failure or
timeout for one destination is captured in the batch result and never
affects the others.
"""

import logging
import threading
import time
import uuid
from collections import Counter
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from ecocapacity.alerts.aggregator import WEATHER_ID_NAMESPACE, build_weather_alert
from ecocapacity.calculators.weather import build_alert_message, classify_reading
from ecocapacity.clients.weather_provider import WeatherProviderClient
from ecocapacity.common.metrics import counter
from ecocapacity.config import DEFAULT_WEATHER_THRESHOLDS, IngestConfig, WeatherThresholdConfig
from ecocapacity.exceptions import InvalidDestinationError, WeatherProviderError
from ecocapacity.models.domain import Destination, WeatherObservation, WeatherReading
from ecocapacity.models.enums import IngestFailureKind
from ecocapacity.repositories.repository import Repository
from ecocapacity.validation.errors import ValidationError

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)


def observation_id(destination_id: str, recorded_at: datetime) -> str:
    """Deterministic observation id for a destination and reading time."""
    instant = _as_utc(recorded_at).isoformat()
    return str(uuid.uuid5(WEATHER_ID_NAMESPACE, f"{destination_id}:{instant}"))


@dataclass(frozen=True)
class IngestFailure:
    """One destination that dropped out of a batch.

    Attributes:
        destination_id: Destination that failed
        reason: Human readable failure description
        kind: Failure category
        last_good_at: Time of the last reading successfully ingested for the
            destination by this process, if any (staleness indicator only)
    """

    destination_id: str
    reason: str
    kind: IngestFailureKind
    last_good_at: datetime | None = None


@dataclass
class IngestBatchResult:
    """Outcome of one ingest batch: N destinations yield N-M observations plus M failures."""

    observations: list[WeatherObservation] = field(default_factory=list)
    failures: list[IngestFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.observations)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def alerts_raised(self) -> int:
        return sum(1 for obs in self.observations if obs.alert_level.rank > 0)


class WeatherIngestService:
    """Fetch-classify-persist pipeline for weather observations.

    Attributes:
        repository: Record store
        provider: Weather provider client
        thresholds: Classification thresholds
        config: Batch sizing and timeouts
    """

    def __init__(
        self,
        repository: Repository,
        provider: WeatherProviderClient,
        thresholds: WeatherThresholdConfig = DEFAULT_WEATHER_THRESHOLDS,
        config: IngestConfig | None = None,
    ):
        self.repository = repository
        self.provider = provider
        self.thresholds = thresholds
        self.config = config or IngestConfig()
        self._last_good: dict[str, WeatherReading] = {}
        self._lock = threading.Lock()

    def last_good_reading(self, destination_id: str) -> WeatherReading | None:
        """Most recent reading ingested for the destination by this process."""
        with self._lock:
            return self._last_good.get(destination_id)

    def ingest_reading(
        self, destination: Destination, reading: WeatherReading
    ) -> WeatherObservation:
        """Classify a reading and persist it with its weather alert.

        Args:
            destination: Destination the reading belongs to
            reading: Raw weather reading

        Returns:
            The persisted WeatherObservation

        Raises:
            SQLAlchemyError: If the store write fails (nothing is committed)
        """
        classification = classify_reading(reading, self.thresholds)
        recorded_at = _as_utc(reading.recorded_at)
        observation = WeatherObservation(
            id=observation_id(destination.id, recorded_at),
            destination_id=destination.id,
            temperature=reading.temperature,
            humidity=reading.humidity,
            wind_speed=reading.wind_speed,
            precipitation_intensity=reading.precipitation_intensity,
            recorded_at=recorded_at,
            alert_level=classification.level,
            alert_message=build_alert_message(reading, classification),
            alert_reason=classification.reason,
        )
        alert = build_weather_alert(observation, destination.name)

        self.repository.save_weather_evaluation(observation, alert)

        with self._lock:
            self._last_good[destination.id] = reading

        logger.info(
            f"Ingested weather for {destination.id}: level={classification.level.value}"
            + (f" ({classification.reason})" if classification.reason else "")
        )
        return observation

    def ingest_destination(self, destination: Destination) -> WeatherObservation:
        """Fetch, classify and persist the current reading for a destination.

        Raises:
            InvalidDestinationError: If the destination has no coordinates
            WeatherProviderError: If the provider fails (nothing is written)
            TimeoutError: If fetching overran the per-destination timeout
            SQLAlchemyError: If the store write fails (nothing is committed)
        """
        if not destination.has_coordinates:
            raise InvalidDestinationError(
                destination.id,
                [
                    ValidationError(
                        message="Coordinates are required for weather lookups",
                        field="latitude",
                        destination_id=destination.id,
                    )
                ],
            )

        deadline = time.monotonic() + self.config.destination_timeout_seconds
        reading = self.provider.fetch_reading(destination.latitude, destination.longitude)
        if time.monotonic() > deadline:
            msg = (
                f"Fetching weather for {destination.id} exceeded "
                f"{self.config.destination_timeout_seconds}s"
            )
            raise TimeoutError(msg)

        return self.ingest_reading(destination, reading)

    def _failure(
        self, destination_id: str, reason: str, kind: IngestFailureKind
    ) -> IngestFailure:
        last_good = self.last_good_reading(destination_id)
        return IngestFailure(
            destination_id=destination_id,
            reason=reason,
            kind=kind,
            last_good_at=last_good.recorded_at if last_good else None,
        )

    def _capture(self, destination_id: str, future: Future) -> WeatherObservation | IngestFailure:
        try:
            return future.result(timeout=0)
        except WeatherProviderError as e:
            logger.warning(f"Provider failure for {destination_id}: {e}")
            return self._failure(destination_id, str(e), IngestFailureKind.PROVIDER)
        except InvalidDestinationError as e:
            logger.warning(f"Skipping {destination_id}: {e}")
            return self._failure(destination_id, str(e), IngestFailureKind.VALIDATION)
        except TimeoutError as e:
            logger.warning(f"Timed out ingesting {destination_id}: {e}")
            return self._failure(destination_id, str(e), IngestFailureKind.TIMEOUT)
        except SQLAlchemyError as e:
            logger.error(f"Failed to store weather for {destination_id}: {e}")
            return self._failure(destination_id, str(e), IngestFailureKind.STORAGE)
        except Exception as e:
            logger.exception(f"Unexpected error ingesting {destination_id}: {e}")
            return self._failure(destination_id, str(e), IngestFailureKind.INTERNAL)

    def run_batch(self, destinations: Iterable[Destination]) -> IngestBatchResult:
        """Ingest every destination independently.

        Args:
            destinations: Destinations to refresh

        Returns:
            IngestBatchResult with observations and failures in input order
        """
        destinations = list(destinations)
        result = IngestBatchResult()
        if not destinations:
            return result

        start_time = time.time()
        workers = min(self.config.max_workers, len(destinations))
        rounds = -(-len(destinations) // workers)
        batch_timeout = self.config.destination_timeout_seconds * rounds

        logger.info(
            f"Starting weather ingest for {len(destinations)} destinations ({workers} workers)"
        )

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="weather-ingest")
        try:
            futures = [
                (destination.id, executor.submit(self.ingest_destination, destination))
                for destination in destinations
            ]
            wait([future for _, future in futures], timeout=batch_timeout)

            for destination_id, future in futures:
                if not future.done():
                    future.cancel()
                    logger.warning(f"Weather ingest for {destination_id} did not finish in time")
                    result.failures.append(
                        self._failure(
                            destination_id,
                            f"Did not finish within {batch_timeout:.0f}s",
                            IngestFailureKind.TIMEOUT,
                        )
                    )
                    continue

                outcome = self._capture(destination_id, future)
                if isinstance(outcome, IngestFailure):
                    result.failures.append(outcome)
                else:
                    result.observations.append(outcome)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        counter("WeatherObservationsIngested", result.succeeded)
        for kind, count in Counter(f.kind for f in result.failures).items():
            counter("WeatherIngestFailures", count, kind=kind.value)

        logger.info(
            f"Weather ingest complete in {time.time() - start_time:.2f}s: "
            f"{result.succeeded} succeeded, {result.failed} failed, "
            f"{result.alerts_raised} raised alerts"
        )
        return result
