"""Background weather monitor.

Runs a weather ingest batch over all active destinations every
``INGEST_INTERVAL_SECONDS`` (6 hours by default) on a daemon thread, and on
demand through ``check_now``. Every completed check publishes a change event
so connected observers re-pull state.
"""

import logging
import threading
import time

from ecocapacity.config import IngestConfig
from ecocapacity.models.domain import WeatherObservation
from ecocapacity.models.enums import EventType
from ecocapacity.notifier.broadcaster import Broadcaster
from ecocapacity.repositories.repository import Repository
from ecocapacity.services.weather_ingest import IngestBatchResult, WeatherIngestService

logger = logging.getLogger(__name__)


class WeatherMonitor:
    """Periodic and on-demand weather checks.

    Checks never overlap: a check requested while another is running waits
    for it to finish.
    """

    def __init__(
        self,
        repository: Repository,
        ingest_service: WeatherIngestService,
        broadcaster: Broadcaster,
        config: IngestConfig | None = None,
    ):
        self.repository = repository
        self.ingest_service = ingest_service
        self.broadcaster = broadcaster
        self.config = config or IngestConfig()
        self.running = False
        self.last_run_at: float | None = None
        self._stop = threading.Event()
        self._check_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    def check_now(self) -> IngestBatchResult:
        """Re-run weather ingest across all active destinations.

        Idempotent: re-running with unchanged provider readings upserts the
        same observations and alerts.
        """
        with self._check_lock:
            destinations = self.repository.fetch_destinations(active_only=True)
            result = self.ingest_service.run_batch(destinations)
            self.last_run_at = time.time()

        self.broadcaster.publish_type(EventType.WEATHER_UPDATE_AVAILABLE)
        return result

    def check_destination(self, destination_id: str) -> WeatherObservation:
        """Re-run weather ingest for one destination.

        Raises:
            DestinationNotFoundError: If the destination does not exist
            WeatherProviderError: If the provider fails
        """
        destination = self.repository.fetch_destination(destination_id)
        with self._check_lock:
            observation = self.ingest_service.ingest_destination(destination)

        self.broadcaster.publish_type(EventType.WEATHER_UPDATE, destination_id)
        return observation

    def _loop(self) -> None:
        logger.info(f"Weather monitor started (every {self.config.interval_seconds}s)")
        while not self._stop.is_set():
            try:
                self.check_now()
            except Exception as e:
                logger.exception(f"Weather monitor cycle failed: {e}")
            self._stop.wait(self.config.interval_seconds)
        logger.info("Weather monitor stopped")

    def start(self) -> None:
        """Start the periodic loop. No-op when the interval is 0 or already running."""
        if self.running or self.config.interval_seconds == 0:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="weather-monitor", daemon=True)
        self._thread.start()
        self.running = True

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self.running = False
