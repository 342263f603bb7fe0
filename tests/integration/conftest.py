"""Integration test fixtures: an in-memory SQLite record store per test."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from ecocapacity.api import create_app
from ecocapacity.api.dependencies import AppContext, build_context
from ecocapacity.clients.weather_provider import WeatherProviderClient
from ecocapacity.config import DatabaseSettings, IngestConfig
from ecocapacity.models.db import DestinationRecord
from ecocapacity.models.domain import SustainabilityFeatures, WeatherReading
from ecocapacity.models.enums import SensitivityLevel, WasteManagementLevel
from ecocapacity.repositories.engine import create_db_engine
from ecocapacity.repositories.repository import Repository
from ecocapacity.services.weather_ingest import WeatherIngestService
from tests.utils import NOW, make_destination

# One shared in-memory connection: ingest one destination at a time
SERIAL_INGEST = IngestConfig(max_workers=1, interval_seconds=0)


@pytest.fixture
def test_engine() -> Engine:
    """Fresh in-memory database with the schema created."""
    engine = create_db_engine(DatabaseSettings(url="sqlite://", create_schema=True))
    yield engine
    engine.dispose()


@pytest.fixture
def repository(test_engine: Engine) -> Repository:
    return Repository(test_engine)


@pytest.fixture
def sample_destinations(repository: Repository):
    """Three active destinations and one closed one.

    - valley: high sensitivity, 600 of 650 adjusted spots taken
    - meadow: low sensitivity, quiet, well certified
    - forest: medium sensitivity, quiet
    - closed: inactive
    """
    destinations = [
        make_destination(
            "valley",
            name="Valley of Flowers",
            max_capacity=1000,
            current_occupancy=600,
            sensitivity=SensitivityLevel.HIGH,
        ),
        make_destination(
            "meadow",
            name="Alpine Meadow",
            max_capacity=400,
            current_occupancy=40,
            features=SustainabilityFeatures(
                waste_management_level=WasteManagementLevel.CERTIFIED,
                wildlife_protection_program=True,
                has_renewable_energy=True,
                certifications=("GSTC", "Green Key", "EarthCheck"),
                local_employment_ratio=0.9,
            ),
        ),
        make_destination(
            "forest",
            name="Cedar Forest",
            max_capacity=300,
            current_occupancy=30,
            sensitivity=SensitivityLevel.MEDIUM,
        ),
        make_destination("closed", name="Closed Cave", is_active=False),
    ]
    for destination in destinations:
        repository.upsert_destination(destination)
    return destinations


@pytest.fixture
def windy_reading() -> WeatherReading:
    """A reading classified as high (wind above 15 m/s)."""
    return WeatherReading(
        temperature=20.0,
        humidity=50.0,
        wind_speed=16.0,
        precipitation_intensity=0.0,
        recorded_at=NOW,
    )


@pytest.fixture
def provider(windy_reading) -> MagicMock:
    provider = MagicMock(spec=WeatherProviderClient)
    provider.fetch_reading.return_value = windy_reading
    return provider


@pytest.fixture
def ingest_service(repository, provider) -> WeatherIngestService:
    return WeatherIngestService(repository, provider, config=SERIAL_INGEST)


@pytest.fixture
def context(repository, provider, sample_destinations) -> AppContext:
    return build_context(repository, provider, ingest_config=SERIAL_INGEST)


@pytest.fixture
def client(context):
    """TestClient with the app lifespan running."""
    with TestClient(create_app(context)) as client:
        yield client


@pytest.fixture
def malformed_destination(repository, sample_destinations) -> str:
    """Active row with max_capacity=0, written past the domain model."""
    with repository.session() as session, session.begin():
        session.add(
            DestinationRecord(
                id="broken",
                name="Broken Record",
                location="",
                max_capacity=0,
                current_occupancy=5,
                ecological_sensitivity=SensitivityLevel.LOW,
                is_active=True,
            )
        )
    return "broken"
