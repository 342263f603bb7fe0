#!/usr/bin/env python

"""Run a weather check against the record store without the API server.

Fetches a fresh reading for every active destination (or one destination),
classifies it and stores the observation and any weather alert.

Configuration:
    PROVIDER_API_KEY must be set; DB_URL selects the database.

Usage:
    uv run python scripts/check_weather.py
    uv run python scripts/check_weather.py --destination coral-bay
"""

import logging
from typing import Annotated

import typer

from ecocapacity.clients.weather_provider import WeatherProviderClient
from ecocapacity.common.log_utils import configure_logging
from ecocapacity.config import DatabaseSettings, IngestConfig, WeatherThresholdConfig
from ecocapacity.exceptions import EcoCapacityError
from ecocapacity.repositories.engine import create_db_engine
from ecocapacity.repositories.repository import Repository
from ecocapacity.services.weather_ingest import WeatherIngestService

configure_logging()
logger = logging.getLogger(__name__)

app = typer.Typer(help="Fetch and store weather observations")


@app.command()
def main(
    destination: Annotated[
        str | None,
        typer.Option(help="Check a single destination id instead of all active ones"),
    ] = None,
) -> None:
    """Ingest fresh weather readings and report alerts and failures."""
    repository = Repository(create_db_engine(DatabaseSettings()))
    provider = WeatherProviderClient()
    service = WeatherIngestService(
        repository, provider, WeatherThresholdConfig(), IngestConfig()
    )

    try:
        if destination:
            try:
                observation = service.ingest_destination(repository.fetch_destination(destination))
            except (EcoCapacityError, TimeoutError) as e:
                typer.secho(f"{destination}: {e}", fg=typer.colors.RED, err=True)
                raise typer.Exit(code=1) from e
            typer.echo(
                f"{destination}: {observation.alert_level.value} "
                f"({observation.alert_reason or 'no alert'})"
            )
            return

        result = service.run_batch(repository.fetch_destinations(active_only=True))
        for observation in result.observations:
            colour = typer.colors.YELLOW if observation.alert_level.rank > 0 else None
            typer.secho(
                f"{observation.destination_id}: {observation.alert_level.value}", fg=colour
            )
        for failure in result.failures:
            typer.secho(
                f"{failure.destination_id}: {failure.kind.value} - {failure.reason}",
                fg=typer.colors.RED,
                err=True,
            )
        logger.info(
            f"{result.succeeded} checked, {result.failed} failed, "
            f"{result.alerts_raised} weather alert(s)"
        )
        if result.failed and not result.succeeded:
            raise typer.Exit(code=1)
    finally:
        provider.close()


if __name__ == "__main__":
    app()
