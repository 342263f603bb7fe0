#!/usr/bin/env python

"""Seed destinations into the record store.

Reads a JSON list of destination records, validates each one and upserts the
valid ones. Invalid records are reported and skipped.

Configuration:
    The database URL comes from DB_URL (see ecocapacity.config.DatabaseSettings).
    The default seed file is set via SEED_FILE in scripts/.env.

Usage:
    # Seed the bundled example destinations
    uv run python scripts/seed_destinations.py

    # Seed from another file, validating only
    uv run python scripts/seed_destinations.py --file my_destinations.json --dry-run
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from settings import ScriptSettings

from ecocapacity.common.log_utils import configure_logging
from ecocapacity.config import DatabaseSettings
from ecocapacity.repositories.engine import create_db_engine
from ecocapacity.repositories.repository import Repository
from ecocapacity.validation.destination import parse_destinations

configure_logging()
logger = logging.getLogger(__name__)

app = typer.Typer(help="Seed destinations into the record store")


@app.command()
def main(
    file: Annotated[
        Path | None,
        typer.Option(help="JSON file holding a list of destination records"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(help="Validate records without writing them"),
    ] = False,
) -> None:
    """Validate and upsert destination records."""
    seed_file = file or ScriptSettings().seed_file
    if not seed_file.exists():
        typer.secho(f"Seed file not found: {seed_file}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    with open(seed_file) as f:
        records = json.load(f)
    if not isinstance(records, list):
        typer.secho("Seed file must hold a JSON list", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    destinations, errors = parse_destinations(records)
    for error in errors:
        typer.secho(
            f"Skipping {error.destination_id or '(no id)'}: {error.message}",
            fg=typer.colors.YELLOW,
            err=True,
        )

    if dry_run:
        logger.info(f"Dry run: {len(destinations)} valid, {len(errors)} invalid")
        return

    repository = Repository(create_db_engine(DatabaseSettings()))
    for destination in destinations:
        repository.upsert_destination(destination)
        logger.info(f"Upserted {destination.id} ({destination.ecological_sensitivity.value})")

    typer.secho(
        f"Seeded {len(destinations)} destination(s), skipped {len(errors)}",
        fg=typer.colors.GREEN,
    )


if __name__ == "__main__":
    app()
