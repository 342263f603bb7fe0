#!/usr/bin/env python

"""Watch a running API server's change events and print a summary on every change.

Reconnects with exponential backoff whenever the stream drops, and re-pulls
the full snapshot on connect and after each event.

Usage:
    uv run python scripts/watch_events.py
    uv run python scripts/watch_events.py --api-url http://localhost:8085
"""

import asyncio
import logging
from typing import Annotated

import httpx
import typer
from settings import ScriptSettings

from ecocapacity.common.log_utils import configure_logging
from ecocapacity.models.events import ChangeEvent
from ecocapacity.notifier.client import EventStreamClient

configure_logging()
logger = logging.getLogger(__name__)

app = typer.Typer(help="Watch change events from the API server")


async def _watch(settings: ScriptSettings) -> None:
    async with httpx.AsyncClient() as http:

        async def refresh(event: ChangeEvent | None) -> None:
            trigger = event.type.value if event else "connected"
            response = await http.get(settings.snapshot_url, timeout=30.0)
            response.raise_for_status()
            snapshot = response.json()

            typer.secho(f"[{trigger}] {snapshot['generated_at']}", bold=True)
            for state in snapshot["destinations"]:
                capacity = state["capacity"]
                typer.echo(
                    f"  {state['destination']['id']}: "
                    f"{capacity['available_spots']}/{capacity['adjusted_capacity']} available"
                )
            for alert in snapshot["alerts"]:
                typer.echo(f"  ! {alert['severity']}: {alert['title']}")

        client = EventStreamClient(settings.events_url, refresh, client=http)
        await client.run()


@app.command()
def main(
    api_url: Annotated[
        str | None,
        typer.Option(help="Base URL of the API server (default from scripts/.env)"),
    ] = None,
) -> None:
    """Print the snapshot whenever the server reports a change."""
    settings = ScriptSettings(api_url=api_url) if api_url else ScriptSettings()
    logger.info(f"Watching {settings.events_url}")
    try:
        asyncio.run(_watch(settings))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    app()
