"""API server process with the background weather monitor."""

import logging
import sys

import uvicorn
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ecocapacity.api import create_app
from ecocapacity.api.dependencies import build_context
from ecocapacity.clients.weather_provider import WeatherProviderClient
from ecocapacity.common.log_utils import configure_logging
from ecocapacity.config import (
    AlertConfig,
    ApiServerConfig,
    DatabaseSettings,
    IngestConfig,
    NotifierConfig,
    PolicyConfig,
    ProviderConfig,
    SustainabilityConfig,
    WeatherThresholdConfig,
)
from ecocapacity.repositories.engine import create_db_engine
from ecocapacity.repositories.repository import Repository

logger = logging.getLogger(__name__)


def check_database_connection(engine: Engine) -> bool:
    """Check if the database is accessible.

    Attempts to connect and execute a simple query.
    Logs a warning on failure but does not raise.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection check: OK")
        return True
    except SQLAlchemyError as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


def main():
    """Main entry point for the API server."""
    configure_logging()
    provider = None

    try:
        api_config = ApiServerConfig()
        db_settings = DatabaseSettings()

        logger.info("Initializing engine components...")
        engine = create_db_engine(db_settings)
        check_database_connection(engine)

        provider_config = ProviderConfig()
        if not provider_config.api_key:
            logger.warning("PROVIDER_API_KEY is not set; weather checks will fail")
        provider = WeatherProviderClient(provider_config)

        context = build_context(
            Repository(engine),
            provider,
            policy_config=PolicyConfig(),
            thresholds=WeatherThresholdConfig(),
            alert_config=AlertConfig(),
            sustainability_config=SustainabilityConfig(),
            ingest_config=IngestConfig(),
            notifier_config=NotifierConfig(),
        )
        app = create_app(
            context,
            trace_header=api_config.trace_header,
            start_monitor=api_config.monitor_enabled,
        )

        logger.info(f"API server starting on {api_config.host}:{api_config.port}")
        uvicorn.run(app, host=api_config.host, port=api_config.port, log_config=None)

    except Exception as e:
        logger.exception(f"Server failed to start: {e}")
        sys.exit(1)

    finally:
        if provider is not None:
            provider.close()


if __name__ == "__main__":
    main()
