"""Settings for development scripts (seeding, weather checks, event watching).

Values are read from scripts/.env with no prefix; every field has a local default.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the directory where this settings.py file is located
_SCRIPT_DIR = Path(__file__).parent


class ScriptSettings(BaseSettings):
    """Configuration for development scripts."""

    model_config = SettingsConfigDict(
        env_file=str(_SCRIPT_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_url: str = Field(
        default="http://localhost:8085", description="Base URL of a running API server"
    )
    seed_file: Path = Field(
        default=_SCRIPT_DIR / "destinations.example.json",
        description="JSON list of destination records to seed",
    )

    @property
    def events_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/events"

    @property
    def snapshot_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/snapshot"
