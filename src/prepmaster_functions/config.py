"""Configuration for the PrepMaster backend jobs."""

from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"


class Config(BaseModel):
    """Deployment configuration. Every field has a default."""

    firebase_credentials_path: Path | None = None  # None: application default credentials
    project_id: str | None = None
    timezone: str = "America/Los_Angeles"
    expo_push_url: str = EXPO_PUSH_URL
    push_chunk_size: int = Field(default=90, ge=1, le=100)
    push_timeout_seconds: float = 15.0
    forecast_lookback_days: int = 28
    forecast_horizon_days: int = 7
    max_generate_days_ahead: int = 30
    host: str = "0.0.0.0"
    port: int = 8080
    event_secret: str | None = None  # required in X-PrepMaster-Secret on write events when set
    watch_poll_seconds: float = 1.0

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(path: Path | None) -> Config:
    """Load configuration from a JSON file, or defaults when no path is given."""
    if path is None:
        return Config()
    return Config.model_validate_json(path.read_text())
