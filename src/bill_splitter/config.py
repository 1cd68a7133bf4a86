"""Configuration management for Bill Splitter."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BILL_SPLITTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Snapshot file holding participants and bills
    data_path: Path = Path.home() / ".bill_splitter" / "ledger.json"

    # Report settings
    currency_symbol: str = "$"

    # Seed the demo bills when no data file exists yet
    seed_demo_data: bool = True

    log_level: str = "INFO"

    def __init__(self, **kwargs):
        """Initialize settings and create data directory if needed."""
        super().__init__(**kwargs)
        self.data_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the BILL_SPLITTER_* variables "
            f"in your environment or .env file.\n"
            f"Error: {e}"
        ) from e
