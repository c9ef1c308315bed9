"""Application configuration via environment variables and .env file."""

from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode
from pydantic_settings.sources import DotEnvSettingsSource, PydanticBaseSettingsSource

# Path to .env file (patch in tests to use tmp_path / ".env")
_ENV_FILE: Path = Path(".env")


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "CELLZONE_",
        "env_file_encoding": "utf-8",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Load .env from _ENV_FILE (patchable in tests)
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(
                settings_cls,
                env_file=_ENV_FILE,
                env_file_encoding="utf-8",
            ),
            file_secret_settings,
        )

    # Database
    db_path: Path = Path("./data/cellzone.db")

    # Logging
    log_level: str = "info"

    # Cell observers to run simultaneously
    # Env: CELLZONE_OBSERVER_MODES="modem,mock"
    observer_modes: Annotated[list[str], NoDecode] = []

    # Radio family of the handset/modem, fixed for the lifetime of an observer
    network_type: str = "gsm"

    # Mock observer
    mock_interval: int = 5

    # Modem / router status endpoint (JSON)
    modem_url: str | None = None
    modem_username: str | None = None
    modem_password: str | None = None
    poll_interval: int = 15  # seconds between modem polls

    # Sighting processing
    worker_threads: int = 4

    # Labels shown on the status indicator
    no_profile_label: str = "No profile"
    unknown_area_label: str = "Unknown area"

    # Outbound sinks (omit to log only)
    sink_webhook_url: str | None = None
    status_webhook_url: str | None = None

    # Authentication (optional, omit to disable)
    auth_username: str = "admin"
    auth_password: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("observer_modes", mode="before")
    @classmethod
    def parse_observer_modes(cls, v: object) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return [s for s in v if s]
        return []

    @field_validator("network_type")
    @classmethod
    def check_network_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("gsm", "cdma"):
            raise ValueError(f"network_type must be 'gsm' or 'cdma', got {v!r}")
        return v

    @field_validator("worker_threads")
    @classmethod
    def check_worker_threads(cls, v: int) -> int:
        if v < 1:
            raise ValueError("worker_threads must be at least 1")
        return v


def load_config() -> Settings:
    """Load configuration from .env and environment (env overrides .env)."""
    return Settings()


settings = Settings()
