"""Application configuration via environment variables and .env file."""

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings
from pydantic_settings.sources import DotEnvSettingsSource, PydanticBaseSettingsSource

# Path to .env file (patch in tests to use tmp_path / ".env")
_ENV_FILE: Path = Path(".env")


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "SAFEWATT_",
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

    # Storage: telemetry.db (sessions + readings) and commands.db live here
    data_dir: Path = Path("./data")

    # Logging
    log_level: str = "info"

    # Liveness
    device_timeout: int = 60  # seconds of silence before a device is expired
    sweep_interval: int = 30  # seconds between liveness sweeps

    # Ring-buffer retention
    reading_retention: int = 10000
    command_retention: int = 1000

    # Admin credential (single shared account)
    auth_username: str = "admin"
    auth_password: str = "admin123"

    # Optional webhook fired when a device goes offline
    webhook_url: str | None = None

    # Background simulated devices
    # Env: SAFEWATT_SIMULATED_DEVICES="TEST_VAULTER:VAULTER,TEST_CIQ:CIRQUITIQ"
    simulated_devices: list[str] = []
    simulation_interval: int = 5

    # Re-send stored configuration to a device when it registers again
    reapply_config_on_reconnect: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    @field_validator("simulated_devices", mode="before")
    @classmethod
    def parse_simulated_devices(cls, v: object) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return [s for s in v if s]
        return []

    @model_validator(mode="after")
    def check_sweep_interval(self) -> "Settings":
        if self.sweep_interval <= 0 or self.device_timeout <= 0:
            raise ValueError("device_timeout and sweep_interval must be positive")
        if self.sweep_interval >= self.device_timeout:
            raise ValueError("sweep_interval must be shorter than device_timeout")
        return self

    def get_simulated_devices(self) -> list[tuple[str, str]]:
        """Return (device_id, device_type) pairs; type defaults to VAULTER."""
        pairs: list[tuple[str, str]] = []
        for entry in self.simulated_devices:
            device_id, _, device_type = entry.partition(":")
            if device_id.strip():
                pairs.append((device_id.strip(), (device_type.strip() or "VAULTER").upper()))
        return pairs

    @property
    def telemetry_db_path(self) -> Path:
        return self.data_dir / "telemetry.db"

    @property
    def command_db_path(self) -> Path:
        return self.data_dir / "commands.db"


def load_config() -> Settings:
    """Load configuration from .env and environment (env overrides .env)."""
    return Settings()


settings = Settings()
