"""Service configuration using pydantic-settings with env var and YAML file support.

Env vars (ESL_ prefix) take precedence over YAML config file values.
Required: ESL_DATABASE_PATH, ESL_AIMS_BASE_URL, ESL_AIMS_USERNAME,
ESL_AIMS_PASSWORD, ESL_AIMS_COMPANY. Missing any causes an immediate exit.
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import Optional

import pydantic
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from validation.config import DriftConfig, validate_config

logger = logging.getLogger(__name__)

_YAML_CONFIG_PATH = "/config/esl-drift.yml"


class AppSettings(BaseSettings):
    """Drift reconciliation service configuration.

    Precedence (highest to lowest):
    1. ESL_-prefixed environment variables
    2. YAML config file at /config/esl-drift.yml
    3. Defaults defined below
    """

    model_config = SettingsConfigDict(
        env_prefix="ESL_",
        yaml_file=_YAML_CONFIG_PATH,
        yaml_file_encoding="utf-8",
    )

    # Required, no defaults; a missing value exits at startup
    database_path: str
    aims_base_url: str
    aims_username: str
    aims_password: str
    aims_company: str

    # Optional with sensible defaults
    aims_cluster: Optional[str] = None
    aims_timeout: float = 30.0
    queue_path: str = "data/resync_queue"
    port: int = 8080
    log_level: str = "info"

    # Drift job tunables, validated again by DriftConfig
    drift_enabled: bool = True
    drift_interval: float = 300.0
    drift_warmup_delay: float = 10.0
    drift_max_records_per_store: int = 100
    drift_max_resync_per_store: int = 10
    drift_entity_type: str = "person"
    drift_manual_verify_mode: str = "concurrent"
    # Comma-separated remote identity fields; unset keeps the built-in chain
    drift_remote_id_aliases: Optional[str] = None

    @pydantic.field_validator("aims_base_url", mode="after")
    @classmethod
    def validate_aims_base_url(cls, v: str) -> str:
        """Validate aims_base_url is an HTTP/HTTPS URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("aims_base_url must start with http:// or https://")
        return v.rstrip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Return sources in priority order: init > env > YAML."""
        return (init_settings, env_settings, YamlConfigSettingsSource(settings_cls))

    def drift_values(self) -> dict:
        """Raw engine tunables from the drift_* settings."""
        values = dict(
            enabled=self.drift_enabled,
            interval=self.drift_interval,
            warmup_delay=self.drift_warmup_delay,
            max_records_per_store=self.drift_max_records_per_store,
            max_resync_per_store=self.drift_max_resync_per_store,
            entity_type=self.drift_entity_type,
            manual_verify_mode=self.drift_manual_verify_mode,
        )
        if self.drift_remote_id_aliases is not None:
            values["remote_id_aliases"] = self.drift_remote_id_aliases
        return values

    def to_drift_config(self) -> DriftConfig:
        """Build the validated engine config from the drift_* settings."""
        return DriftConfig(**self.drift_values())


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return the cached AppSettings instance.

    Exits with a helpful error message if required settings are missing
    or invalid.
    """
    try:
        settings = AppSettings()
    except pydantic.ValidationError as exc:
        missing: list[str] = []
        for error in exc.errors():
            if error.get("type") == "missing":
                loc = error.get("loc", ())
                if loc:
                    missing.append(f"ESL_{str(loc[0]).upper()}")

        if missing:
            names = ", ".join(missing)
            print(
                f"\nMissing required configuration: {names}\n"
                f"Set these as environment variables or add them to {_YAML_CONFIG_PATH}\n"
                f"Example:\n"
                f"  export ESL_DATABASE_PATH=/data/replica.db\n"
                f"  export ESL_AIMS_BASE_URL=https://aims.example.com\n",
                file=sys.stderr,
            )
        else:
            print(f"\nConfiguration error:\n{exc}\n", file=sys.stderr)
        sys.exit(1)

    _, drift_error = validate_config(settings.drift_values())
    if drift_error:
        print(f"\nInvalid drift configuration: {drift_error}\n", file=sys.stderr)
        sys.exit(1)
    return settings
