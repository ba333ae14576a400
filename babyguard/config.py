"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Sensor address and alert policy come from the environment, never from code
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()


class SensorConfig(BaseModel):
    """Where and how to reach the sensor's HTTP endpoint."""

    base_url: str = Field(
        default="http://192.168.1.77:3000", description="Base address of the sensor API"
    )
    path: str = Field(default="/api/dados", description="Path returning the latest reading")
    timeout_seconds: float = Field(
        default=5.0, gt=0.0, description="Network timeout for a single fetch"
    )

    @field_validator("base_url")
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Sensor base URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("path")
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("Sensor path must start with '/'")
        return v

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.path}"


class MonitoringConfig(BaseModel):
    """Acquisition loop configuration."""

    poll_interval_seconds: float = Field(
        default=1.0, gt=0.0, description="Fixed interval between sensor polls"
    )


class AlertConfig(BaseModel):
    """Alert deduplication and delivery policy."""

    cooldown_seconds: float = Field(
        default=300.0, gt=0.0, description="Minimum time between alerts of the same kind"
    )
    attention_sound: bool = Field(default=True, description="Play a sound for attention alerts")
    attention_vibration: bool = Field(default=True, description="Vibrate for attention alerts")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    sensor: SensorConfig = Field(default_factory=SensorConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    sensor_config = SensorConfig(
        base_url=os.getenv("SENSOR_BASE_URL", "http://192.168.1.77:3000"),
        path=os.getenv("SENSOR_PATH", "/api/dados"),
        timeout_seconds=float(os.getenv("SENSOR_TIMEOUT_SECONDS", "5.0")),
    )

    monitoring_config = MonitoringConfig(
        poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "1.0")),
    )

    alert_config = AlertConfig(
        cooldown_seconds=float(os.getenv("ALERT_COOLDOWN_SECONDS", "300")),
        attention_sound=_parse_bool(os.getenv("ALERT_ATTENTION_SOUND"), True),
        attention_vibration=_parse_bool(os.getenv("ALERT_ATTENTION_VIBRATION"), True),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        sensor=sensor_config,
        monitoring=monitoring_config,
        alerts=alert_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
