"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from telemetry_engine.domain.models import MetricThreshold, MetricType, ThresholdSettings

# Load environment variables from .env file
load_dotenv()


class SimulationConfig(BaseModel):
    """Core simulation settings."""

    cpu_interval_seconds: float = Field(default=2.0, gt=0.0, description="CPU tick cadence")
    memory_interval_seconds: float = Field(default=3.0, gt=0.0, description="Memory tick cadence")
    disk_interval_seconds: float = Field(default=5.0, gt=0.0, description="Disk tick cadence")
    network_interval_seconds: float = Field(
        default=1.5, gt=0.0, description="Network tick cadence"
    )

    retention_limit: int = Field(
        default=100, gt=0, description="Maximum alerts and logs kept in the snapshot"
    )
    background_log_probability: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Chance of a background log per update"
    )
    random_alert_probability: float = Field(
        default=0.05, ge=0.0, le=1.0, description="Chance of a background alert per update"
    )
    seed: int | None = Field(default=None, description="Seed for reproducible runs")

    def interval_for(self, metric_type: MetricType) -> float:
        return getattr(self, f"{metric_type.value}_interval_seconds")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    thresholds: ThresholdSettings = Field(default_factory=ThresholdSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


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


def _threshold_from_env(metric_type: MetricType, default: MetricThreshold) -> MetricThreshold:
    prefix = metric_type.value.upper()
    return MetricThreshold(
        warning=float(os.getenv(f"{prefix}_WARNING_THRESHOLD", str(default.warning))),
        critical=float(os.getenv(f"{prefix}_CRITICAL_THRESHOLD", str(default.critical))),
    )


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    seed = os.getenv("SIMULATION_SEED")
    simulation_config = SimulationConfig(
        cpu_interval_seconds=float(os.getenv("CPU_INTERVAL_SECONDS", "2.0")),
        memory_interval_seconds=float(os.getenv("MEMORY_INTERVAL_SECONDS", "3.0")),
        disk_interval_seconds=float(os.getenv("DISK_INTERVAL_SECONDS", "5.0")),
        network_interval_seconds=float(os.getenv("NETWORK_INTERVAL_SECONDS", "1.5")),
        retention_limit=int(os.getenv("RETENTION_LIMIT", "100")),
        seed=int(seed) if seed else None,
    )

    defaults = ThresholdSettings()
    thresholds = ThresholdSettings(
        **{
            metric_type.value: _threshold_from_env(metric_type, defaults.for_metric(metric_type))
            for metric_type in MetricType
        }
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        simulation=simulation_config,
        thresholds=thresholds,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nSIMULATION")
    for metric_type in MetricType:
        print(f"{metric_type.value} interval: {config.simulation.interval_for(metric_type)}s")
    print(f"Retention: {config.simulation.retention_limit} alerts/logs")

    print("\nTHRESHOLDS")
    for metric_type in MetricType:
        threshold = config.thresholds.for_metric(metric_type)
        print(f"{metric_type.value}: warning {threshold.warning}, critical {threshold.critical}")


if __name__ == "__main__":
    print_config_summary()
