"""
Configuration models and loading for workload runs.

This module provides:
- Validated, immutable models for the connection, workload and output settings
- Loading of YAML configuration files
- Merging of command-line overrides on top of file values
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

CONSISTENCY_LEVELS = (
    "ONE",
    "TWO",
    "THREE",
    "QUORUM",
    "ALL",
    "LOCAL_QUORUM",
    "EACH_QUORUM",
    "SERIAL",
    "LOCAL_SERIAL",
    "LOCAL_ONE",
)

DISTRIBUTIONS = ("sequential", "uniform", "normal", "poisson", "binomial", "geometric", "zipf")

PAYLOAD_KINDS = ("devices", "users", "cache")


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class ConnectionConfig(BaseModel):
    """Settings handed to the store client when connecting to the cluster."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "127.0.0.1:9042"
    username: Optional[str] = None
    password: Optional[str] = None
    consistency_level: str = "LOCAL_QUORUM"
    replication_factor: int = Field(default=1, ge=1)
    datacenter: str = "datacenter1"
    tablets: Optional[int] = Field(default=None, ge=0)
    migrate: bool = True
    connect_timeout: float = Field(default=120.0, gt=0)
    max_connect_delay: float = Field(default=20.0, gt=0)

    @field_validator("consistency_level")
    @classmethod
    def _normalize_consistency(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in CONSISTENCY_LEVELS:
            raise ValueError(
                f"unknown consistency level {value!r}, expected one of {', '.join(CONSISTENCY_LEVELS)}"
            )
        return normalized

    @property
    def contact_point(self) -> str:
        return self.host.rsplit(":", 1)[0] if ":" in self.host else self.host

    @property
    def port(self) -> int:
        if ":" in self.host:
            return int(self.host.rsplit(":", 1)[1])
        return 9042


class WorkloadConfig(BaseModel):
    """Workload shape shared read-only by every worker."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    readers: int = Field(default=10, ge=0)
    writers: int = Field(default=90, ge=0)
    distribution: str = "uniform"
    rate_min: float = Field(default=0.0, ge=0)
    rate_max: float = Field(default=0.0, ge=0)
    rate_period: float = Field(default=60.0, ge=0)
    cardinality: int = Field(default=1_000_000, ge=1)
    payload: str = "devices"
    seed: Optional[int] = None
    tick_interval: float = Field(default=1.0, gt=0)
    sample_queue_size: int = Field(default=1000, ge=1)

    @field_validator("distribution")
    @classmethod
    def _lower_distribution(cls, value: str) -> str:
        # Unknown names are kept; the sampler falls back to uniform for them.
        return value.strip().lower()

    @field_validator("payload")
    @classmethod
    def _check_payload(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in PAYLOAD_KINDS:
            raise ValueError(f"unknown payload {value!r}, expected one of {', '.join(PAYLOAD_KINDS)}")
        return value

    @model_validator(mode="after")
    def _check_rates(self) -> "WorkloadConfig":
        if self.rate_min > 0 and self.rate_max > 0 and self.rate_min > self.rate_max:
            raise ValueError(f"rate_min ({self.rate_min}) must not exceed rate_max ({self.rate_max})")
        return self


class OutputConfig(BaseModel):
    """Where logs and run reports go."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    log_file: str = "wideload.log"
    log_level: str = "INFO"
    summary_json_path: Optional[str] = None
    history_csv_path: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"unknown log level {value!r}")
        return value


class RunConfig(BaseModel):
    """Complete configuration of a single run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    workload: WorkloadConfig = Field(default_factory=WorkloadConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RunConfig":
        """Build and validate a configuration from a plain dictionary.

        Raises:
            ConfigurationError: If any section fails validation.
        """
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            raise ConfigurationError(_format_validation_error(e)) from e

    @classmethod
    def from_yaml_file(cls, config_path: str) -> "RunConfig":
        """Create a configuration from a YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Validated RunConfig instance
        """
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse configuration file {config_path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

        logger.info(f"Loaded configuration from {config_path}")
        return cls.from_dict(data)

    def with_overrides(self, overrides: Dict[str, Dict[str, Any]]) -> "RunConfig":
        """Return a new configuration with per-section overrides applied.

        Args:
            overrides: Mapping of section name to the fields to replace, e.g.
                ``{"workload": {"readers": 4}}``. ``None`` values are ignored.
        """
        data = self.model_dump()
        for section, values in overrides.items():
            if section not in data:
                raise ConfigurationError(f"Unknown configuration section: {section}")
            data[section].update({k: v for k, v in values.items() if v is not None})
        return RunConfig.from_dict(data)


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "Invalid configuration: " + "; ".join(messages)


def example_config() -> Dict[str, Any]:
    """Return an example configuration as a plain dictionary."""
    return {
        "connection": {
            "host": "127.0.0.1:9042",
            "consistency_level": "LOCAL_QUORUM",
            "replication_factor": 3,
            "datacenter": "datacenter1",
            "tablets": 0,
            "migrate": True,
        },
        "workload": {
            "readers": 10,
            "writers": 90,
            "payload": "devices",
            "distribution": "zipf",
            "cardinality": 1_000_000,
            "rate_min": 10,
            "rate_max": 100,
            "rate_period": 60,
        },
        "output": {
            "log_file": "wideload.log",
            "log_level": "INFO",
            "summary_json_path": "results/summary.json",
            "history_csv_path": "results/history.csv",
        },
    }
