"""Backfill configuration from environment variables and an optional YAML file."""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from core.errors import ConfigurationError
from core.security import validate_gateway_url

DEFAULT_TIMEOUT_SECONDS = 4.0
DEFAULT_CONCURRENCY = 32
DEFAULT_LOG_DIR = "logs"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _getenv(*names: str) -> Optional[str]:
    """Return the first set environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value is not None:
            return value
    return None


def _parse_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def load_yaml_config(path: Path) -> Dict[str, Any]:
    """
    Load the 'backfill:' section of a YAML config file.

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(yaml_data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    section = yaml_data.get("backfill", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"'backfill' section in {path} must be a mapping")
    return section


@dataclass
class BackfillConfig:
    """Backfill connection and behavior configuration.

    Load using BackfillConfig.load() (YAML + environment) or
    BackfillConfig.from_env(). Timing values are in seconds.
    """

    # Connections
    postgres_url: str
    ipfs_url: str
    ipfs_auth: Optional[str] = None

    # Behavior
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    concurrency: int = DEFAULT_CONCURRENCY
    dry_run: bool = False

    # Observability
    log_dir: str = DEFAULT_LOG_DIR
    metrics_port: int = 0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check invariants, raising ConfigurationError on the first violation."""
        if not self.postgres_url:
            raise ConfigurationError("POSTGRES_URL is required")
        if not self.ipfs_url:
            raise ConfigurationError("IPFS_URL is required")

        is_valid, error = validate_gateway_url(self.ipfs_url)
        if not is_valid:
            raise ConfigurationError(f"IPFS_URL is not a usable base URL: {error}")

        if self.concurrency < 1:
            raise ConfigurationError(
                f"Concurrency must be at least 1, got {self.concurrency}"
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"Timeout must be positive, got {self.timeout_seconds}"
            )
        if not 0 <= self.metrics_port <= 65535:
            raise ConfigurationError(f"Invalid metrics port: {self.metrics_port}")

    @classmethod
    def from_env(cls, defaults: Optional[Mapping[str, Any]] = None) -> "BackfillConfig":
        """Load configuration from environment variables.

        Required environment variables:
            POSTGRES_URL: Postgres connection URL (also read as postgres_url)
            IPFS_URL: IPFS gateway base URL (also read as ipfs_url)

        Optional environment variables (with defaults):
            IPFS_AUTH: Query string appended to gateway requests (also ipfs_auth)
            IPFS_TIMEOUT_SECONDS: 4 (default)
            BACKFILL_CONCURRENCY: 32 (default)
            BACKFILL_DRY_RUN: false (default)
            LOG_DIR: logs (default)
            METRICS_PORT: 0 (default, disabled)

        Args:
            defaults: Values used when a variable is not set (e.g. from YAML)

        Raises:
            ConfigurationError: If required values are missing or invalid
        """
        defaults = dict(defaults or {})

        def value(key: str, *env_names: str) -> Any:
            env_value = _getenv(*env_names)
            return env_value if env_value is not None else defaults.get(key)

        postgres_url = value("postgres_url", "POSTGRES_URL", "postgres_url")
        ipfs_url = value("ipfs_url", "IPFS_URL", "ipfs_url")
        if not postgres_url:
            raise ConfigurationError("POSTGRES_URL environment variable is required")
        if not ipfs_url:
            raise ConfigurationError("IPFS_URL environment variable is required")

        # An empty auth string means "no query"
        ipfs_auth = value("ipfs_auth", "IPFS_AUTH", "ipfs_auth") or None

        timeout = value("timeout_seconds", "IPFS_TIMEOUT_SECONDS")
        concurrency = value("concurrency", "BACKFILL_CONCURRENCY")
        dry_run = value("dry_run", "BACKFILL_DRY_RUN")
        log_dir = value("log_dir", "LOG_DIR")
        metrics_port = value("metrics_port", "METRICS_PORT")

        return cls(
            postgres_url=str(postgres_url),
            ipfs_url=str(ipfs_url),
            ipfs_auth=str(ipfs_auth) if ipfs_auth is not None else None,
            timeout_seconds=(
                _parse_float("IPFS_TIMEOUT_SECONDS", timeout)
                if timeout is not None
                else DEFAULT_TIMEOUT_SECONDS
            ),
            concurrency=(
                _parse_int("BACKFILL_CONCURRENCY", concurrency)
                if concurrency is not None
                else DEFAULT_CONCURRENCY
            ),
            dry_run=(
                _parse_bool("BACKFILL_DRY_RUN", dry_run)
                if dry_run is not None
                else False
            ),
            log_dir=str(log_dir) if log_dir else DEFAULT_LOG_DIR,
            metrics_port=(
                _parse_int("METRICS_PORT", metrics_port)
                if metrics_port is not None
                else 0
            ),
        )

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "BackfillConfig":
        """Load configuration with priority: environment > YAML file > defaults."""
        defaults = load_yaml_config(config_path) if config_path else {}
        return cls.from_env(defaults=defaults)

    def with_overrides(self, **overrides: Any) -> "BackfillConfig":
        """Return a copy with non-None overrides applied (used for CLI flags)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self
