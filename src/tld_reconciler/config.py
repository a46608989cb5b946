"""
Configuration dataclasses for the TLD reconciler.

This module defines all configuration structures used throughout the system,
including upstream source URLs, data directory layout, HTTP fetching, retry
logic, logging and the HTTP API, plus helpers to create, load and save them.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigError


DEFAULT_DATA_DIR = Path("data")
DEFAULT_CONFIG_PATH = Path.home() / ".tld_reconciler" / "config.json"

VALID_LOG_LEVELS = ("debug", "info", "warn", "error")
VALID_OUTPUT_FORMATS = ("json", "text", "both")


@dataclass
class SourceConfig:
    """Upstream IANA source URLs."""

    rdap_bootstrap_url: str = "https://data.iana.org/rdap/dns.json"
    tld_list_url: str = "https://data.iana.org/TLD/tlds-alpha-by-domain.txt"
    root_zone_db_url: str = "https://www.iana.org/domains/root/db"


@dataclass
class PathsConfig:
    """Data directory layout."""

    data_dir: Path = DEFAULT_DATA_DIR

    @property
    def canonical_dir(self) -> Path:
        return self.data_dir / "canonical"

    @property
    def generated_dir(self) -> Path:
        return self.data_dir / "generated"

    @property
    def supplemental_file(self) -> Path:
        return self.data_dir / "supplemental.json"


@dataclass
class FetchConfig:
    """HTTP download settings."""

    timeout_seconds: float = 30.0
    user_agent: str = "tld-reconciler"


@dataclass
class RetryConfig:
    """Retry behavior configuration."""

    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0
    retryable_errors: list[str] = field(
        default_factory=lambda: ["timeout", "server_error", "rate_limited", "network_error"]
    )


@dataclass
class LoggingConfig:
    """Diagnostic logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class ApiConfig:
    """HTTP API server settings."""

    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    sources: SourceConfig = field(default_factory=SourceConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


def create_default_config(data_dir: Optional[Path] = None) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        data_dir: Root directory for canonical, generated and supplemental data

    Returns:
        SystemConfig with default settings
    """
    return SystemConfig(
        paths=PathsConfig(data_dir=data_dir or DEFAULT_DATA_DIR),
    )


def validate_config(config: SystemConfig) -> None:
    """
    Check configuration values that would otherwise fail later.

    Raises:
        ConfigError: If any value is out of range or unsupported
    """
    if config.logging.level not in VALID_LOG_LEVELS:
        raise ConfigError(
            code="invalid_log_level",
            message=f"Invalid log level: {config.logging.level}",
            details={"allowed": list(VALID_LOG_LEVELS)},
        )
    if config.logging.output_format not in VALID_OUTPUT_FORMATS:
        raise ConfigError(
            code="invalid_output_format",
            message=f"Invalid output format: {config.logging.output_format}",
            details={"allowed": list(VALID_OUTPUT_FORMATS)},
        )
    if config.fetch.timeout_seconds <= 0:
        raise ConfigError(
            code="invalid_timeout",
            message="HTTP timeout must be positive",
        )
    if config.retry.max_retries < 0:
        raise ConfigError(
            code="invalid_retry",
            message="max_retries cannot be negative",
        )
    for name, url in (
        ("rdap_bootstrap_url", config.sources.rdap_bootstrap_url),
        ("tld_list_url", config.sources.tld_list_url),
        ("root_zone_db_url", config.sources.root_zone_db_url),
    ):
        if not url.startswith("https://"):
            raise ConfigError(
                code="insecure_url",
                message=f"Source URL must use HTTPS: {name}",
                details={"url": url},
            )
    if not 0 < config.api.port < 65536:
        raise ConfigError(
            code="invalid_port",
            message=f"Invalid API port: {config.api.port}",
        )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if the file exists, None otherwise

    Raises:
        ConfigError: If the file exists but cannot be parsed or is invalid
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(
            code="unreadable_config",
            message=f"Could not read config from {config_path}: {e}",
            details={"path": str(config_path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            code="invalid_config",
            message="Configuration root must be a JSON object",
            details={"path": str(config_path)},
        )

    try:
        sources_data = data.get("sources", {})
        defaults = SourceConfig()
        sources = SourceConfig(
            rdap_bootstrap_url=sources_data.get("rdap_bootstrap_url", defaults.rdap_bootstrap_url),
            tld_list_url=sources_data.get("tld_list_url", defaults.tld_list_url),
            root_zone_db_url=sources_data.get("root_zone_db_url", defaults.root_zone_db_url),
        )

        paths_data = data.get("paths", {})
        paths = PathsConfig(
            data_dir=Path(paths_data.get("data_dir", str(DEFAULT_DATA_DIR))),
        )

        fetch_data = data.get("fetch", {})
        fetch = FetchConfig(
            timeout_seconds=float(fetch_data.get("timeout_seconds", 30.0)),
            user_agent=fetch_data.get("user_agent", "tld-reconciler"),
        )

        retry_data = data.get("retry", {})
        retry = RetryConfig(
            max_retries=int(retry_data.get("max_retries", 3)),
            base_delay_seconds=float(retry_data.get("base_delay_seconds", 1.0)),
            max_delay_seconds=float(retry_data.get("max_delay_seconds", 60.0)),
        )
        if "retryable_errors" in retry_data:
            retry.retryable_errors = list(retry_data["retryable_errors"])

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )

        api_data = data.get("api", {})
        api = ApiConfig(
            host=api_data.get("host", "127.0.0.1"),
            port=int(api_data.get("port", 8000)),
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise ConfigError(
            code="invalid_config",
            message=f"Invalid configuration value: {e}",
            details={"path": str(config_path)},
        ) from e

    config = SystemConfig(
        sources=sources,
        paths=paths,
        fetch=fetch,
        retry=retry,
        logging=logging_config,
        api=api,
    )
    validate_config(config)
    return config


def save_config_to_file(config: SystemConfig, config_path: Path) -> None:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Raises:
        ConfigError: If the file cannot be written
    """
    data = {
        "sources": {
            "rdap_bootstrap_url": config.sources.rdap_bootstrap_url,
            "tld_list_url": config.sources.tld_list_url,
            "root_zone_db_url": config.sources.root_zone_db_url,
        },
        "paths": {
            "data_dir": str(config.paths.data_dir),
        },
        "fetch": {
            "timeout_seconds": config.fetch.timeout_seconds,
            "user_agent": config.fetch.user_agent,
        },
        "retry": {
            "max_retries": config.retry.max_retries,
            "base_delay_seconds": config.retry.base_delay_seconds,
            "max_delay_seconds": config.retry.max_delay_seconds,
            "retryable_errors": list(config.retry.retryable_errors),
        },
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise ConfigError(
            code="write_failed",
            message=f"Could not save config to {config_path}: {e}",
            details={"path": str(config_path)},
        ) from e


def apply_env_overrides(config: SystemConfig, dotenv_path: Optional[Path] = None) -> SystemConfig:
    """
    Apply TLD_RECONCILER_* environment variables on top of a config.

    A ``.env`` file is loaded first (without overriding variables that are
    already set in the process environment).

    Args:
        config: Configuration to update in place
        dotenv_path: Optional explicit .env file location

    Returns:
        The same config object, for chaining

    Raises:
        ConfigError: If a variable holds an invalid value
    """
    load_dotenv(dotenv_path)

    data_dir = os.getenv("TLD_RECONCILER_DATA_DIR", "").strip()
    if data_dir:
        config.paths.data_dir = Path(data_dir)

    log_level = os.getenv("TLD_RECONCILER_LOG_LEVEL", "").strip().lower()
    if log_level:
        config.logging.level = log_level

    log_format = os.getenv("TLD_RECONCILER_LOG_FORMAT", "").strip().lower()
    if log_format:
        config.logging.output_format = log_format

    timeout = os.getenv("TLD_RECONCILER_HTTP_TIMEOUT", "").strip()
    if timeout:
        try:
            config.fetch.timeout_seconds = float(timeout)
        except ValueError as e:
            raise ConfigError(
                code="invalid_timeout",
                message=f"TLD_RECONCILER_HTTP_TIMEOUT is not a number: {timeout!r}",
            ) from e

    validate_config(config)
    return config
