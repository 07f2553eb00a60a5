"""
Configuration utilities for the RCON wrapper
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when the supervisor cannot start with the given configuration."""


class WrapperConfig(BaseModel):
    """Runtime settings for one supervisor run."""
    rcon_host: str = Field(default="localhost", description="Remote console host")
    # Port and password are deliberately not validated: a bad value simply
    # makes every connection attempt fail and the wait threshold takes over.
    rcon_port: Optional[str] = Field(default=None, description="Remote console port")
    rcon_password: Optional[str] = Field(default=None, description="Remote console password")
    inactivity_timeout: float = Field(default=300.0, gt=0, description="Seconds without any output before the server is considered hung")
    rcon_wait_timeout: float = Field(default=300.0, gt=0, description="Seconds of failed connection attempts before giving up")
    watchdog_interval: float = Field(default=15.0, gt=0, description="Seconds between watchdog ticks")
    rcon_retry_delay: float = Field(default=5.0, ge=0, description="Fixed delay between connection attempts")
    connect_timeout: float = Field(default=10.0, gt=0, description="Upper bound for a single connection attempt")
    shutdown_grace: float = Field(default=10.0, ge=0, description="Seconds to wait for the server after SIGTERM")
    strict_rcon_watch: bool = Field(default=False, description="Let the watchdog enforce the connect wait as well")
    log_file: str = Field(default="latest.log", description="Append-only RCON message log, truncated on startup")
    log_level: str = Field(default="INFO", description="Supervisor diagnostics level")

    @field_validator("rcon_port", "rcon_password", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def _check_watchdog_interval(self) -> "WrapperConfig":
        if self.watchdog_interval >= min(self.inactivity_timeout, self.rcon_wait_timeout):
            raise ValueError(
                "watchdog_interval must be smaller than both inactivity_timeout and rcon_wait_timeout"
            )
        return self

    @property
    def rcon_url(self) -> str:
        return f"ws://{self.rcon_host}:{self.rcon_port}/{self.rcon_password}"

    @property
    def rcon_endpoint(self) -> str:
        """Host and port only, safe to log."""
        return f"{self.rcon_host}:{self.rcon_port}"


DEFAULT_CONFIG: Dict[str, Any] = WrapperConfig().model_dump()


ENV_MAPPING = {
    "RCON_IP": "rcon_host",
    "RCON_PORT": "rcon_port",
    "RCON_PASS": "rcon_password",
    "WRAPPER_INACTIVITY_TIMEOUT": "inactivity_timeout",
    "WRAPPER_RCON_WAIT_TIMEOUT": "rcon_wait_timeout",
    "WRAPPER_WATCHDOG_INTERVAL": "watchdog_interval",
    "WRAPPER_RETRY_DELAY": "rcon_retry_delay",
    "WRAPPER_CONNECT_TIMEOUT": "connect_timeout",
    "WRAPPER_SHUTDOWN_GRACE": "shutdown_grace",
    "WRAPPER_STRICT_RCON_WATCH": "strict_rcon_watch",
    "WRAPPER_LOG_FILE": "log_file",
    "WRAPPER_LOG_LEVEL": "log_level",
}


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from a JSON file, merged over the defaults"""
    merged_config = DEFAULT_CONFIG.copy()
    if not config_file:
        return merged_config

    config_path = Path(config_file)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_file}")

    try:
        with open(config_path, 'r') as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        raise ConfigError(f"Could not load config file {config_file}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object")

    merged_config.update(config)
    return merged_config


def get_env_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Get configuration from environment variables"""
    environ = os.environ if environ is None else environ
    env_config = {}

    for env_var, config_key in ENV_MAPPING.items():
        value = environ.get(env_var)
        if value is None or value == "":
            continue
        if config_key == "strict_rcon_watch":
            env_config[config_key] = value.lower() in ("true", "1", "yes", "on")
        else:
            env_config[config_key] = value

    return env_config


def merge_configs(*configs: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge multiple configuration dictionaries, later ones win"""
    merged = {}

    for config in configs:
        if config:
            merged.update({k: v for k, v in config.items() if v is not None})

    return merged


def build_config(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> WrapperConfig:
    """Defaults < config file < environment < command-line overrides."""
    merged = merge_configs(load_config(config_file), get_env_config(environ), overrides)
    try:
        return WrapperConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
