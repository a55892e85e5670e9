"""User configuration loading and validation."""

import logging
import os
from pathlib import Path

import tomllib
from pydantic import BaseModel, ValidationError, field_validator

from easyssh.errors import ConfigError


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "easyssh" / "config.toml"


class EasySSHConfig(BaseModel):
    """Defaults for the command-line options.

    Attributes:
        discoverer: Discoverer definition used when -d is omitted.
        executor: Executor definition used when -e is omitted.
        filter: Filter definition used when -f is omitted.
        user: Login user used when -l is omitted. Empty lets ssh decide.
        log_level: Logging level name for easyssh's own messages.
    """

    discoverer: str = "(comma-separated)"
    executor: str = "(ssh-login)"
    filter: str = "(id)"
    user: str = ""
    log_level: str = "WARNING"

    @field_validator("discoverer", "executor", "filter", "user", mode="before")
    @classmethod
    def expand_env_vars(cls, v: object) -> object:
        """Expand environment variables in string fields.

        Args:
            v: Raw string value that may contain env var references.

        Returns:
            object: String with env vars expanded; other types are left
                for field validation to reject.
        """
        if isinstance(v, str):
            return os.path.expandvars(v)
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        """Normalise and validate a logging level name.

        Raises:
            ValueError: If the name is not a standard logging level.
        """
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {v!r}")
        return level


def load_config(path: Path | None = None) -> EasySSHConfig:
    """Load configuration from a TOML file.

    Reads the given path (or ~/.config/easyssh/config.toml). If the file
    doesn't exist, returns an EasySSHConfig with default values.

    Args:
        path: Path to the config file.

    Returns:
        EasySSHConfig: The loaded and validated configuration.

    Raises:
        ConfigError: If the file is unreadable, not valid TOML, or holds
            invalid values.
    """
    config_path = path or DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return EasySSHConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        return EasySSHConfig(**data)
    except (OSError, tomllib.TOMLDecodeError, ValidationError) as exc:
        raise ConfigError(config_path, exc) from exc
