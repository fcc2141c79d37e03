"""softctl configuration and settings.

This module provides the configuration model and I/O functions for the
orchestrator: where packages come from, where applications are deployed,
and the timing constants of commands, termination and streaming.

Configuration is stored in ~/.config/softctl/config.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from softctl.core.paths import (
    SYSTEM_APPLICATIONS_DIR,
    get_config_path,
    get_default_auxiliary_dirs,
    get_default_store_root,
    get_user_applications_dir,
)

logger = logging.getLogger(__name__)


def _default_extra_scan_dirs() -> list[Path]:
    return [Path("/opt"), Path("/usr/local/bin"), Path("/usr/local/share/applications")]


class SoftctlConfig(BaseModel):
    """Configuration for install, uninstall and scan operations.

    Attributes:
        store_root: Root directory of the filesystem package store.
        applications_dir: System application directory bundles are deployed to.
        user_applications_dir: Per-user application directory.
        extra_scan_dirs: Additional directories enumerated by the scanner.
        auxiliary_dirs: Directories holding per-application auxiliary data.
        operation_deadline_seconds: Absolute lifetime of one operation.
        command_timeout_seconds: Timeout of a single host command.
        command_max_retries: Retries of a command after a non-zero exit.
        command_retry_delay_seconds: Fixed delay between command retries.
        poll_interval_seconds: Granularity of cancellation checks.
        keepalive_interval_seconds: Interval between stream keep-alives.
        terminate_attempts: Escalation attempts per running process.
        kill_delay_seconds: Wait after each termination signal.
        refresh_icon_cache: Touch the applications directory after changes.
    """

    model_config = ConfigDict(extra="forbid")

    store_root: Annotated[
        Path,
        Field(
            default_factory=get_default_store_root,
            description="Root directory of the package store",
        ),
    ]
    applications_dir: Annotated[
        Path,
        Field(description="Deployment directory for application bundles"),
    ] = SYSTEM_APPLICATIONS_DIR
    user_applications_dir: Annotated[
        Path,
        Field(
            default_factory=get_user_applications_dir,
            description="Per-user application directory",
        ),
    ]
    extra_scan_dirs: Annotated[
        list[Path],
        Field(
            default_factory=_default_extra_scan_dirs,
            description="Additional directories enumerated by the scanner",
        ),
    ]
    auxiliary_dirs: Annotated[
        list[Path],
        Field(
            default_factory=get_default_auxiliary_dirs,
            description="Preferences, support data and cache directories",
        ),
    ]
    operation_deadline_seconds: Annotated[
        float,
        Field(gt=0, le=7200, description="Operation lifetime in seconds"),
    ] = 900.0
    command_timeout_seconds: Annotated[
        float,
        Field(gt=0, le=3600, description="Per-command timeout in seconds"),
    ] = 300.0
    command_max_retries: Annotated[
        int,
        Field(ge=0, le=10, description="Retries after a non-zero exit"),
    ] = 3
    command_retry_delay_seconds: Annotated[
        float,
        Field(ge=0, le=60, description="Fixed delay between retries"),
    ] = 2.0
    poll_interval_seconds: Annotated[
        float,
        Field(gt=0, le=1, description="Cancellation poll interval"),
    ] = 0.1
    keepalive_interval_seconds: Annotated[
        float,
        Field(gt=0, le=300, description="Keep-alive interval of the stream"),
    ] = 5.0
    terminate_attempts: Annotated[
        int,
        Field(ge=1, le=10, description="Escalation attempts per process"),
    ] = 3
    kill_delay_seconds: Annotated[
        float,
        Field(ge=0, le=30, description="Wait after each termination signal"),
    ] = 2.0
    refresh_icon_cache: Annotated[
        bool,
        Field(description="Touch the applications directory after changes"),
    ] = True

    @property
    def scan_dirs(self) -> list[Path]:
        """All directories enumerated by the scanner, system directory first."""
        return [self.applications_dir, self.user_applications_dir, *self.extra_scan_dirs]


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> SoftctlConfig:
    """Load configuration from a TOML file.

    A missing file is not an error: defaults are returned.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated SoftctlConfig object.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return SoftctlConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return SoftctlConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def save_config(config: SoftctlConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The SoftctlConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json")

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
