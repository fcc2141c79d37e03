"""XDG-compliant path management for softctl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, state, and cache storage, plus the
well-known application directories the installer and scanner operate on.

XDG defaults:
- Config: ~/.config/softctl/
- State: ~/.local/state/softctl/
- Cache: ~/.cache/softctl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "softctl"

# System-wide application directory
SYSTEM_APPLICATIONS_DIR = Path("/Applications")

# Bundle suffix for application directories
BUNDLE_SUFFIX = ".app"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/softctl/ (or XDG_CONFIG_HOME/softctl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the per-identity inventory records.

    Returns:
        Path to ~/.local/state/softctl/ (or XDG_STATE_HOME/softctl/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_cache_dir() -> Path:
    """Get the cache directory path.

    Returns:
        Path to ~/.cache/softctl/ (or XDG_CACHE_HOME/softctl/).
    """
    return _get_xdg_dir("XDG_CACHE_HOME", ".cache")


def get_config_path() -> Path:
    """Get the configuration file path.

    Returns:
        Path to ~/.config/softctl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_inventory_dir() -> Path:
    """Get the directory holding one inventory record per identity.

    Returns:
        Path to ~/.local/state/softctl/inventory/.
    """
    return get_state_dir() / "inventory"


def get_downloads_dir() -> Path:
    """Get the directory used as scratch space for package downloads.

    Returns:
        Path to ~/.cache/softctl/downloads/.
    """
    return get_cache_dir() / "downloads"


def get_default_store_root() -> Path:
    """Get the default root of the filesystem package store.

    Returns:
        Path to ~/.local/state/softctl/packages/.
    """
    return get_state_dir() / "packages"


def get_user_applications_dir() -> Path:
    """Get the per-user application directory.

    Returns:
        Path to ~/Applications.
    """
    return Path.home() / "Applications"


def get_default_auxiliary_dirs() -> list[Path]:
    """Get the directories holding per-application auxiliary data.

    Returns:
        Preferences, support data and cache directories under ~/Library.
    """
    library = Path.home() / "Library"
    return [
        library / "Preferences",
        library / "Application Support",
        library / "Caches",
    ]
