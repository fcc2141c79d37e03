"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import plistlib
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from softctl.core.config import SoftctlConfig, save_config
from softctl.core.inventory import InventoryStore

BundleFactory = Callable[..., Path]


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point every XDG directory into the test's temporary directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))


@pytest.fixture
def config(tmp_path: Path) -> SoftctlConfig:
    """Configuration whose directories all live under tmp_path."""
    library = tmp_path / "Library"
    auxiliary = [library / "Preferences", library / "Application Support", library / "Caches"]
    for directory in (
        tmp_path / "Applications",
        tmp_path / "UserApplications",
        tmp_path / "store",
        *auxiliary,
    ):
        directory.mkdir(parents=True)
    return SoftctlConfig(
        store_root=tmp_path / "store",
        applications_dir=tmp_path / "Applications",
        user_applications_dir=tmp_path / "UserApplications",
        extra_scan_dirs=[],
        auxiliary_dirs=auxiliary,
        command_retry_delay_seconds=0.0,
        keepalive_interval_seconds=60.0,
        kill_delay_seconds=0.01,
        refresh_icon_cache=False,
    )


@pytest.fixture
def config_file(config: SoftctlConfig, tmp_path: Path) -> Path:
    """The temporary configuration saved as a TOML file."""
    return save_config(config, tmp_path / "config.toml")


@pytest.fixture
def inventory(tmp_path: Path) -> InventoryStore:
    """Inventory store writing below tmp_path."""
    return InventoryStore(tmp_path / "inventory")


@pytest.fixture
def make_bundle() -> BundleFactory:
    """Factory creating an application bundle with an Info.plist."""

    def factory(
        directory: Path,
        name: str,
        version: str = "1.0.0",
        bundle_id: str | None = None,
    ) -> Path:
        bundle = directory / f"{name}.app"
        (bundle / "Contents" / "MacOS").mkdir(parents=True)
        manifest: dict[str, str] = {
            "CFBundleName": name,
            "CFBundleShortVersionString": version,
            "CFBundleExecutable": name,
        }
        if bundle_id:
            manifest["CFBundleIdentifier"] = bundle_id
        with open(bundle / "Contents" / "Info.plist", "wb") as f:
            plistlib.dump(manifest, f)
        (bundle / "Contents" / "MacOS" / name).write_text("#!/bin/sh\nexit 0\n")
        return bundle

    return factory


@pytest.fixture
def frames() -> list[str]:
    """Frames written to a recording sink (use frames.append as the sink)."""
    return []


@pytest.fixture
def no_processes() -> tuple[MagicMock, MagicMock]:
    """Process locator finding nothing and a terminator that records calls."""
    locator = MagicMock()
    locator.find.return_value = []
    terminator = MagicMock()
    return locator, terminator
