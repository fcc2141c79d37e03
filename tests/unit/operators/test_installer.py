"""Unit tests for the installer state machine."""

import os
import zipfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from softctl.core.channel import ProgressChannel, decode_frames
from softctl.core.config import SoftctlConfig
from softctl.core.context import OperationContext
from softctl.core.errors import PackageFileNotFoundError, ProcessRunningError
from softctl.core.store import FilesystemPackageStore
from softctl.models.package import PackageReference
from softctl.models.process import ProcessDescriptor
from softctl.models.progress import Progress
from softctl.operators.installer import (
    PLACEHOLDER_DETAILS,
    Installer,
    InstallState,
    verify_installed,
)


def _zip_bundle(archive: Path, bundle: Path) -> None:
    archive.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive, "w") as zf:
        for file in sorted(bundle.rglob("*")):
            zf.write(file, file.relative_to(bundle.parent).as_posix())


@pytest.fixture
def installer(config: SoftctlConfig, no_processes: tuple[MagicMock, MagicMock]) -> Installer:
    """Installer reading from the temporary store."""
    locator, terminator = no_processes
    return Installer(
        config,
        FilesystemPackageStore(config.store_root),
        locator=locator,
        terminator=terminator,
    )


class TestVerifyInstalled:
    """Tests for verify_installed."""

    def test_expected_path(self, tmp_path: Path) -> None:
        """The expected bundle is confirmed directly."""
        (tmp_path / "Editor.app").mkdir()

        expected = tmp_path / "Editor.app"

        assert verify_installed(tmp_path, "Editor", expected) == expected

    def test_substring_fallback(self, tmp_path: Path) -> None:
        """A bundle containing the name is accepted."""
        (tmp_path / "Editor Pro.app").mkdir()

        found = verify_installed(tmp_path, "Editor", tmp_path / "Editor.app")

        assert found == tmp_path / "Editor Pro.app"

    def test_whitespace_fallback(self, tmp_path: Path) -> None:
        """Spacing differences are tolerated."""
        (tmp_path / "SystemCheck.app").mkdir()

        found = verify_installed(tmp_path, "System Check", tmp_path / "System Check.app")

        assert found == tmp_path / "SystemCheck.app"

    def test_absent(self, tmp_path: Path) -> None:
        """None when nothing resembles the application."""
        (tmp_path / "Viewer.app").mkdir()

        assert verify_installed(tmp_path, "Editor", tmp_path / "Editor.app") is None

    def test_missing_directory(self, tmp_path: Path) -> None:
        """An unreadable directory yields None."""
        missing = tmp_path / "absent"

        assert verify_installed(missing, "Editor", missing / "Editor.app") is None


class TestInstaller:
    """Tests for Installer.run."""

    def test_installs_zip(
        self,
        installer: Installer,
        config: SoftctlConfig,
        frames: list[str],
        tmp_path: Path,
        make_bundle,
    ) -> None:
        """A zipped bundle is deployed and described by the result."""
        bundle = make_bundle(
            tmp_path / "src", "Editor", version="2.1.0", bundle_id="com.example.editor"
        )
        _zip_bundle(config.store_root / "packages" / "Editor-2.1.0.zip", bundle)
        ctx = OperationContext(60)
        channel = ProgressChannel(frames.append, ctx, keepalive_interval=60)

        result = installer.run(
            PackageReference.from_key("packages/Editor-2.1.0.zip"), ctx, channel, tmp_path / "work"
        )

        assert result.app_name == "Editor"
        assert result.version == "2.1.0"
        assert result.bundle_id == "com.example.editor"
        assert result.match_strategy == "zipfile"
        assert not result.degraded
        assert result.path == str(config.applications_dir / "Editor.app")
        assert installer.state == InstallState.VERIFYING
        percents = [e.percent for e in decode_frames("".join(frames)) if isinstance(e, Progress)]
        assert percents == [5, 10, 40, 50, 58, 60, 80, 90]

    def test_bundle_named_differently(
        self,
        installer: Installer,
        config: SoftctlConfig,
        frames: list[str],
        tmp_path: Path,
        make_bundle,
    ) -> None:
        """The deployed bundle keeps its own name and replaces an older copy."""
        make_bundle(config.applications_dir, "Editor Pro", version="1.0.0")
        bundle = make_bundle(tmp_path / "src", "Editor Pro", version="2.0.0")
        _zip_bundle(config.store_root / "Editor-2.0.zip", bundle)
        ctx = OperationContext(60)

        result = installer.run(
            PackageReference.from_key("Editor-2.0.zip"),
            ctx,
            ProgressChannel(frames.append, ctx, keepalive_interval=60),
            tmp_path / "work",
        )

        assert result.app_name == "Editor Pro"
        assert result.version == "2.0.0"

    def test_placeholder(
        self,
        installer: Installer,
        config: SoftctlConfig,
        frames: list[str],
        tmp_path: Path,
    ) -> None:
        """A disk image nothing can open deploys a flagged placeholder."""
        (config.store_root / "System Check-1.0.0.dmg").write_bytes(b"\x00" * 16)
        ctx = OperationContext(60)

        result = installer.run(
            PackageReference.from_key("System Check-1.0.0.dmg"),
            ctx,
            ProgressChannel(frames.append, ctx, keepalive_interval=60),
            tmp_path / "work",
        )

        assert result.placeholder
        assert result.app_name == "System Check"
        assert PLACEHOLDER_DETAILS in result.warnings
        events = decode_frames("".join(frames))
        assert any(isinstance(e, Progress) and e.details == PLACEHOLDER_DETAILS for e in events)

    def test_pre_cleanup_with_survivor(
        self,
        installer: Installer,
        config: SoftctlConfig,
        frames: list[str],
        tmp_path: Path,
        make_bundle,
    ) -> None:
        """A running old copy degrades the install without failing it."""
        make_bundle(config.applications_dir, "Editor", bundle_id="com.example.editor")
        bundle = make_bundle(tmp_path / "src", "Editor", version="2.1.0")
        _zip_bundle(config.store_root / "Editor-2.1.0.zip", bundle)
        installer.locator.find.return_value = [ProcessDescriptor(48101, "Editor")]
        installer.terminator.terminate.side_effect = ProcessRunningError(
            "1 process(es) still running", details="Surviving: 48101"
        )
        ctx = OperationContext(60)

        result = installer.run(
            PackageReference.from_key("Editor-2.1.0.zip"),
            ctx,
            ProgressChannel(frames.append, ctx, keepalive_interval=60),
            tmp_path / "work",
        )

        assert result.version == "2.1.0"
        assert result.warnings == ("1 process(es) still running",)
        assert installer.locator.find.call_args.args[:2] == ("Editor", "com.example.editor")
        percents = [e.percent for e in decode_frames("".join(frames)) if isinstance(e, Progress)]
        assert [52, 54, 56] == [p for p in percents if 50 < p < 58]

    def test_missing_package(
        self, installer: Installer, frames: list[str], tmp_path: Path
    ) -> None:
        """A missing store key fails the download step."""
        ctx = OperationContext(60)

        with pytest.raises(PackageFileNotFoundError):
            installer.run(
                PackageReference.from_key("Ghost.zip"),
                ctx,
                ProgressChannel(frames.append, ctx, keepalive_interval=60),
                tmp_path / "work",
            )

        assert installer.state == InstallState.DOWNLOADING

    def test_owner_gets_full_permissions(
        self,
        installer: Installer,
        config: SoftctlConfig,
        frames: list[str],
        tmp_path: Path,
        make_bundle,
    ) -> None:
        """Every file of the deployed bundle is owner read-write-execute."""
        bundle = make_bundle(tmp_path / "src", "Editor")
        (bundle / "Contents" / "Info.plist").chmod(0o400)
        _zip_bundle(config.store_root / "Editor.zip", bundle)
        ctx = OperationContext(60)

        result = installer.run(
            PackageReference.from_key("Editor.zip"),
            ctx,
            ProgressChannel(frames.append, ctx, keepalive_interval=60),
            tmp_path / "work",
        )

        manifest = Path(result.path) / "Contents" / "Info.plist"
        assert os.access(manifest, os.R_OK | os.W_OK | os.X_OK)

    def test_tracks_removed_and_deployed(
        self,
        installer: Installer,
        config: SoftctlConfig,
        frames: list[str],
        tmp_path: Path,
        make_bundle,
    ) -> None:
        """The removed previous version and the new copy are remembered."""
        old = make_bundle(config.applications_dir, "Editor", version="1.0.0")
        bundle = make_bundle(tmp_path / "src", "Editor", version="2.1.0")
        _zip_bundle(config.store_root / "Editor-2.1.0.zip", bundle)
        ctx = OperationContext(60)

        installer.run(
            PackageReference.from_key("Editor-2.1.0.zip"),
            ctx,
            ProgressChannel(frames.append, ctx, keepalive_interval=60),
            tmp_path / "work",
        )

        assert installer.removed == [old]
        assert installer.deployed == old

    def test_failed_copy_discards_partial_bundle(
        self,
        installer: Installer,
        config: SoftctlConfig,
        frames: list[str],
        tmp_path: Path,
        make_bundle,
    ) -> None:
        """A copy that fails half way leaves nothing at the target."""
        bundle = make_bundle(tmp_path / "src", "Editor")
        _zip_bundle(config.store_root / "Editor.zip", bundle)
        target = config.applications_dir / "Editor.app"

        def partial_copy(source: Path, dest_dir: Path, *args: object) -> Path:
            (target / "Contents").mkdir(parents=True)
            raise OSError("disk full")

        ctx = OperationContext(60)
        with patch("softctl.operators.installer.copy_bundle", side_effect=partial_copy):
            with pytest.raises(OSError, match="disk full"):
                installer.run(
                    PackageReference.from_key("Editor.zip"),
                    ctx,
                    ProgressChannel(frames.append, ctx, keepalive_interval=60),
                    tmp_path / "work",
                )

        assert not target.exists()
        assert installer.deployed is None
        assert installer.removed == []
