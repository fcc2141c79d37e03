"""Unit tests for BundleScanner and ScanIndex."""

from pathlib import Path

from softctl.core.config import SoftctlConfig
from softctl.models.application import ScannedApplication
from softctl.scanners.bundle import BundleScanner, ScanIndex


def _app(name: str, path: str | None = None) -> ScannedApplication:
    return ScannedApplication(name=name, version="1.0", path=path or f"/Applications/{name}.app")


class TestScanIndex:
    """Tests for ScanIndex."""

    def test_dedup_by_normalized_name(self) -> None:
        """The first application with a given name wins."""
        index = ScanIndex()

        assert index.add(_app("Editor"))
        assert not index.add(_app("editor", "/Users/a/Applications/editor.app"))
        assert len(index) == 1
        assert index.applications[0].path == "/Applications/Editor.app"

    def test_lookup_by_name(self) -> None:
        """Lookups ignore case and punctuation."""
        index = ScanIndex()
        index.add(_app("Visual Studio Code"))

        found = index.lookup("visual-studio code")

        assert found is not None
        assert found.name == "Visual Studio Code"

    def test_lookup_by_alias(self) -> None:
        """Known aliases resolve to the installed display name."""
        index = ScanIndex()
        index.add(_app("Google Chrome"))

        found = index.lookup("chrome")

        assert found is not None
        assert found.name == "Google Chrome"

    def test_lookup_missing(self) -> None:
        """Unknown names return None."""
        index = ScanIndex()
        index.add(_app("Editor"))

        assert index.lookup("Viewer") is None


class TestBundleScanner:
    """Tests for BundleScanner."""

    def test_scan(self, config: SoftctlConfig, make_bundle) -> None:
        """Bundles are listed with version, identifier and system flag."""
        make_bundle(
            config.applications_dir, "Editor", version="2.1.0", bundle_id="com.example.editor"
        )
        make_bundle(config.user_applications_dir, "Viewer", version="0.9")

        apps = list(BundleScanner.from_config(config).scan())

        assert [(a.name, a.version, a.is_system_app) for a in apps] == [
            ("Editor", "2.1.0", True),
            ("Viewer", "0.9", False),
        ]
        assert apps[0].bundle_id == "com.example.editor"

    def test_first_directory_wins(self, config: SoftctlConfig, make_bundle) -> None:
        """Duplicates in later directories are skipped."""
        make_bundle(config.applications_dir, "Editor", version="2.1.0")
        make_bundle(config.user_applications_dir, "Editor", version="1.0.0")

        apps = list(BundleScanner.from_config(config).scan())

        assert len(apps) == 1
        assert apps[0].version == "2.1.0"

    def test_ignores_non_bundles(self, config: SoftctlConfig, make_bundle) -> None:
        """Files and plain directories are not applications."""
        make_bundle(config.applications_dir, "Editor")
        (config.applications_dir / "notes.txt").write_text("x")
        (config.applications_dir / "Utilities").mkdir()
        (config.applications_dir / "Fake.app").write_text("not a directory")

        assert [a.name for a in BundleScanner.from_config(config).scan()] == ["Editor"]

    def test_sorted_case_insensitive(self, config: SoftctlConfig, make_bundle) -> None:
        """Applications in one directory are listed alphabetically."""
        for name in ("zoom.us", "Editor", "calculator"):
            make_bundle(config.applications_dir, name)

        names = [a.name for a in BundleScanner.from_config(config).scan()]

        assert names == ["calculator", "Editor", "zoom.us"]

    def test_missing_directories(self, tmp_path: Path) -> None:
        """Missing directories are skipped and make the scanner unavailable."""
        scanner = BundleScanner([tmp_path / "absent"], tmp_path / "absent")

        assert not scanner.is_available()
        assert list(scanner.scan()) == []

    def test_index_lookup(self, config: SoftctlConfig, make_bundle) -> None:
        """index() exposes alias-aware lookups over the scan."""
        make_bundle(config.applications_dir, "zoom.us")

        found = BundleScanner.from_config(config).index().lookup("zoom")

        assert found is not None
        assert found.name == "zoom.us"
