"""Unit tests for name matching.

Tests for normalization, the alias table and the ordered matcher chain.
"""

import pytest
from softctl.core.matching import (
    Confidence,
    ExactMatcher,
    aliases_for,
    canonical_alias,
    match_bundle_name,
    normalize_name,
    resolve,
    strip_whitespace,
)
from softctl.models.application import ScannedApplication


def _apps(*names: str) -> list[ScannedApplication]:
    return [
        ScannedApplication(name=name, version="1.0", path=f"/Applications/{name}.app")
        for name in names
    ]


class TestNormalization:
    """Tests for name normalization helpers."""

    def test_normalize_name(self) -> None:
        """Only lower-case letters and digits remain."""
        assert normalize_name("Visual Studio Code-1.9") == "visualstudiocode19"

    def test_strip_whitespace(self) -> None:
        """Whitespace is removed but punctuation kept."""
        assert strip_whitespace("zoom .us") == "zoom.us"


class TestAliases:
    """Tests for the alias table."""

    @pytest.mark.parametrize(
        ("short", "display"),
        [("chrome", "Google Chrome"), ("VS Code", "Visual Studio Code"), ("zoom", "zoom.us")],
    )
    def test_canonical_alias(self, short: str, display: str) -> None:
        """Short names resolve to installed display names."""
        assert canonical_alias(short) == display

    def test_unknown_alias(self) -> None:
        """Unknown names have no alias."""
        assert canonical_alias("Editor") is None

    def test_aliases_for(self) -> None:
        """Every alias of a display name is listed."""
        assert set(aliases_for("Google Chrome")) == {"chrome", "googlechrome"}


class TestResolve:
    """Tests for the matcher chain."""

    def test_exact_match_wins(self) -> None:
        """Exact normalized equality is tried first."""
        result = resolve("editor", _apps("Editor Pro", "Editor"))

        assert result is not None
        assert result.application.name == "Editor"
        assert result.strategy == "exact"
        assert result.confidence == Confidence.EXACT

    def test_alias_match(self) -> None:
        """Known short names resolve through the alias table."""
        result = resolve("chrome", _apps("Firefox", "Google Chrome"))

        assert result is not None
        assert result.application.name == "Google Chrome"
        assert result.strategy == "alias"

    def test_substring_match(self) -> None:
        """A request contained in the installed name matches."""
        result = resolve("Editor", _apps("Editor Pro"))

        assert result is not None
        assert result.strategy == "substring"
        assert result.confidence == Confidence.FUZZY

    def test_fragment_match(self) -> None:
        """A long word of the request found in a name matches."""
        result = resolve("Studio Beta", _apps("Sound Studio"))

        assert result is not None
        assert result.application.name == "Sound Studio"
        assert result.strategy == "fragment"

    def test_recovery_match(self) -> None:
        """Hardcoded hints find applications installed under other names."""
        result = resolve("GitHubDesktopInstaller", _apps("GitHub Desktop Beta"))

        assert result is not None
        assert result.application.name == "GitHub Desktop Beta"

    def test_no_match(self) -> None:
        """None when every matcher fails."""
        assert resolve("Editor", _apps("Viewer", "Terminal")) is None

    def test_empty_candidates(self) -> None:
        """Nothing installed means nothing matches."""
        assert resolve("Editor", []) is None

    def test_custom_chain(self) -> None:
        """A custom chain limits the strategies used."""
        assert resolve("Editor", _apps("Editor Pro"), matchers=[ExactMatcher()]) is None


class TestMatchBundleName:
    """Tests for match_bundle_name."""

    def test_exact_case_insensitive(self) -> None:
        """The exact bundle wins over substring candidates."""
        names = ["Editor Pro.app", "editor.app", "notes.txt"]
        assert match_bundle_name("Editor", names) == "editor.app"

    def test_substring(self) -> None:
        """A bundle containing the name matches."""
        assert match_bundle_name("Editor", ["My Editor.app"]) == "My Editor.app"

    def test_whitespace_insensitive(self) -> None:
        """Spaces in the query are ignored on the third pass."""
        assert match_bundle_name("Sys Check", ["syscheck.app"]) == "syscheck.app"

    def test_only_bundles_count(self) -> None:
        """Non-bundle entries are ignored."""
        assert match_bundle_name("Editor", ["Editor", "Editor.dmg"]) is None
