"""Unit tests for config commands."""

from pathlib import Path

from softctl.cli.main import app
from softctl.core.config import SoftctlConfig, load_config
from softctl.core.paths import get_config_path
from typer.testing import CliRunner

runner = CliRunner()


class TestConfigShow:
    """Tests for softctl config show."""

    def test_show(self, config_file: Path) -> None:
        """The effective configuration is printed as JSON."""
        result = runner.invoke(app, ["config", "show", "--config", str(config_file)])

        assert result.exit_code == 0
        assert '"store_root"' in result.stdout
        assert '"refresh_icon_cache": false' in result.stdout

    def test_show_defaults(self) -> None:
        """Defaults are shown when no config file exists."""
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert '"operation_deadline_seconds": 900.0' in result.stdout


class TestConfigInit:
    """Tests for softctl config init."""

    def test_init_default_location(self) -> None:
        """A default config is written to the XDG location."""
        result = runner.invoke(app, ["config", "init"])

        assert result.exit_code == 0
        assert "Config written to" in result.stdout
        assert load_config(get_config_path()) == SoftctlConfig()

    def test_init_existing(self, config_file: Path) -> None:
        """An existing file is kept without --force."""
        before = config_file.read_text()

        result = runner.invoke(app, ["config", "init", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert config_file.read_text() == before

    def test_init_force(self, config_file: Path) -> None:
        """--force overwrites the file with defaults."""
        result = runner.invoke(app, ["config", "init", "--force", "--config", str(config_file)])

        assert result.exit_code == 0
        assert load_config(config_file).refresh_icon_cache is True
