"""Tests for the config gate CLI."""

import logging
from unittest.mock import patch

import pytest
import structlog
import yaml
from click.testing import CliRunner

from configgate.changes.registry import ChangeRecord, ChangeRegistry
from configgate.cli.config_gate import (
    EXIT_CONFIG_ERROR,
    EXIT_INCOMPATIBLE,
    EXIT_REGISTRY_DEFECT,
    cli,
)
from configgate.errors import UnsortedRegistryError


@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def mock_configure_structlog():
    """Keep the CLI from reconfiguring logging and silence debug output."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))
    with patch("configgate.cli.config_gate.configure_structlog", autospec=True) as mock:
        yield mock
    structlog.reset_defaults()


@pytest.fixture
def config_file(tmp_path):
    """Write a config file and return its path."""

    def _write(data):
        path = tmp_path / "configgate.yaml"
        path.write_text(yaml.dump(data))
        return str(path)

    return _write


def _invoke(runner, config_path, *args):
    return runner.invoke(cli, ["--config", config_path, *args], obj={})


class TestCheckCommand:
    """Test the check command."""

    def test_compatible_config_is_silent(self, runner, config_file):
        """Should exit 0 without output when the config is up to date."""
        result = _invoke(runner, config_file({"config_version": "0.0.85"}), "check")

        assert result.exit_code == 0
        assert result.output == ""

    def test_unset_version_passes(self, runner, config_file):
        """Should pass configs that never declared a version."""
        path = config_file({"services": {"joinmarket": {"enable": True}}})
        result = _invoke(runner, path, "check")

        assert result.exit_code == 0

    def test_verbose_confirmation(self, runner, config_file):
        """Should confirm a passing check with --verbose."""
        result = _invoke(runner, config_file({"config_version": "0.0.85"}), "check", "--verbose")

        assert result.exit_code == 0
        assert "Configuration is compatible" in result.output
        assert "latest: 0.0.85" in result.output

    def test_incompatible_config_prints_notice(self, runner, config_file):
        """Should exit 1 with the full migration notice."""
        path = config_file(
            {"config_version": "0.0.80", "services": {"fulcrum": {"enable": True}}}
        )
        result = _invoke(runner, path, "check")

        assert result.exit_code == EXIT_INCOMPATIBLE
        assert "incompatible with your config (version 0.0.80)" in result.output
        assert "Fulcrum 1.9.0 has changed its database format." in result.output
        assert "(This change was introduced in version 0.0.85)" in result.output
        assert 'set config_version: "0.0.85"' in result.output

    def test_configures_logging_from_config(self, runner, config_file, mock_configure_structlog):
        """Should configure structlog with the loaded logging settings."""
        path = config_file({"config_version": "0.0.85", "logging": {"level": "DEBUG"}})
        _invoke(runner, path, "check")

        mock_configure_structlog.assert_called_once()
        assert mock_configure_structlog.call_args[0][0].level == "DEBUG"

    def test_missing_config_file(self, runner, tmp_path):
        """Should exit 2 when the config file does not exist."""
        result = _invoke(runner, str(tmp_path / "missing.yaml"), "check")

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Configuration file not found" in result.output

    def test_invalid_config(self, runner, config_file):
        """Should exit 2 for configs that fail validation."""
        result = _invoke(runner, config_file({"services": {"lnd": {"enable": "perhaps"}}}), "check")

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Invalid configuration" in result.output

    def test_malformed_declared_version(self, runner, config_file):
        """Should report malformed versions apart from migration notices."""
        result = _invoke(runner, config_file({"config_version": "abc.def"}), "check")

        assert result.exit_code == EXIT_REGISTRY_DEFECT
        assert "Malformed version 'abc.def'" in result.output
        assert "incompatible with your config" not in result.output

    def test_broken_registry(self, runner, config_file):
        """Should exit 3 when the shipped registry is broken."""
        with patch(
            "configgate.cli.config_gate.ConfigEvaluator",
            autospec=True,
            side_effect=UnsortedRegistryError(1, "0.0.2", "0.0.1"),
        ):
            result = _invoke(runner, config_file({"config_version": "0.0.1"}), "check")

        assert result.exit_code == EXIT_REGISTRY_DEFECT
        assert "Change registry is broken" in result.output


class TestListChangesCommand:
    """Test the list-changes command."""

    def test_lists_all_changes(self, runner, config_file):
        """Should list every registered change with its summary."""
        result = _invoke(runner, config_file({}), "list-changes")

        assert result.exit_code == 0
        assert "0.0.26  JoinMarket 0.8.0 moves from wrapped segwit" in result.output
        assert "0.0.85  Fulcrum 1.9.0 has changed its database format." in result.output

    def test_marks_applicable_changes(self, runner, config_file):
        """Should mark changes whose condition holds."""
        path = config_file({"services": {"fulcrum": {"enable": True}}})
        result = _invoke(runner, path, "list-changes")

        assert "✓ 0.0.85" in result.output
        assert "- 0.0.53" in result.output

    def test_since_filters_older_changes(self, runner, config_file):
        """Should only list changes newer than --since."""
        result = _invoke(runner, config_file({}), "list-changes", "--since", "0.0.70")

        assert result.exit_code == 0
        assert "0.0.85" in result.output
        assert "0.0.70" not in result.output

    def test_since_latest_lists_nothing(self, runner, config_file):
        """Should say so when there are no newer changes."""
        result = _invoke(runner, config_file({}), "list-changes", "--since", "0.0.85")

        assert result.exit_code == 0
        assert "No registered changes." in result.output

    def test_since_malformed(self, runner, config_file):
        """Should reject a malformed --since value."""
        result = _invoke(runner, config_file({}), "list-changes", "--since", "newest")

        assert result.exit_code == 2
        assert "Malformed version 'newest'" in result.output


class TestLatestVersionCommand:
    """Test the latest-version command."""

    def test_prints_latest_version(self, runner):
        """Should print the version of the newest registered change."""
        result = runner.invoke(cli, ["latest-version"], obj={})

        assert result.exit_code == 0
        assert result.output.strip() == "0.0.85"

    def test_uses_evaluator_registry(self, runner):
        """Should report the latest version of the evaluator's registry."""
        registry = ChangeRegistry([ChangeRecord(version="1.2.3", message="x\n")])
        with patch("configgate.cli.config_gate.ConfigEvaluator", autospec=True) as mock_cls:
            mock_cls.return_value.latest_version = registry.latest_version()
            result = runner.invoke(cli, ["latest-version"], obj={})

        assert result.output.strip() == "1.2.3"


class TestSetVersionCommand:
    """Test the set-version command."""

    def test_sets_version(self, runner, config_file):
        """Should write the declared version to the config file."""
        path = config_file({"config_version": "0.0.41", "secrets_dir": "/secrets"})
        result = _invoke(runner, path, "set-version", "0.0.85")

        assert result.exit_code == 0
        assert "config_version set to 0.0.85" in result.output
        with open(path) as f:
            saved = yaml.safe_load(f)
        assert saved == {"config_version": "0.0.85", "secrets_dir": "/secrets"}

    def test_then_check_passes(self, runner, config_file):
        """Should make a failing config pass after migrating."""
        path = config_file({"config_version": "0.0.80", "services": {"fulcrum": {"enable": True}}})

        assert _invoke(runner, path, "check").exit_code == EXIT_INCOMPATIBLE
        _invoke(runner, path, "set-version", "0.0.85")
        assert _invoke(runner, path, "check").exit_code == 0

    def test_malformed_version(self, runner, config_file):
        """Should reject malformed versions as bad parameters."""
        result = _invoke(runner, config_file({}), "set-version", "v2")

        assert result.exit_code == 2
        assert "Malformed version 'v2'" in result.output

    def test_unreadable_existing_config(self, runner, tmp_path):
        """Should exit 2 if the existing config cannot be parsed."""
        path = tmp_path / "broken.yaml"
        path.write_text("services: [unclosed\n")

        result = _invoke(runner, str(path), "set-version", "0.0.85")

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Invalid YAML" in result.output
