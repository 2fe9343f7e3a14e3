"""
Tests for the command-line interface.
"""

import pytest
from typer.testing import CliRunner

from wallet_trust import __version__
from wallet_trust.cli.main import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def no_keys(monkeypatch, tmp_path):
    """Empty .env file and no provider keys in the environment."""
    for name in ("ETHERSCAN_API_KEY", "HELIUS_API_KEY"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return env_file


class TestCli:
    """Tests for command wiring and argument validation."""

    def test_version(self, runner):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_output_format(self, runner, no_keys):
        result = runner.invoke(
            app,
            ["analyze", "0x742d35Cc6634C0532925a3b844Bc454e4438f44e", "-o", "xml", "--env-file", str(no_keys)],
        )
        assert result.exit_code == 1
        assert "Invalid output format" in result.output

    def test_invalid_address(self, runner, no_keys):
        result = runner.invoke(app, ["analyze", "not-a-wallet", "--env-file", str(no_keys)])
        assert result.exit_code == 1
        assert "Invalid input" in result.output

    def test_non_positive_timeout(self, runner, no_keys):
        result = runner.invoke(
            app,
            ["analyze", "0x742d35Cc6634C0532925a3b844Bc454e4438f44e", "--timeout", "0", "--env-file", str(no_keys)],
        )
        assert result.exit_code == 1

    def test_providers_without_keys(self, runner, no_keys):
        result = runner.invoke(app, ["providers", "--env-file", str(no_keys)])
        assert result.exit_code == 1
        assert "No providers configured" in result.output
