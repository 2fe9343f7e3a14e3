"""
Tests for configuration loading and the data models' validation rules.
"""

import math

import pydantic
import pytest

from wallet_trust.core.config import AppConfig, ProviderSettings, load_provider_settings
from wallet_trust.core.exceptions import ConfigurationError
from wallet_trust.core.models import ScoreBreakdown, ScoringResult, TokenSummary, WeightScheme
from wallet_trust.core.types import Chain, ConfidenceLevel


@pytest.fixture
def clean_env(monkeypatch):
    """Unset every variable the config reads (restored afterwards)."""
    for name in (
        "ETHERSCAN_API_KEY",
        "HELIUS_API_KEY",
        "PROVIDER_TIMEOUT_SECONDS",
        "HEALTH_CHECK_INTERVAL_SECONDS",
    ):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch


class TestAppConfig:
    """Tests for environment and file based configuration."""

    def test_from_env(self, clean_env):
        clean_env.setenv("ETHERSCAN_API_KEY", "  eth-key  ")
        clean_env.setenv("HELIUS_API_KEY", " ")
        clean_env.setenv("PROVIDER_TIMEOUT_SECONDS", "45")

        config = AppConfig.from_env()

        assert config.etherscan_api_key == "eth-key"
        assert config.helius_api_key is None
        assert config.provider_timeout_seconds == 45.0
        assert config.health_check_interval_seconds == 60.0
        assert config.get_available_sources() == ["etherscan"]

    def test_defaults(self, clean_env):
        config = AppConfig.from_env()
        assert config.provider_timeout_seconds == 300.0
        assert config.get_available_sources() == []

    def test_non_numeric_timeout(self, clean_env):
        clean_env.setenv("PROVIDER_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ConfigurationError):
            AppConfig.from_env()

    def test_load_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("ETHERSCAN_API_KEY=from-file\nHELIUS_API_KEY=sol-file\n")

        config = AppConfig.load(env_file=env_file)

        assert config.has_etherscan()
        assert config.etherscan_api_key == "from-file"
        assert config.get_available_sources() == ["etherscan", "helius"]

    def test_validate_rejects_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            AppConfig(provider_timeout_seconds=0).validate()
        with pytest.raises(ConfigurationError):
            AppConfig(health_check_interval_seconds=-1).validate()

    def test_missing_providers_file(self, clean_env, tmp_path):
        with pytest.raises(ConfigurationError):
            AppConfig.load(env_file=tmp_path / "none.env", providers_file=tmp_path / "missing.yaml")


class TestProviderSettings:
    """Tests for the provider tuning YAML."""

    def test_load_overrides(self, tmp_path):
        path = tmp_path / "providers.yaml"
        path.write_text(
            "providers:\n"
            "  etherscan:\n"
            "    priority: 2\n"
            "    max_requests_per_second: 1\n"
            "  helius:\n"
            "    enabled: false\n"
        )
        settings = load_provider_settings(path)

        assert settings["etherscan"].priority == 2
        assert settings["etherscan"].max_requests_per_second == 1
        assert settings["helius"].enabled is False

    def test_disabled_provider_not_a_source(self):
        config = AppConfig(
            helius_api_key="k",
            providers={"helius": ProviderSettings(name="helius", enabled=False)},
        )
        assert config.get_available_sources() == []

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "providers.yaml"
        path.write_text("providers:\n  etherscan:\n    burst: 9\n")
        with pytest.raises(ConfigurationError):
            load_provider_settings(path)

    def test_non_positive_limit_rejected(self):
        with pytest.raises(ConfigurationError):
            ProviderSettings.from_dict("etherscan", {"max_requests_per_minute": 0})

    def test_fallback_settings(self):
        config = AppConfig(providers={})
        assert config.provider_settings("etherscan").max_requests_per_minute == 100
        assert config.provider_settings("other").name == "other"


class TestModelValidation:
    """Tests for invariants enforced by the data models."""

    def test_dev_sell_ratio_bounds(self):
        with pytest.raises(pydantic.ValidationError):
            TokenSummary(token="0x1", dev_sell_ratio=1.5)

    def test_nan_metric_is_missing(self):
        token = TokenSummary(token="0x1", initial_liquidity=math.nan)
        assert token.initial_liquidity is None
        assert token.metric_count == 0

    def test_display_name_fallbacks(self):
        assert TokenSummary(token="0x1234567890abcdef").display_name == "0x123456..."
        assert TokenSummary(token="0x1", symbol="SYM").display_name == "SYM"

    def test_models_are_frozen(self):
        token = TokenSummary(token="0x1")
        with pytest.raises(pydantic.ValidationError):
            token.name = "changed"

    def test_weights_must_sum_to_one(self):
        with pytest.raises(pydantic.ValidationError):
            WeightScheme(wallet_age=0.5, activity=0.5, token_outcome=0.5, heuristics=0.0)

    def test_score_must_match_final(self):
        breakdown = ScoreBreakdown(
            wallet_age_score=50,
            activity_score=50,
            token_outcome_score=50,
            heuristics_score=50,
            final=50,
        )
        with pytest.raises(pydantic.ValidationError):
            ScoringResult(
                score=51,
                breakdown=breakdown,
                confidence={"level": ConfidenceLevel.LOW, "reason": "r", "data_completeness": 0.0},
            )

    def test_chain_detection(self):
        assert Chain.detect("0x742d35Cc6634C0532925a3b844Bc454e4438f44e") == Chain.ETHEREUM
        assert Chain.detect("9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM") == Chain.SOLANA
        assert Chain.detect("nope") is None
