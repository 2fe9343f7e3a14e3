"""Configuration management for API keys and settings.

Loads configuration from environment variables or a .env file, with
per-provider tuning (priority, request pacing) read from a YAML file.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS_PATH = Path(__file__).parent / "providers.yaml"

# 5 minutes: some chains require scanning thousands of records per wallet
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 300.0
DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class ProviderSettings:
    """Tuning for a single provider."""

    name: str
    priority: int = 1
    max_requests_per_second: float | None = None
    max_requests_per_minute: int = 60
    enabled: bool = True

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "ProviderSettings":
        """Build settings from a YAML mapping, validating the values."""
        unknown = set(data) - {
            "priority",
            "max_requests_per_second",
            "max_requests_per_minute",
            "enabled",
        }
        if unknown:
            raise ConfigurationError(
                f"providers.{name}", f"unknown keys: {', '.join(sorted(unknown))}"
            )

        settings = cls(name=name, **data)
        if settings.max_requests_per_minute <= 0:
            raise ConfigurationError(
                f"providers.{name}.max_requests_per_minute", "must be positive"
            )
        if settings.max_requests_per_second is not None and settings.max_requests_per_second <= 0:
            raise ConfigurationError(
                f"providers.{name}.max_requests_per_second", "must be positive"
            )
        return settings


DEFAULT_PROVIDER_SETTINGS: dict[str, ProviderSettings] = {
    # Etherscan allows 3 calls/sec on the free tier; stay under it
    "etherscan": ProviderSettings(
        name="etherscan", priority=1, max_requests_per_second=2.5, max_requests_per_minute=100
    ),
    "helius": ProviderSettings(
        name="helius", priority=1, max_requests_per_second=10, max_requests_per_minute=600
    ),
}


@dataclass
class AppConfig:
    """API keys and orchestration settings."""

    # Etherscan (Ethereum wallet and contract data)
    etherscan_api_key: Optional[str] = None

    # Helius (Solana RPC + DAS API)
    helius_api_key: Optional[str] = None

    provider_timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS
    health_check_interval_seconds: float = DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS

    providers: dict[str, ProviderSettings] = field(
        default_factory=lambda: dict(DEFAULT_PROVIDER_SETTINGS)
    )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        return cls(
            etherscan_api_key=_clean(os.getenv("ETHERSCAN_API_KEY")),
            helius_api_key=_clean(os.getenv("HELIUS_API_KEY")),
            provider_timeout_seconds=_env_float(
                "PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT_SECONDS
            ),
            health_check_interval_seconds=_env_float(
                "HEALTH_CHECK_INTERVAL_SECONDS", DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS
            ),
        )

    @classmethod
    def load(
        cls,
        env_file: Optional[Path] = None,
        providers_file: Optional[Path] = None,
    ) -> "AppConfig":
        """
        Load configuration from .env file, environment and provider YAML.

        Args:
            env_file: Optional path to .env file. If not provided,
                      looks for .env in the project root.
            providers_file: Optional provider tuning YAML. Falls back to
                      the bundled providers.yaml.

        Returns:
            AppConfig instance with loaded values
        """
        if env_file:
            load_dotenv(env_file)
        else:
            project_root = Path(__file__).parent.parent.parent
            env_path = project_root / ".env"
            if env_path.exists():
                load_dotenv(env_path)

        config = cls.from_env()

        path = providers_file or DEFAULT_PROVIDERS_PATH
        if path.exists():
            config = replace(config, providers=load_provider_settings(path))
        elif providers_file:
            raise ConfigurationError("providers_file", f"file not found: {providers_file}")

        config.validate()
        return config

    def validate(self) -> None:
        """Reject settings the orchestrator cannot run with."""
        if self.provider_timeout_seconds <= 0:
            raise ConfigurationError("PROVIDER_TIMEOUT_SECONDS", "must be positive")
        if self.health_check_interval_seconds <= 0:
            raise ConfigurationError("HEALTH_CHECK_INTERVAL_SECONDS", "must be positive")

    def has_etherscan(self) -> bool:
        """Check if Etherscan API key is configured."""
        return bool(self.etherscan_api_key)

    def has_helius(self) -> bool:
        """Check if Helius API key is configured."""
        return bool(self.helius_api_key)

    def provider_settings(self, name: str) -> ProviderSettings:
        """Settings for a provider, falling back to defaults."""
        return self.providers.get(name) or DEFAULT_PROVIDER_SETTINGS.get(
            name, ProviderSettings(name=name)
        )

    def get_available_sources(self) -> list[str]:
        """Get list of configured data sources."""
        sources = []
        if self.has_etherscan() and self.provider_settings("etherscan").enabled:
            sources.append("etherscan")
        if self.has_helius() and self.provider_settings("helius").enabled:
            sources.append("helius")
        return sources


def load_provider_settings(path: Path) -> dict[str, ProviderSettings]:
    """Read per-provider settings from a YAML file, merged over defaults."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("providers", {})
    if not isinstance(entries, dict):
        raise ConfigurationError("providers", "expected a mapping of provider names")

    settings = dict(DEFAULT_PROVIDER_SETTINGS)
    for name, values in entries.items():
        settings[name] = ProviderSettings.from_dict(name, values or {})
        logger.debug(f"Loaded provider settings for {name}: {settings[name]}")
    return settings


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(name, f"must be a number, got {value!r}")


# Global config instance (lazy loaded)
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def reload_config(env_file: Optional[Path] = None) -> AppConfig:
    """Reload configuration from environment."""
    global _config
    _config = AppConfig.load(env_file)
    return _config
