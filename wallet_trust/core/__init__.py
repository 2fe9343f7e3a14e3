"""Core module - data models, types, and exceptions."""

from .models import (
    WalletInfo,
    TokenSummary,
    OutcomeResult,
    RateLimitSnapshot,
    ProviderHealthState,
    ProviderStatus,
    ComponentScore,
    HeuristicsResult,
    WeightScheme,
    ScoreBreakdown,
    Confidence,
    ScoringResult,
    TokenLaunchSummary,
    AnalysisMetadata,
    WalletAnalysis,
)
from .types import (
    Chain,
    Outcome,
    ConfidenceLevel,
    NoteSeverity,
    RiskLevel,
)
from .exceptions import (
    WalletTrustError,
    ValidationError,
    ProviderError,
    RateLimitError,
    ProviderTimeoutError,
    ConfigurationError,
)

__all__ = [
    # Models
    "WalletInfo",
    "TokenSummary",
    "OutcomeResult",
    "RateLimitSnapshot",
    "ProviderHealthState",
    "ProviderStatus",
    "ComponentScore",
    "HeuristicsResult",
    "WeightScheme",
    "ScoreBreakdown",
    "Confidence",
    "ScoringResult",
    "TokenLaunchSummary",
    "AnalysisMetadata",
    "WalletAnalysis",
    # Types
    "Chain",
    "Outcome",
    "ConfidenceLevel",
    "NoteSeverity",
    "RiskLevel",
    # Exceptions
    "WalletTrustError",
    "ValidationError",
    "ProviderError",
    "RateLimitError",
    "ProviderTimeoutError",
    "ConfigurationError",
]
