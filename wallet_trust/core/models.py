"""Pydantic data models for wallet trust scoring.

All data structures are immutable (frozen) after creation. Attributes are
snake_case in Python; the wire form (``model_dump(by_alias=True)``) uses the
camelCase field names existing API callers depend on.
"""

import math
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .types import Chain, ConfidenceLevel, DiscoveryMode, Outcome, Ratio, Score, USDAmount


WIRE_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
}

HEURISTIC_METRICS = (
    "dev_sell_ratio",
    "initial_liquidity",
    "liquidity_locked",
    "holders_after_7_days",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WalletInfo(BaseModel):
    """Wallet facts reported by a provider.

    ``None`` always means the provider could not determine the value.
    """

    created_at: str | None = None  # ISO-8601 timestamp of first activity
    first_tx_hash: str | None = None
    tx_count: int = Field(default=0, ge=0)
    age: str | None = None  # Human readable, e.g. "1 year, 2 months"

    model_config = WIRE_CONFIG

    @classmethod
    def unknown(cls) -> "WalletInfo":
        """Neutral default used when no provider could answer."""
        return cls(created_at=None, tx_count=0, age=None)


class TokenSummary(BaseModel):
    """A token launched by the wallet, with optional heuristic metrics."""

    token: str  # Chain-specific identifier (contract address or mint)
    name: str | None = None
    symbol: str | None = None
    creator: str | None = None
    launch_at: str | None = None

    # Heuristic metrics - absence is distinct from a bad value
    initial_liquidity: USDAmount | None = None
    holders_after_7_days: int | None = Field(
        default=None, ge=0, alias="holdersAfter7Days"
    )
    liquidity_locked: bool | None = None
    dev_sell_ratio: Ratio | None = None
    current_liquidity: USDAmount | None = None

    # Creator check for manually supplied tokens (None = not checked)
    verified: bool | None = None
    verification_warning: str | None = None

    # Set once by the outcome classifier
    outcome: Outcome | None = None
    reason: str | None = None

    model_config = WIRE_CONFIG

    @field_validator("initial_liquidity", "current_liquidity", "dev_sell_ratio", mode="before")
    @classmethod
    def nan_to_none(cls, v: Any) -> Any:
        if isinstance(v, float) and math.isnan(v):
            return None
        return v

    @field_validator("dev_sell_ratio")
    @classmethod
    def validate_ratio(cls, v: Ratio | None) -> Ratio | None:
        if v is not None and (v < 0 or v > 1):
            raise ValueError(f"dev_sell_ratio must be within 0-1, got {v}")
        return v

    @property
    def display_name(self) -> str:
        """Name used in notes: name, then symbol, then a truncated id."""
        return self.name or self.symbol or f"{self.token[:8]}..."

    @property
    def metric_count(self) -> int:
        """Number of the four heuristic metrics that are present."""
        return sum(1 for metric in HEURISTIC_METRICS if getattr(self, metric) is not None)

    @property
    def has_metrics(self) -> bool:
        return self.metric_count > 0

    def with_outcome(self, outcome: Outcome, reason: str) -> "TokenSummary":
        """Return a classified copy (immutable pattern)."""
        return self.model_copy(update={"outcome": outcome, "reason": reason})


class OutcomeResult(BaseModel):
    """Outcome label and the rule that produced it."""

    outcome: Outcome
    reason: str

    model_config = {"frozen": True}


class RateLimitSnapshot(BaseModel):
    """Point-in-time view of a provider's rate-limit window."""

    remaining: int
    reset_at: float = Field(alias="resetTime")  # Unix timestamp in seconds

    model_config = WIRE_CONFIG


class ProviderHealthState(BaseModel):
    """Health and rate-limit bookkeeping for one provider."""

    healthy: bool = True
    rate_limit_remaining: int = 60
    rate_limit_reset_at: float = 0.0
    rate_limit_ceiling: int = 60
    last_error: str | None = None
    last_checked_at: datetime | None = None

    model_config = WIRE_CONFIG


class ProviderStatus(BaseModel):
    """Diagnostic snapshot of a registered provider."""

    name: str
    chain: Chain
    priority: int
    available: bool
    healthy: bool
    rate_limit: RateLimitSnapshot
    last_error: str | None = None

    model_config = WIRE_CONFIG


class ComponentScore(BaseModel):
    """Sub-score produced by one component scorer."""

    score: Score = Field(ge=0, le=100)
    notes: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class HeuristicsResult(ComponentScore):
    """Heuristics sub-score with penalty bookkeeping."""

    penalties_applied: int = 0
    bonuses_applied: int = 0
    data_available: bool = False
    data_completeness: float = 0.0


class WeightScheme(BaseModel):
    """Weights combining the four component scores."""

    wallet_age: float = Field(ge=0, le=1)
    activity: float = Field(ge=0, le=1)
    token_outcome: float = Field(ge=0, le=1)
    heuristics: float = Field(ge=0, le=1)

    model_config = WIRE_CONFIG

    @model_validator(mode="after")
    def validate_total(self) -> "WeightScheme":
        if not math.isclose(self.total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Weights must sum to 1.0, got {self.total}")
        return self

    @property
    def total(self) -> float:
        return math.fsum(
            [self.wallet_age, self.activity, self.token_outcome, self.heuristics]
        )


class ScoreBreakdown(BaseModel):
    """Per-component scores plus the final composite."""

    wallet_age_score: Score = Field(ge=0, le=100)
    activity_score: Score = Field(ge=0, le=100)
    token_outcome_score: Score = Field(ge=0, le=100)
    heuristics_score: Score = Field(ge=0, le=100)
    final: Score = Field(ge=0, le=100)

    model_config = WIRE_CONFIG


class Confidence(BaseModel):
    """How complete the data behind a score was."""

    level: ConfidenceLevel
    reason: str
    data_completeness: float = Field(ge=0, le=1)

    model_config = WIRE_CONFIG


class ScoringResult(BaseModel):
    """Complete result of the composite scorer."""

    score: Score = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    notes: list[str] = Field(default_factory=list)
    confidence: Confidence

    model_config = WIRE_CONFIG

    @model_validator(mode="after")
    def validate_final_matches_score(self) -> "ScoringResult":
        if self.score != self.breakdown.final:
            raise ValueError(
                f"score ({self.score}) must equal breakdown.final ({self.breakdown.final})"
            )
        return self

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with the public field names."""
        return self.model_dump(mode="json", by_alias=True)


class TokenLaunchSummary(BaseModel):
    """Outcome counts over the classified tokens."""

    total_launched: int = 0
    succeeded: int = 0
    rugged: int = 0
    unknown: int = 0
    tokens: list[TokenSummary] = Field(default_factory=list)

    model_config = WIRE_CONFIG

    @classmethod
    def from_tokens(cls, tokens: list[TokenSummary]) -> "TokenLaunchSummary":
        return cls(
            total_launched=len(tokens),
            succeeded=sum(1 for t in tokens if t.outcome == Outcome.SUCCESS),
            rugged=sum(1 for t in tokens if t.outcome == Outcome.RUG),
            unknown=sum(1 for t in tokens if t.outcome not in (Outcome.SUCCESS, Outcome.RUG)),
            tokens=tokens,
        )


class AnalysisMetadata(BaseModel):
    """Bookkeeping attached to a wallet analysis."""

    analyzed_at: datetime = Field(default_factory=_utcnow)
    processing_time: int = 0  # milliseconds
    data_freshness: Literal["fresh", "cached"] = "cached"
    providers_used: list[str] = Field(default_factory=list)
    discovery_mode: DiscoveryMode = "automatic"

    model_config = WIRE_CONFIG


class WalletAnalysis(BaseModel):
    """Full analysis of one wallet: score, facts and metadata."""

    address: str
    chain: Chain
    scoring: ScoringResult
    wallet_info: WalletInfo
    token_launch_summary: TokenLaunchSummary
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
    tool_version: str = "0.1.0"

    model_config = WIRE_CONFIG

    @property
    def score(self) -> Score:
        return self.scoring.score

    def to_response(self) -> dict[str, Any]:
        """Flatten into the response shape served to API clients."""
        scoring = self.scoring.to_wire()
        return {
            "score": scoring["score"],
            "blockchain": self.chain.value,
            "discoveryMode": self.metadata.discovery_mode,
            "breakdown": scoring["breakdown"],
            "notes": scoring["notes"],
            "reason": "Deterministic score based on on-chain analysis",
            "walletInfo": self.wallet_info.model_dump(mode="json", by_alias=True),
            "tokenLaunchSummary": self.token_launch_summary.model_dump(
                mode="json", by_alias=True
            ),
            "metadata": self.metadata.model_dump(mode="json", by_alias=True),
            "confidence": scoring["confidence"],
        }
