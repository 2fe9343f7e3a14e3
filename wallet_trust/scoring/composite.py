"""Composite trust score.

Combines the four component scores with a weight scheme chosen by how much
token data is available, then derives a confidence rating from the
fraction of heuristic metrics that were present.
"""

import logging
from datetime import datetime

from ..core.models import (
    HEURISTIC_METRICS,
    Confidence,
    ScoreBreakdown,
    ScoringResult,
    TokenSummary,
    WalletInfo,
    WeightScheme,
)
from ..core.types import ConfidenceLevel
from .components import (
    calculate_heuristics_score,
    clamp,
    round_half_up,
    score_activity,
    score_token_outcomes,
    score_wallet_age,
)

logger = logging.getLogger(__name__)

# No launches: wallet facts are all there is
NO_TOKENS_WEIGHTS = WeightScheme(wallet_age=0.6, activity=0.4, token_outcome=0.0, heuristics=0.0)
# Launches found, but no metric on any of them
SPARSE_TOKEN_WEIGHTS = WeightScheme(wallet_age=0.5, activity=0.3, token_outcome=0.1, heuristics=0.1)
FULL_TOKEN_WEIGHTS = WeightScheme(wallet_age=0.2, activity=0.1, token_outcome=0.35, heuristics=0.35)

# (minimum completeness, level)
CONFIDENCE_THRESHOLDS = [
    (0.75, ConfidenceLevel.HIGH),
    (0.5, ConfidenceLevel.MEDIUM),
    (0.25, ConfidenceLevel.MEDIUM_LOW),
]


def select_weights(tokens: list[TokenSummary]) -> WeightScheme:
    """Pick the weight scheme for the available token data."""
    if not tokens:
        return NO_TOKENS_WEIGHTS
    if not any(token.has_metrics for token in tokens):
        return SPARSE_TOKEN_WEIGHTS
    return FULL_TOKEN_WEIGHTS


def calculate_data_completeness(tokens: list[TokenSummary]) -> float:
    """Populated metric slots over all possible slots, 0 when there are no tokens."""
    if not tokens:
        return 0.0
    available = sum(token.metric_count for token in tokens)
    return available / (len(HEURISTIC_METRICS) * len(tokens))


def calculate_confidence(completeness: float, token_count: int) -> Confidence:
    """Map data completeness onto a confidence level."""
    if token_count == 0:
        return Confidence(
            level=ConfidenceLevel.LOW,
            reason="No token launches detected - score based on wallet metrics only",
            data_completeness=0.0,
        )

    level = ConfidenceLevel.LOW
    for threshold, candidate in CONFIDENCE_THRESHOLDS:
        if completeness >= threshold:
            level = candidate
            break

    reasons = {
        ConfidenceLevel.HIGH: "Comprehensive token metrics available",
        ConfidenceLevel.MEDIUM: "Most token metrics available",
        ConfidenceLevel.MEDIUM_LOW: "Limited token metrics available",
        ConfidenceLevel.LOW: "Very limited token metrics available",
    }
    return Confidence(level=level, reason=reasons[level], data_completeness=completeness)


def compute_score(
    wallet_info: WalletInfo,
    token_summaries: list[TokenSummary],
    now: datetime | None = None,
) -> ScoringResult:
    """
    Compute the deterministic trust score for a wallet.

    Args:
        wallet_info: Wallet facts (unknown values score neutral)
        token_summaries: Launched tokens, ideally already classified
        now: Reference time for wallet age (defaults to the current time)

    Returns:
        ScoringResult with breakdown, ordered notes and confidence
    """
    age = score_wallet_age(wallet_info.created_at, now)
    activity = score_activity(wallet_info.tx_count)
    outcomes = score_token_outcomes(token_summaries)
    heuristics = calculate_heuristics_score(token_summaries)
    weights = select_weights(token_summaries)

    weighted = (
        age.score * weights.wallet_age
        + activity.score * weights.activity
        + outcomes.score * weights.token_outcome
        + heuristics.score * weights.heuristics
    )
    final = int(clamp(0, 100, round_half_up(weighted)))

    logger.debug(f"Wallet age score: {age.score} (weight {weights.wallet_age})")
    logger.debug(f"Activity score: {activity.score} (weight {weights.activity})")
    logger.debug(f"Token outcome score: {outcomes.score} (weight {weights.token_outcome})")
    logger.debug(f"Heuristics score: {heuristics.score} (weight {weights.heuristics})")
    logger.debug(f"Final score: {final} (raw {weighted:.2f})")

    completeness = calculate_data_completeness(token_summaries)
    confidence = calculate_confidence(completeness, len(token_summaries))

    notes = [
        *age.notes,
        *activity.notes,
        *outcomes.notes,
        *heuristics.notes,
        f"Confidence: {confidence.level.value} ({confidence.reason}, "
        f"{round_half_up(completeness * 100)}% data completeness)",
    ]

    return ScoringResult(
        score=final,
        breakdown=ScoreBreakdown(
            wallet_age_score=age.score,
            activity_score=activity.score,
            token_outcome_score=outcomes.score,
            heuristics_score=heuristics.score,
            final=final,
        ),
        notes=notes,
        confidence=confidence,
    )
