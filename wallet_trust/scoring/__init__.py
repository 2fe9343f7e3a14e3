"""Deterministic scoring engine: outcome classification, component and composite scores."""

from .components import (
    calculate_heuristics_score,
    round_half_up,
    score_activity,
    score_token_outcomes,
    score_wallet_age,
)
from .composite import (
    calculate_confidence,
    calculate_data_completeness,
    compute_score,
    select_weights,
)
from .outcome import classify_tokens, determine_outcome

__all__ = [
    "calculate_heuristics_score",
    "round_half_up",
    "score_activity",
    "score_token_outcomes",
    "score_wallet_age",
    "calculate_confidence",
    "calculate_data_completeness",
    "compute_score",
    "select_weights",
    "classify_tokens",
    "determine_outcome",
]
