"""Token outcome classification.

Labels each launched token as ``success``, ``rug`` or ``unknown`` from its
heuristic metrics. Rules are evaluated in order and the first match wins;
every token receives exactly one label.
"""

import logging

from ..core.models import OutcomeResult, TokenSummary
from ..core.types import Outcome

logger = logging.getLogger(__name__)

# Developer sell ratio at or above which a launch is treated as dumped
RUG_DEV_SELL_RATIO = 0.8
# Elevated, but not conclusive on its own
CONCERN_DEV_SELL_RATIO = 0.5
# Success requires the developer to have sold less than this
SUCCESS_MAX_DEV_SELL_RATIO = 0.25
SUCCESS_MIN_HOLDERS = 100
MIN_HOLDERS = 10
# Fraction of initial liquidity removed that counts as a pull
LIQUIDITY_DRAIN_RATIO = 0.8


def determine_outcome(token: TokenSummary) -> OutcomeResult:
    """
    Classify a single token launch.

    Args:
        token: Token with whatever metrics the provider could extract

    Returns:
        OutcomeResult with the label and the rule that produced it
    """
    dev_sell = token.dev_sell_ratio
    initial = token.initial_liquidity
    current = token.current_liquidity
    holders = token.holders_after_7_days

    if dev_sell is not None and dev_sell >= RUG_DEV_SELL_RATIO and not initial:
        return OutcomeResult(
            outcome=Outcome.RUG,
            reason=f"Developer sold {dev_sell * 100:.1f}% of supply with no liquidity",
        )

    if initial is not None and initial > 0 and current is not None:
        drained = 1 - current / initial
        if drained >= LIQUIDITY_DRAIN_RATIO:
            return OutcomeResult(
                outcome=Outcome.RUG,
                reason=f"Liquidity dropped {drained * 100:.0f}% from launch",
            )

    if initial == 0 and current is None:
        return OutcomeResult(outcome=Outcome.RUG, reason="Zero initial liquidity")

    if (
        token.liquidity_locked is True
        and holders is not None
        and holders >= SUCCESS_MIN_HOLDERS
        and (dev_sell is None or dev_sell < SUCCESS_MAX_DEV_SELL_RATIO)
    ):
        return OutcomeResult(
            outcome=Outcome.SUCCESS,
            reason=f"Locked liquidity with {holders} holders after 7 days",
        )

    if dev_sell is not None and dev_sell >= RUG_DEV_SELL_RATIO:
        return OutcomeResult(
            outcome=Outcome.UNKNOWN,
            reason="Contradictory signals: heavy developer selling but liquidity present",
        )

    if dev_sell is not None and dev_sell >= CONCERN_DEV_SELL_RATIO:
        return OutcomeResult(
            outcome=Outcome.UNKNOWN,
            reason=f"Elevated developer selling ({dev_sell * 100:.1f}%)",
        )

    if holders is not None and holders < MIN_HOLDERS:
        return OutcomeResult(outcome=Outcome.UNKNOWN, reason="Very few holders")

    return OutcomeResult(outcome=Outcome.UNKNOWN, reason="Insufficient data to determine outcome")


def classify_tokens(tokens: list[TokenSummary]) -> list[TokenSummary]:
    """Return copies labelled with outcome and reason. Labelled tokens are kept as-is."""
    classified = []
    for token in tokens:
        if token.outcome is not None:
            classified.append(token)
            continue
        result = determine_outcome(token)
        logger.debug(f"{token.display_name}: {result.outcome.value} ({result.reason})")
        classified.append(token.with_outcome(result.outcome, result.reason))
    return classified
