"""Component scorers.

Four independent scorers, each producing a 0-100 sub-score with notes:
wallet age, activity, token outcomes and launch heuristics. All are pure
and handle missing data with an explicit neutral score.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any

from ..core.models import ComponentScore, HeuristicsResult, TokenSummary
from ..core.types import NoteSeverity, Outcome, RiskLevel

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50
EMPTY_TOKEN_OUTCOME_SCORE = 75
MIN_BOUNDED_SCORE = 10
MAX_SCORE = 100

# (minimum days, score, note) - first match wins
WALLET_AGE_BUCKETS = [
    (365, 100, "Established wallet (over 1 year old)"),
    (90, 80, "Mature wallet (3-12 months old)"),
    (30, 60, "Moderate history (1-3 months old)"),
    (7, 40, "New wallet (1-4 weeks old)"),
    (0, 10, "Brand new wallet (less than 7 days old) - HIGH RISK"),
]

# (minimum transactions, score, note)
ACTIVITY_BUCKETS = [
    (1000, 100, "Very active wallet (1,000+ transactions)"),
    (500, 80, "Active wallet (500+ transactions)"),
    (100, 60, "Moderately active wallet (100+ transactions)"),
    (50, 40, "Limited activity (50-99 transactions)"),
    (10, 20, "Low activity (10-49 transactions)"),
    (0, 0, "Minimal activity (less than 10 transactions)"),
]


def round_half_up(value: float) -> int:
    """Round .5 upward (62.5 -> 63), unlike the built-in banker's rounding."""
    return int(math.floor(value + 0.5))


def clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a provider timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (with or without a trailing ``Z``), date-only
    strings, Unix seconds and datetimes. Naive values are taken as UTC.
    Returns None for anything unparseable.
    """
    if value is None:
        return None
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        else:
            text = str(value).strip()
            if not text:
                return None
            if text.isdigit():
                parsed = datetime.fromtimestamp(int(text), tz=timezone.utc)
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(value: Any, now: datetime | None = None) -> int | None:
    """Whole days elapsed since a timestamp (floored), or None if unparseable."""
    created = parse_timestamp(value)
    if created is None:
        return None
    now = now or datetime.now(timezone.utc)
    elapsed = (now - created).total_seconds() / 86400
    return max(0, math.floor(elapsed))


def score_wallet_age(created_at: Any, now: datetime | None = None) -> ComponentScore:
    """Score wallet age. Unknown age scores neutral (50)."""
    days = days_since(created_at, now)
    if days is None:
        return ComponentScore(
            score=NEUTRAL_SCORE,
            notes=["Wallet age unknown - neutral age score applied"],
        )

    for min_days, score, note in WALLET_AGE_BUCKETS:
        if days >= min_days:
            break
    return ComponentScore(score=score, notes=[f"{note} ({days} days)"])


def score_activity(tx_count: int) -> ComponentScore:
    """Score on-chain activity by transaction count."""
    for min_count, score, note in ACTIVITY_BUCKETS:
        if tx_count >= min_count:
            break
    return ComponentScore(score=score, notes=[note])


def score_token_outcomes(tokens: list[TokenSummary]) -> ComponentScore:
    """
    Score the launch track record.

    Formula: 100 * (0.5 * success_ratio + 0.5 * (1 - rug_ratio)), clamped to
    [10, 100]. An empty list scores 75: no launches is not evidence of risk.
    """
    if not tokens:
        return ComponentScore(
            score=EMPTY_TOKEN_OUTCOME_SCORE,
            notes=["No token launches detected"],
        )

    total = len(tokens)
    succeeded = sum(1 for t in tokens if t.outcome == Outcome.SUCCESS)
    rugged = sum(1 for t in tokens if t.outcome == Outcome.RUG)
    unknown = total - succeeded - rugged

    raw = 100 * (0.5 * (succeeded / total) + 0.5 * (1 - rugged / total))
    score = int(clamp(MIN_BOUNDED_SCORE, MAX_SCORE, round_half_up(raw)))

    notes = [
        f"{total} token(s) launched: {succeeded} succeeded, {rugged} rugged, {unknown} unknown"
    ]
    if rugged:
        notes.append(f"{rugged} token(s) flagged as potential rug pulls")
    return ComponentScore(score=score, notes=notes)


class _HeuristicsTally:
    """Accumulates signed penalties and severity-grouped notes."""

    def __init__(self):
        self.total_penalty = 0
        self.penalties = 0
        self.bonuses = 0
        self.notes: dict[NoteSeverity, list[str]] = {severity: [] for severity in NoteSeverity}

    def penalize(self, amount: int, severity: NoteSeverity, note: str) -> None:
        self.total_penalty += amount
        self.penalties += 1
        self.notes[severity].append(note)

    def reward(self, amount: int, note: str) -> None:
        self.total_penalty -= amount
        self.bonuses += 1
        self.notes[NoteSeverity.POSITIVE].append(note)

    def info(self, note: str) -> None:
        self.notes[NoteSeverity.INFO].append(note)

    @property
    def risk_level(self) -> RiskLevel:
        if self.notes[NoteSeverity.CRITICAL]:
            return RiskLevel.HIGH
        if len(self.notes[NoteSeverity.WARNING]) > 2:
            return RiskLevel.MODERATE
        return RiskLevel.LOW


def _apply_dev_sell(tally: _HeuristicsTally, name: str, ratio: float) -> None:
    percent = f"{ratio * 100:.1f}%"
    if ratio >= 0.8:
        tally.penalize(60, NoteSeverity.CRITICAL, f"{name}: Developer sold {percent} of tokens - LIKELY RUG")
    elif ratio >= 0.5:
        tally.penalize(35, NoteSeverity.WARNING, f"{name}: Developer sold {percent} of tokens - HIGH RISK")
    elif ratio >= 0.25:
        tally.penalize(15, NoteSeverity.WARNING, f"{name}: Developer sold {percent} of tokens - CONCERNING")
    elif ratio < 0.1:
        tally.reward(5, f"{name}: Developer held {(1 - ratio) * 100:.1f}% of tokens")


def _apply_liquidity(tally: _HeuristicsTally, name: str, usd: float) -> None:
    amount = f"${usd:,.0f}"
    if usd == 0:
        tally.penalize(40, NoteSeverity.CRITICAL, f"{name}: No initial liquidity provided")
    elif usd < 1000:
        tally.penalize(25, NoteSeverity.CRITICAL, f"{name}: Very low initial liquidity ({amount})")
    elif usd < 10000:
        tally.penalize(10, NoteSeverity.WARNING, f"{name}: Low initial liquidity ({amount})")
    elif usd >= 50000:
        tally.reward(10, f"{name}: Strong initial liquidity ({amount})")


def _apply_lock(tally: _HeuristicsTally, name: str, locked: bool) -> None:
    if locked:
        tally.reward(20, f"{name}: Liquidity is locked")
    else:
        tally.penalize(15, NoteSeverity.WARNING, f"{name}: Liquidity not locked")


def _apply_holders(tally: _HeuristicsTally, name: str, holders: int) -> None:
    if holders < 10:
        tally.penalize(20, NoteSeverity.WARNING, f"{name}: Very few holders after 7 days ({holders})")
    elif holders < 50:
        tally.penalize(10, NoteSeverity.WARNING, f"{name}: Low holder count after 7 days ({holders})")
    elif holders >= 100:
        tally.reward(10, f"{name}: Good holder growth ({holders} holders after 7 days)")


def calculate_heuristics_score(tokens: list[TokenSummary]) -> HeuristicsResult:
    """
    Score launch quality from per-token heuristic metrics.

    Starts at 100 and subtracts a signed penalty per metric present on each
    token. Missing metrics are reported as info notes and never penalized.

    Returns:
        HeuristicsResult with the score clamped to [10, 100], or 50 when
        there are no tokens or no token carries any metric
    """
    if not tokens:
        return HeuristicsResult(
            score=NEUTRAL_SCORE,
            notes=["No tokens launched - score based on wallet metrics only"],
        )

    available = sum(token.metric_count for token in tokens)
    if available == 0:
        return HeuristicsResult(
            score=NEUTRAL_SCORE,
            notes=["No token metrics available - returning neutral score"],
        )

    tally = _HeuristicsTally()
    for token in tokens:
        name = token.display_name
        if not token.has_metrics:
            tally.info(f"{name}: No heuristic data available")
            continue

        if token.dev_sell_ratio is not None:
            _apply_dev_sell(tally, name, token.dev_sell_ratio)
        else:
            tally.info(f"{name}: Developer sell data unavailable")

        if token.initial_liquidity is not None:
            _apply_liquidity(tally, name, token.initial_liquidity)
        else:
            tally.info(f"{name}: Initial liquidity data unavailable")

        if token.liquidity_locked is not None:
            _apply_lock(tally, name, token.liquidity_locked)
        else:
            tally.info(f"{name}: Liquidity lock status unavailable")

        if token.holders_after_7_days is not None:
            _apply_holders(tally, name, token.holders_after_7_days)
        else:
            tally.info(f"{name}: Holder count data unavailable")

    completeness = available / (4 * len(tokens))
    score = int(clamp(MIN_BOUNDED_SCORE, MAX_SCORE, 100 - tally.total_penalty))

    notes: list[str] = []
    for severity in NoteSeverity:
        if tally.notes[severity]:
            notes.append(severity.heading)
            notes.extend(f"  - {note}" for note in tally.notes[severity])

    notes.append("SUMMARY:")
    notes.append(f"  - Overall Risk Level: {tally.risk_level.value}")
    notes.append(f"  - Data Completeness: {round_half_up(completeness * 100)}%")
    if tally.penalties or tally.bonuses:
        notes.append(
            f"  - Analysis: {tally.penalties} risk factors, {tally.bonuses} positive indicators"
        )

    return HeuristicsResult(
        score=score,
        notes=notes,
        penalties_applied=tally.penalties,
        bonuses_applied=tally.bonuses,
        data_available=True,
        data_completeness=completeness,
    )
