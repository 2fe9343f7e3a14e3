"""Output formatters for wallet analyses.

Provides multiple output formats:
- JSON: The API response shape, camelCase field names
- Table: Human-readable CLI output
"""

import json
import logging
from abc import ABC, abstractmethod
from io import StringIO

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.models import ProviderStatus, WalletAnalysis
from ..core.types import ConfidenceLevel, Outcome

logger = logging.getLogger(__name__)

SCORE_STYLES = [(70, "green"), (40, "yellow"), (0, "red")]
OUTCOME_STYLES = {Outcome.SUCCESS: "green", Outcome.RUG: "red", Outcome.UNKNOWN: "dim"}
CONFIDENCE_STYLES = {
    ConfidenceLevel.HIGH: "green",
    ConfidenceLevel.MEDIUM: "yellow",
    ConfidenceLevel.MEDIUM_LOW: "yellow",
    ConfidenceLevel.LOW: "red",
}


def score_style(score: int) -> str:
    for threshold, style in SCORE_STYLES:
        if score >= threshold:
            return style
    return "red"


class OutputFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def format(self, analysis: WalletAnalysis) -> str:
        """Format the analysis as a string."""
        pass

    def format_to_file(self, analysis: WalletAnalysis, filepath: str) -> None:
        """Write the formatted analysis to a file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.format(analysis))


class JSONFormatter(OutputFormatter):
    """Formats analyses as the JSON response served to API clients."""

    def __init__(self, indent: int = 2, include_tokens: bool = True):
        """
        Initialize JSON formatter.

        Args:
            indent: JSON indentation level
            include_tokens: Include per-token detail in tokenLaunchSummary
        """
        self.indent = indent
        self.include_tokens = include_tokens

    def format(self, analysis: WalletAnalysis) -> str:
        data = analysis.to_response()
        if not self.include_tokens:
            data["tokenLaunchSummary"].pop("tokens", None)
        return json.dumps(data, indent=self.indent)


class TableFormatter(OutputFormatter):
    """Formats analyses as human-readable tables for CLI output."""

    def __init__(self, use_rich: bool = True, width: int = 100):
        """
        Initialize table formatter.

        Args:
            use_rich: Render with rich styling (ANSI colors)
            width: Maximum table width
        """
        self.use_rich = use_rich
        self.width = width

    def format(self, analysis: WalletAnalysis) -> str:
        if self.use_rich:
            return self._format_rich(analysis)
        return self._format_plain(analysis)

    def _format_plain(self, analysis: WalletAnalysis) -> str:
        """Plain text formatting without ANSI codes."""
        lines = []
        sep = "=" * 60
        scoring = analysis.scoring
        b = scoring.breakdown

        lines.append(sep)
        lines.append(f"  WALLET TRUST SCORE: {scoring.score}/100")
        lines.append(f"  {analysis.address} ({analysis.chain.value})")
        lines.append(sep)
        lines.append("")

        lines.append("SCORE BREAKDOWN")
        lines.append("-" * 40)
        lines.append(f"  Wallet Age:     {b.wallet_age_score:>5}")
        lines.append(f"  Activity:       {b.activity_score:>5}")
        lines.append(f"  Token Outcome:  {b.token_outcome_score:>5}")
        lines.append(f"  Heuristics:     {b.heuristics_score:>5}")
        lines.append(f"  Final:          {b.final:>5}")
        lines.append(
            f"  Confidence:     {scoring.confidence.level.value} "
            f"({scoring.confidence.data_completeness:.0%} data completeness)"
        )
        lines.append("")

        info = analysis.wallet_info
        lines.append("WALLET")
        lines.append("-" * 40)
        lines.append(f"  Created:        {info.created_at or 'Unknown'}")
        lines.append(f"  Age:            {info.age or 'Unknown'}")
        lines.append(f"  Transactions:   {info.tx_count:,}")
        lines.append("")

        summary = analysis.token_launch_summary
        lines.append("TOKEN LAUNCHES")
        lines.append("-" * 40)
        lines.append(
            f"  {summary.total_launched} launched: {summary.succeeded} succeeded, "
            f"{summary.rugged} rugged, {summary.unknown} unknown"
        )
        for token in summary.tokens:
            outcome = token.outcome.value if token.outcome else "unclassified"
            lines.append(f"  {token.display_name:<24} {outcome:<10} {token.reason or ''}")
        lines.append("")

        lines.append("NOTES")
        lines.append("-" * 40)
        for note in scoring.notes:
            lines.append(f"  {note}")
        lines.append("")

        meta = analysis.metadata
        lines.append(sep)
        lines.append(f"  Analyzed: {meta.analyzed_at.strftime('%Y-%m-%d %H:%M UTC')} ({meta.data_freshness})")
        lines.append(f"  Providers: {', '.join(meta.providers_used) or 'none'}")
        lines.append(sep)

        return "\n".join(lines)

    def _format_rich(self, analysis: WalletAnalysis) -> str:
        """Rich library formatting with colors."""
        output = StringIO()
        console = Console(file=output, force_terminal=True, width=self.width)
        scoring = analysis.scoring
        style = score_style(scoring.score)
        confidence = scoring.confidence

        console.print(Panel(
            f"[bold {style}]{scoring.score}/100[/]\n"
            f"[dim]{analysis.address} ({analysis.chain.value})[/]\n"
            f"Confidence: [{CONFIDENCE_STYLES[confidence.level]}]{confidence.level.value}[/] "
            f"[dim]({confidence.reason})[/]",
            title="Wallet Trust Score",
            expand=False,
        ))

        b = scoring.breakdown
        breakdown = Table(title="Score Breakdown", show_header=False)
        breakdown.add_column("Component", style="cyan")
        breakdown.add_column("Score", justify="right")
        for label, value in [
            ("Wallet Age", b.wallet_age_score),
            ("Activity", b.activity_score),
            ("Token Outcome", b.token_outcome_score),
            ("Heuristics", b.heuristics_score),
        ]:
            breakdown.add_row(label, f"[{score_style(value)}]{value}[/]")
        breakdown.add_row("", "", end_section=True)
        breakdown.add_row("[bold]Final[/]", f"[bold {style}]{b.final}[/]")
        console.print(breakdown)

        info = analysis.wallet_info
        wallet = Table(title="Wallet", show_header=False)
        wallet.add_column("Field", style="cyan")
        wallet.add_column("Value", style="green")
        wallet.add_row("Created", info.created_at or "[yellow]Unknown[/]")
        wallet.add_row("Age", info.age or "[yellow]Unknown[/]")
        wallet.add_row("Transactions", f"{info.tx_count:,}")
        console.print(wallet)

        summary = analysis.token_launch_summary
        if summary.tokens:
            tokens = Table(title=f"Token Launches ({summary.total_launched})")
            tokens.add_column("Token", style="cyan")
            tokens.add_column("Outcome")
            tokens.add_column("Reason", style="dim")
            for token in summary.tokens:
                outcome = token.outcome or Outcome.UNKNOWN
                tokens.add_row(
                    escape(token.display_name),
                    f"[{OUTCOME_STYLES[outcome]}]{outcome.value}[/]",
                    escape(token.reason or ""),
                )
            console.print(tokens)

        console.print("\n[bold]Notes:[/]")
        for note in scoring.notes:
            console.print(f"  {note}", markup=False)

        meta = analysis.metadata
        console.print(
            f"\n[dim]Providers: {', '.join(meta.providers_used) or 'none'} | "
            f"{meta.processing_time}ms | {meta.data_freshness}[/]"
        )
        return output.getvalue()

    def format_to_file(self, analysis: WalletAnalysis, filepath: str) -> None:
        """Write plain output to file (no ANSI codes)."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self._format_plain(analysis))


def build_provider_table(statuses: list[ProviderStatus]) -> Table:
    """Rich table summarizing provider health."""
    table = Table(title="Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Chain")
    table.add_column("Priority", justify="right")
    table.add_column("Available")
    table.add_column("Rate Limit", justify="right")
    table.add_column("Last Error", style="dim")
    for status in statuses:
        available = "[green]yes[/]" if status.available else "[red]no[/]"
        table.add_row(
            status.name,
            status.chain.value,
            str(status.priority),
            available,
            str(status.rate_limit.remaining),
            escape(status.last_error or ""),
        )
    return table
