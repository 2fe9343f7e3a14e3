"""CLI entry point for the Wallet Trust Scoring tool.

Usage:
    wallet-trust analyze 0x742d35Cc6634C0532925a3b844Bc454e4438f44e
    wallet-trust analyze <solana-address> --output json --save results/wallet.json
    wallet-trust analyze 0x... --token 0xTokenA --token 0xTokenB
    wallet-trust providers
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from .. import __version__
from ..analyzer import WalletAnalyzer
from ..core.config import AppConfig
from ..core.exceptions import ConfigurationError, ValidationError
from ..core.models import WalletAnalysis
from ..core.types import Chain
from ..orchestrator import OrchestratorConfig, create_default_orchestrator
from ..output.formatters import JSONFormatter, TableFormatter, build_provider_table

# Initialize app
app = typer.Typer(
    name="wallet-trust",
    help="Deterministic trust scoring for Ethereum and Solana wallets",
    add_completion=False,
)

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )
    # Keep per-request HTTP logs out of normal output
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_config(env_file: Optional[Path], timeout: Optional[float]) -> AppConfig:
    try:
        config = AppConfig.load(env_file=env_file)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    if timeout is not None:
        if timeout <= 0:
            console.print("[red]--timeout must be positive[/]")
            raise typer.Exit(1)
        config.provider_timeout_seconds = timeout
    return config


async def _run_analysis(
    config: AppConfig,
    address: str,
    chain: Optional[Chain],
    force_refresh: bool,
    tokens: list[str],
) -> WalletAnalysis:
    orchestrator = create_default_orchestrator(config)
    try:
        analyzer = WalletAnalyzer(orchestrator)
        return await analyzer.analyze(
            address,
            chain=chain,
            force_refresh=force_refresh,
            manual_tokens=tokens or None,
        )
    finally:
        await orchestrator.shutdown()


@app.command()
def analyze(
    address: str = typer.Argument(..., help="Wallet address (Ethereum 0x... or Solana base58)"),
    chain: Optional[Chain] = typer.Option(
        None,
        "--chain", "-c",
        help="Blockchain (detected from the address format if omitted)",
        case_sensitive=False,
    ),
    token: Optional[list[str]] = typer.Option(
        None,
        "--token", "-t",
        help="Token contract to analyze instead of automatic discovery (repeatable, Ethereum only)",
    ),
    force_refresh: bool = typer.Option(
        False,
        "--force-refresh", "-f",
        help="Bypass cached data",
    ),
    output: str = typer.Option(
        "table",
        "--output", "-o",
        help="Output format: table, json",
    ),
    save: Optional[Path] = typer.Option(
        None,
        "--save", "-s",
        help="Save output to file",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Per-provider timeout in seconds",
    ),
    env_file: Optional[Path] = typer.Option(
        None,
        "--env-file",
        help="Path to .env file with API keys",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """
    Compute the trust score for a wallet.

    Examples:
        wallet-trust analyze 0x742d35Cc6634C0532925a3b844Bc454e4438f44e
        wallet-trust analyze <address> --chain solana --output json
    """
    setup_logging(verbose)

    output_lower = output.lower()
    if output_lower not in ("table", "json"):
        console.print(f"[red]Invalid output format: {output}. Use table or json[/]")
        raise typer.Exit(1)

    config = _load_config(env_file, timeout)
    if not config.get_available_sources():
        console.print(
            "[yellow]No API keys configured (ETHERSCAN_API_KEY, HELIUS_API_KEY); "
            "the score will rely on default values[/]"
        )

    console.print(f"[bold]Analyzing {address}...[/]")

    try:
        analysis = asyncio.run(
            _run_analysis(config, address, chain, force_refresh, token or [])
        )
    except ValidationError as e:
        console.print(f"[red]Invalid input: {e.reason}[/]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    # Format output
    if output_lower == "json":
        formatter = JSONFormatter()
        print(formatter.format(analysis))
    else:
        formatter = TableFormatter()
        console.print(formatter.format(analysis))

    # Save if requested
    if save:
        save.parent.mkdir(parents=True, exist_ok=True)
        save_path = save.with_suffix(".json" if output_lower == "json" else ".txt")
        formatter.format_to_file(analysis, str(save_path))
        console.print(f"[green]Saved to {save_path}[/]")


@app.command()
def providers(
    env_file: Optional[Path] = typer.Option(
        None,
        "--env-file",
        help="Path to .env file with API keys",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Show configured providers and their current status."""
    setup_logging(verbose)
    config = _load_config(env_file, None)

    async def collect():
        orchestrator = create_default_orchestrator(config)
        try:
            return await orchestrator.get_provider_statuses()
        finally:
            await orchestrator.shutdown()

    statuses = asyncio.run(collect())
    if not statuses:
        console.print("[yellow]No providers configured. Set ETHERSCAN_API_KEY and/or HELIUS_API_KEY.[/]")
        raise typer.Exit(1)

    console.print(build_provider_table(statuses))
    settings = OrchestratorConfig.from_app_config(config)
    console.print(
        f"[dim]Provider timeout: {settings.fallback_timeout:g}s | "
        f"health check interval: {settings.health_check_interval:g}s[/]"
    )


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Wallet Trust v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
