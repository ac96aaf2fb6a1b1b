"""
Command-line interface for bandwatch provider diagnostics.
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import Config
from .logger import configure_logging, get_logger
from .models.providers import FetchReport, FetchResult, ProviderStatus
from .providers.fetcher import FailoverFetcher
from .providers.registry import DEFAULT_PROVIDERS, select_providers

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="bandwatch")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to a .env configuration file"
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.option(
    "--log-file",
    is_flag=True,
    help="Also write logs to the configured rotating log file"
)
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], verbose: bool, log_file: bool) -> None:
    """
    bandwatch: multi-source market data diagnostics.

    Query ranked price providers with failover, fan out to all of them for
    cross-validation, or probe their health.
    """
    ctx.ensure_object(dict)

    try:
        if config:
            ctx.obj["config"] = Config.load_from_env(str(config))
        else:
            ctx.obj["config"] = Config.load_from_env()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    logging_config = ctx.obj["config"].logging
    if verbose:
        logging_config.level = "DEBUG"

    configure_logging(
        level=logging_config.level,
        log_file=logging_config.file_path if log_file else None,
        max_size=logging_config.max_size,
        backup_count=logging_config.backup_count,
    )
    ctx.obj["logger"] = get_logger("bandwatch.cli", logging_config.level)


def _build_fetcher(config: Config) -> FailoverFetcher:
    return FailoverFetcher(config=config.fetcher)


def _format_price(price: Optional[float]) -> str:
    return f"${price:,.2f}" if price is not None else "-"


def _render_failover(symbol: str, result: FetchResult) -> None:
    if result.success:
        console.print(
            f"[green]✓[/green] {symbol}: [bold]{_format_price(result.price)}[/bold] "
            f"from {result.source} ({result.kind.value if result.kind else '?'}) "
            f"in {result.elapsed_ms:.0f}ms"
        )
    else:
        console.print(f"[red]✗[/red] {symbol}: {result.error}")

    table = Table(title="Attempt trail", show_header=True, header_style="bold magenta")
    table.add_column("Source", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Result")
    table.add_column("Last error", style="dim")

    sources = []
    for attempt in result.attempts:
        if attempt.source not in sources:
            sources.append(attempt.source)

    for source in sources:
        attempts = result.attempts_for(source)
        succeeded = any(a.succeeded for a in attempts)
        errors = [a.error for a in attempts if a.error]
        table.add_row(
            source,
            str(len(attempts)),
            "[green]success[/green]" if succeeded else "[red]failed[/red]",
            errors[-1] if errors else "",
        )

    console.print(table)


def _render_report(symbol: str, report: FetchReport) -> None:
    table = Table(title=f"{symbol} across {report.total} providers", show_header=True, header_style="bold magenta")
    table.add_column("Source", style="cyan")
    table.add_column("Kind")
    table.add_column("Price", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Error", style="dim")

    for outcome in report.results:
        table.add_row(
            outcome.source,
            outcome.kind.value,
            _format_price(outcome.price) if outcome.success else "[red]failed[/red]",
            f"{outcome.elapsed_ms:.0f}ms",
            outcome.error or "",
        )

    console.print(table)
    console.print(f"Successful: {report.successful}/{report.total}")
    if report.average_price is not None:
        console.print(f"Average price: [bold]{_format_price(report.average_price)}[/bold]")
    if report.price_range is not None:
        price_range = report.price_range
        console.print(
            f"Range: {_format_price(price_range.min)} ({price_range.min_source}) - "
            f"{_format_price(price_range.max)} ({price_range.max_source}), "
            f"spread {_format_price(price_range.spread)}"
        )


def _render_health(statuses: List[ProviderStatus]) -> None:
    table = Table(title="Provider health", show_header=True, header_style="bold magenta")
    table.add_column("Provider", style="cyan")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Price", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Error", style="dim")

    for status in statuses:
        table.add_row(
            status.name,
            status.kind.value,
            "[green]available[/green]" if status.available else "[red]unavailable[/red]",
            _format_price(status.price),
            f"{status.elapsed_ms:.0f}ms",
            status.error or "",
        )

    console.print(table)
    available = sum(1 for s in statuses if s.available)
    console.print(f"{available}/{len(statuses)} providers available")


async def _run_fetch(fetcher: FailoverFetcher, symbol: str, retries: Optional[int],
                     timeout: Optional[int], providers: Tuple[str, ...]) -> FetchResult:
    try:
        return await fetcher.fetch_failover(
            symbol,
            max_retries=retries,
            timeout_ms=timeout,
            allowed_providers=list(providers) or None,
        )
    finally:
        await fetcher.close()


async def _run_fetch_all(fetcher: FailoverFetcher, symbol: str, timeout: Optional[int],
                         providers: Tuple[str, ...]) -> FetchReport:
    try:
        return await fetcher.fetch_all(symbol, timeout_ms=timeout, allowed_providers=list(providers) or None)
    finally:
        await fetcher.close()


async def _run_health(fetcher: FailoverFetcher, symbol: str):
    try:
        return await fetcher.health_check(symbol)
    finally:
        await fetcher.close()


@main.command()
@click.argument("symbol", default="bitcoin")
@click.option("--retries", "-r", type=click.IntRange(1, 10), default=None, help="Attempts per provider")
@click.option("--timeout", "-t", type=int, default=None, help="Per-request timeout in milliseconds")
@click.option("--provider", "-p", "providers", multiple=True, help="Restrict to this provider (repeatable)")
@click.pass_context
def fetch(ctx: click.Context, symbol: str, retries: Optional[int], timeout: Optional[int],
          providers: Tuple[str, ...]) -> None:
    """Fetch a price, failing over through providers by priority."""
    config: Config = ctx.obj["config"]
    logger = ctx.obj["logger"]

    try:
        result = asyncio.run(_run_fetch(_build_fetcher(config), symbol, retries, timeout, providers))
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(2)

    _render_failover(symbol, result)
    logger.debug(f"fetch {symbol}: success={result.success}, attempts={len(result.attempts)}")

    if not result.success:
        sys.exit(1)


@main.command("fetch-all")
@click.argument("symbol", default="bitcoin")
@click.option("--timeout", "-t", type=int, default=None, help="Per-request timeout in milliseconds")
@click.option("--provider", "-p", "providers", multiple=True, help="Restrict to this provider (repeatable)")
@click.pass_context
def fetch_all(ctx: click.Context, symbol: str, timeout: Optional[int], providers: Tuple[str, ...]) -> None:
    """Query every provider in parallel and compare prices."""
    config: Config = ctx.obj["config"]

    try:
        report = asyncio.run(_run_fetch_all(_build_fetcher(config), symbol, timeout, providers))
    except ValueError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(2)

    _render_report(symbol, report)

    if report.successful == 0:
        sys.exit(1)


@main.command()
@click.argument("symbol", default="bitcoin")
@click.pass_context
def health(ctx: click.Context, symbol: str) -> None:
    """Probe each enabled provider once."""
    config: Config = ctx.obj["config"]
    statuses = asyncio.run(_run_health(_build_fetcher(config), symbol))
    _render_health(statuses)


@main.command()
@click.pass_context
def providers(ctx: click.Context) -> None:
    """List configured providers in priority order."""
    config: Config = ctx.obj["config"]
    allowed = config.fetcher.allowed_providers

    table = Table(title="Providers", show_header=True, header_style="bold magenta")
    table.add_column("Priority", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Endpoint", style="dim")
    table.add_column("Selected")

    selected = {p.name for p in select_providers(DEFAULT_PROVIDERS, allowed)}
    for descriptor in sorted(DEFAULT_PROVIDERS, key=lambda p: p.priority):
        table.add_row(
            str(descriptor.priority),
            descriptor.name,
            descriptor.kind.value,
            descriptor.base_endpoint,
            "✓" if descriptor.name in selected else "",
        )

    console.print(table)


if __name__ == "__main__":
    main()
