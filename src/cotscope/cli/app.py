"""cotscope CLI -- operator surface for COT ingestion and scoring.

Commands:
    score          -- Score one market and show its current reading + history
    scan           -- Latest score for every configured market, ranked
    extremes       -- Markets at extreme buy/sell levels and high-confidence setups
    signals        -- Compact BUY/SELL/NEUTRAL signal table
    ingest-cot     -- Download legacy COT reports into the position store
    ingest-prices  -- Download daily price bars into the Parquet lake
    stats          -- Position store record counts and date range
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from cotscope.cli.formatters import (
    format_analysis_panel,
    format_extremes,
    format_failures,
    format_history_table,
    format_score_table,
    format_signal_table,
    format_stats_table,
)
from cotscope.config.markets import MARKETS
from cotscope.config.settings import (
    LAKE_DIR,
    POSITIONS_DB,
    configured_markets,
    resolve_data_dir,
)
from cotscope.data.store.position_store import PositionStore
from cotscope.signals.sentiment.cot_scoring import (
    DEFAULT_LOOKBACK_WEEKS,
    InsufficientDataError,
)
from cotscope.signals.sentiment.scanner import (
    MarketScanner,
    analyze_history,
    signal_table,
)

app = typer.Typer(
    name="cotscope",
    help="COT positioning scores for currency and commodity markets",
    rich_markup_mode="rich",
)
console = Console()


def _open_store(data_dir: Optional[str]) -> PositionStore:
    path = resolve_data_dir(data_dir)
    path.mkdir(parents=True, exist_ok=True)
    return PositionStore(path / POSITIONS_DB)


def _print_failures(scanner: MarketScanner) -> None:
    if scanner.failures:
        console.print(format_failures(scanner.failures))


# ---------------------------------------------------------------------------
# score
# ---------------------------------------------------------------------------


@app.command()
def score(
    market: str = typer.Argument(help="Market symbol, e.g. GOLD or EUR/USD"),
    lookback: int = typer.Option(
        DEFAULT_LOOKBACK_WEEKS, help="Lookback window in weeks"
    ),
    weeks: int = typer.Option(13, help="Weeks of history to display"),
    data_dir: Optional[str] = typer.Option(None, help="cotscope data directory"),
) -> None:
    """Score one market and show its current reading plus recent history."""
    if market not in MARKETS:
        console.print(
            Panel(
                f"[red]Unknown market:[/red] {market}\n"
                f"Known markets: {', '.join(sorted(MARKETS))}",
                title="Score",
                border_style="red",
            )
        )
        raise typer.Exit(1)

    store = _open_store(data_dir)
    try:
        scanner = MarketScanner(store, [market], lookback_weeks=lookback)
        scores = scanner.score_market(market, lookback)
    except InsufficientDataError as exc:
        console.print(
            Panel(
                f"[yellow]{exc}[/yellow]\nRun [bold]cotscope ingest-cot[/bold] first.",
                title="Score",
                border_style="yellow",
            )
        )
        raise typer.Exit(1)
    finally:
        store.close()

    if not scores:
        console.print(
            Panel("[dim]No weeks could be scored.[/dim]", title="Score", border_style="dim")
        )
        return

    console.print(format_analysis_panel(scores[-1], analyze_history(scores)))
    console.print(format_history_table(scores, limit=weeks))


# ---------------------------------------------------------------------------
# scan / extremes / signals
# ---------------------------------------------------------------------------


@app.command()
def scan(
    lookback: int = typer.Option(
        DEFAULT_LOOKBACK_WEEKS, help="Lookback window in weeks"
    ),
    workers: int = typer.Option(1, help="Markets scored concurrently"),
    data_dir: Optional[str] = typer.Option(None, help="cotscope data directory"),
) -> None:
    """Latest score for every configured market, ranked by overall score."""
    store = _open_store(data_dir)
    try:
        scanner = MarketScanner(
            store, configured_markets(), lookback_weeks=lookback, max_workers=workers
        )
        scores = scanner.score_all_markets()
    finally:
        store.close()

    if not scores:
        console.print(
            Panel(
                "[dim]No markets could be scored.[/dim]",
                title="Scan",
                border_style="dim",
            )
        )
    else:
        console.print(format_score_table(scores))
    _print_failures(scanner)


@app.command()
def extremes(
    data_dir: Optional[str] = typer.Option(None, help="cotscope data directory"),
) -> None:
    """Markets at extreme buy/sell levels and high-confidence setups."""
    store = _open_store(data_dir)
    try:
        scanner = MarketScanner(store, configured_markets())
        result = scanner.find_extreme_signals()
    finally:
        store.close()

    console.print(format_extremes(result))
    _print_failures(scanner)


@app.command()
def signals(
    data_dir: Optional[str] = typer.Option(None, help="cotscope data directory"),
) -> None:
    """Compact BUY/SELL/NEUTRAL signal table for every market."""
    store = _open_store(data_dir)
    try:
        scanner = MarketScanner(store, configured_markets())
        scores = scanner.score_all_markets()
    finally:
        store.close()

    console.print(format_signal_table(signal_table(scores)))
    _print_failures(scanner)


# ---------------------------------------------------------------------------
# ingestion
# ---------------------------------------------------------------------------


@app.command(name="ingest-cot")
def ingest_cot(
    market: Optional[str] = typer.Option(None, help="Single market (default: all configured)"),
    year: Optional[int] = typer.Option(None, help="Reference year (default: current)"),
    years_back: int = typer.Option(1, help="Prior years to include"),
    data_dir: Optional[str] = typer.Option(None, help="cotscope data directory"),
) -> None:
    """Download legacy COT reports and store new weekly records."""
    from cotscope.data.ingestion.cot import COTIngestPipeline
    from cotscope.data.store.parquet_lake import ParquetLake

    path = resolve_data_dir(data_dir)
    path.mkdir(parents=True, exist_ok=True)
    lake = ParquetLake(path / LAKE_DIR)
    store = PositionStore(path / POSITIONS_DB)

    if year is not None:
        ref_date = datetime(year, 12, 31, tzinfo=timezone.utc)
    else:
        ref_date = datetime.now(timezone.utc)
    symbols = [market] if market else configured_markets()

    failed = 0
    try:
        for symbol in symbols:
            config = MARKETS.get(symbol)
            if config is None:
                console.print(f"[red]Unknown market:[/red] {symbol}")
                failed += 1
                continue
            pipeline = COTIngestPipeline(
                parquet_lake=lake,
                position_store=store,
                cftc_code=config.cftc_code,
                years_back=years_back,
            )
            ok = pipeline.run(symbol, ref_date)
            color = "green" if ok else "red"
            latest = store.latest_report_date(symbol)
            console.print(
                f"[{color}]{symbol}[/{color}]: {pipeline.last_result.message} "
                f"(latest report {latest.isoformat() if latest else 'none'})"
            )
            failed += 0 if ok else 1
    finally:
        store.close()

    if failed:
        raise typer.Exit(1)


@app.command(name="ingest-prices")
def ingest_prices(
    market: Optional[str] = typer.Option(None, help="Single market (default: all configured)"),
    full: bool = typer.Option(False, "--full", help="Download full history"),
    data_dir: Optional[str] = typer.Option(None, help="cotscope data directory"),
) -> None:
    """Download daily price bars into the Parquet lake."""
    from cotscope.data.ingestion.prices import AlphaVantageClient, PriceIngestPipeline
    from cotscope.data.store.parquet_lake import ParquetLake

    path = resolve_data_dir(data_dir)
    lake = ParquetLake(path / LAKE_DIR)
    client = AlphaVantageClient()
    pipeline = PriceIngestPipeline(
        parquet_lake=lake, client=client, output_size="full" if full else "compact"
    )

    symbols = [market] if market else configured_markets()
    now = datetime.now(timezone.utc)
    failed = 0
    try:
        for symbol in symbols:
            ok = pipeline.run(symbol, now)
            color = "green" if ok else "red"
            console.print(f"[{color}]{symbol}[/{color}]: {pipeline.last_result.message}")
            failed += 0 if ok else 1
    finally:
        client.close()

    if failed:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------


@app.command()
def stats(
    data_dir: Optional[str] = typer.Option(None, help="cotscope data directory"),
) -> None:
    """Show position store record counts and date range."""
    store = _open_store(data_dir)
    try:
        console.print(format_stats_table(store.get_stats()))
    finally:
        store.close()


if __name__ == "__main__":
    app()
