"""Rich output formatters for the cotscope CLI.

Each function accepts plain data and returns a Rich renderable (Table,
Panel, etc.).  The caller is responsible for printing via
``console.print()``.  This separation keeps the formatters testable
without capturing stdout.
"""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from cotscope.signals.sentiment.cot_scoring import Bias, COTScore, Signal
from cotscope.signals.sentiment.scanner import ExtremeSignals

_SIGNAL_STYLES = {
    Signal.EXTREME_BUY: "bold green",
    Signal.BUY_SETUP: "green",
    Signal.BULLISH: "cyan",
    Signal.NEUTRAL: "dim",
    Signal.BEARISH: "yellow",
    Signal.SELL_SETUP: "red",
    Signal.EXTREME_SELL: "bold red",
}

_BIAS_STYLES = {
    Bias.BULLISH: "green",
    Bias.BEARISH: "red",
    Bias.NEUTRAL: "yellow",
}


def _styled_signal(signal: Signal) -> str:
    style = _SIGNAL_STYLES[signal]
    return f"[{style}]{signal.value}[/{style}]"


def _styled_bias(bias: Bias) -> str:
    style = _BIAS_STYLES[bias]
    return f"[{style}]{bias.value}[/{style}]"


def format_score_table(scores: list[COTScore], title: str = "COT Scores") -> Table:
    """Render current scores, one row per market.

    Parameters
    ----------
    scores : list[COTScore]
        Typically the output of ``MarketScanner.score_all_markets()``.
    title : str
        Table title.
    """
    table = Table(title=title, show_lines=True)
    table.add_column("Market", style="bold")
    table.add_column("Report", style="cyan")
    table.add_column("Comm Idx", justify="right")
    table.add_column("Comm Signal", justify="center")
    table.add_column("LT Idx", justify="right")
    table.add_column("LT Signal", justify="center")
    table.add_column("Score", justify="right")
    table.add_column("Bias", justify="center")
    table.add_column("Conf", justify="right")
    table.add_column("Extreme", justify="center")

    for s in scores:
        table.add_row(
            s.symbol,
            s.report_date.isoformat(),
            f"{s.commercial_index:.1f}",
            _styled_signal(s.commercial_signal),
            f"{s.large_trader_index:.1f}",
            _styled_signal(s.large_trader_signal),
            f"{s.overall_score:.1f}",
            _styled_bias(s.bias),
            f"{s.confidence}%",
            "[bold magenta]YES[/bold magenta]" if s.extreme_level else "-",
        )

    return table


def format_history_table(scores: list[COTScore], limit: int = 13) -> Table:
    """Render the most recent ``limit`` weeks of one market, newest first."""
    symbol = scores[-1].symbol if scores else "?"
    table = Table(title=f"{symbol} -- weekly history", show_lines=False)
    table.add_column("Report", style="cyan")
    table.add_column("Comm Net", justify="right")
    table.add_column("Non-Comm Net", justify="right")
    table.add_column("Comm Idx", justify="right")
    table.add_column("LT Idx", justify="right")
    table.add_column("4w Chg", justify="right")
    table.add_column("13w Chg", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Bias", justify="center")

    for s in list(reversed(scores))[:limit]:
        table.add_row(
            s.report_date.isoformat(),
            f"{s.commercial_net:,}",
            f"{s.noncommercial_net:,}",
            f"{s.commercial_index:.1f}",
            f"{s.large_trader_index:.1f}",
            f"{s.commercial_change_4week:+,}",
            f"{s.commercial_change_13week:+,}",
            f"{s.overall_score:.1f}",
            _styled_bias(s.bias),
        )

    return table


def format_analysis_panel(latest: COTScore, analysis: dict) -> Panel:
    """Render one market's current reading plus its historical context.

    Parameters
    ----------
    latest : COTScore
        Most recent score.
    analysis : dict
        Output of ``scanner.analyze_history()``.
    """
    lines = [
        f"[bold]{latest.symbol}[/bold]  report {latest.report_date.isoformat()}",
        "",
        f"  Commercial Index:   {latest.commercial_index:6.1f}  "
        f"{_styled_signal(latest.commercial_signal)}",
        f"  Large Trader Index: {latest.large_trader_index:6.1f}  "
        f"{_styled_signal(latest.large_trader_signal)}",
        f"  Overall Score:      {latest.overall_score:6.1f}  {_styled_bias(latest.bias)}",
        f"  Confidence:         {latest.confidence:5d}%",
        f"  Window:             {latest.lookback_weeks} weeks",
        "",
        "[bold]History[/bold]",
        f"  Weeks scored:       {analysis['total_weeks']}",
        f"  Extreme readings:   {analysis['extreme_readings']} "
        f"({analysis['bullish_extremes']} bullish, {analysis['bearish_extremes']} bearish)",
        f"  Average score:      {analysis['average_score']}",
        f"  Current percentile: {analysis['current_percentile']}",
    ]
    if latest.extreme_level:
        lines.append("")
        lines.append("[bold magenta]EXTREME positioning[/bold magenta]")

    border = _BIAS_STYLES[latest.bias]
    return Panel("\n".join(lines), title="Market Analysis", border_style=border)


def format_extremes(extremes: ExtremeSignals) -> Panel:
    """Render the three extreme-signal groups as a Rich Panel."""
    lines: list[str] = []
    groups = (
        ("Extreme Buys", "green", extremes.extreme_buys),
        ("Extreme Sells", "red", extremes.extreme_sells),
        ("High Confidence Setups", "magenta", extremes.high_confidence_setups),
    )
    for label, color, scores in groups:
        lines.append(f"[bold {color}]{label}[/bold {color}] ({len(scores)})")
        if scores:
            for s in scores:
                lines.append(
                    f"  {s.symbol:<8} comm {s.commercial_index:5.1f}  "
                    f"score {s.overall_score:5.1f}  conf {s.confidence}%"
                )
        else:
            lines.append("  [dim]none[/dim]")
        lines.append("")

    return Panel("\n".join(lines).rstrip(), title="Extreme Signals", border_style="blue")


def format_signal_table(rows: list[dict]) -> Table:
    """Render ``scanner.signal_table()`` rows."""
    table = Table(title="COT Signals", show_lines=True)
    table.add_column("Market", style="bold")
    table.add_column("Comm", justify="right")
    table.add_column("LT", justify="right")
    table.add_column("Signal", justify="center")
    table.add_column("Conf", justify="right")
    table.add_column("Setup", justify="center")

    for row in rows:
        signal = row["signal"]
        if signal == "BUY":
            signal_styled = "[green]BUY[/green]"
        elif signal == "SELL":
            signal_styled = "[red]SELL[/red]"
        else:
            signal_styled = "[dim]NEUTRAL[/dim]"

        setup = row["setup"]
        setup_color = {"EXTREME": "magenta", "STRONG": "cyan"}.get(setup, "dim")

        table.add_row(
            row["market"],
            str(row["commercial_index"]),
            str(row["large_trader_index"]),
            signal_styled,
            f"{row['confidence']}%",
            f"[{setup_color}]{setup}[/{setup_color}]",
        )

    return table


def format_failures(failures: dict[str, str]) -> Panel:
    """Render per-market scoring failures."""
    lines = [f"  [yellow]{market}[/yellow]: {error}" for market, error in failures.items()]
    return Panel("\n".join(lines), title="Skipped Markets", border_style="yellow")


def format_stats_table(stats: dict) -> Table:
    """Render ``PositionStore.get_stats()``."""
    table = Table(title="Position Store", show_lines=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total Records", str(stats["total_records"]))
    table.add_row("Markets With Data", str(stats["markets_with_data"]))
    table.add_row("Latest Report", stats["latest_date"] or "-")
    table.add_row("Oldest Report", stats["oldest_date"] or "-")
    return table
