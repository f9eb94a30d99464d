"""Report analysis command."""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Literal, Optional, cast

import click
from rich.console import Console

from strategy_report.errors import NoValidDataError, ParseError, ReportError, ValidationError
from strategy_report.libraries.parsing import ReportDialect, ReportFormat
from strategy_report.services.analysis import ReportAnalyzer
from strategy_report.services.reporting import (
    HTMLReportGenerator,
    default_report_path,
    display_analysis_report,
    export_trades_csv,
)
from strategy_report.system import LoggerFactory
from strategy_report.system.config import reload_system_config

console = Console()

_ERROR_LABELS: dict[type[ReportError], str] = {
    ParseError: "Unrecognized report",
    NoValidDataError: "No usable trades",
    ValidationError: "Invalid input",
}


@click.command("analyze")
@click.argument("report_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format",
    "report_format",
    type=click.Choice([f.value for f in ReportFormat], case_sensitive=False),
    help="Container format (default: from file suffix, then content)",
)
@click.option(
    "--dialect",
    type=click.Choice([d.value for d in ReportDialect], case_sensitive=False),
    help="Report layout (default: detected from the header row)",
)
@click.option(
    "--initial-balance",
    "-b",
    type=float,
    help="Recompute as if the account started with this balance",
)
@click.option(
    "--html",
    "html_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write a standalone HTML report to this file",
)
@click.option(
    "--report",
    "write_report",
    is_flag=True,
    help="Write a timestamped HTML report to the configured report directory",
)
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the normalized trade list to this CSV file",
)
@click.option("--simulations", "-n", type=int, help="Override number of Monte Carlo paths")
@click.option("--seed", type=int, help="Seed the Monte Carlo random source")
@click.option("--no-simulation", is_flag=True, help="Skip the Monte Carlo projection")
@click.option(
    "--detail",
    "-d",
    type=click.Choice(["summary", "standard", "full"], case_sensitive=False),
    default="standard",
    show_default=True,
    help="Console report detail level",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="System configuration file (default: $STRATEGY_REPORT_CONFIG or config/system.yaml)",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level (DEBUG shows header detection and simulation details)",
)
def analyze_command(
    report_file: Path,
    report_format: Optional[str],
    dialect: Optional[str],
    initial_balance: Optional[float],
    html_path: Optional[Path],
    write_report: bool,
    csv_path: Optional[Path],
    simulations: Optional[int],
    seed: Optional[int],
    no_simulation: bool,
    detail: str,
    config_path: Optional[Path],
    log_level: Optional[str],
):
    """
    Analyze a broker trade history export.

    Parses an MT5 or TradingView report (HTML, CSV or XLSX), prints performance,
    drawdown and Monte Carlo statistics, and optionally writes an HTML report
    and a normalized CSV.

    \b
    Examples:
        # Console summary of an MT5 HTML report
        strategy-report analyze ReportHistory.html

        # TradingView export with a 25k starting balance and HTML output
        strategy-report analyze trades.csv --dialect tradingview -b 25000 --html out/report.html

        # Reproducible simulation, full console detail
        strategy-report analyze ReportHistory.html --seed 42 -d full
    """
    try:
        system_config = reload_system_config(config_path)
        if log_level:
            system_config.logging.level = log_level.upper()
        LoggerFactory.configure(system_config.logging.to_logger_config())

        simulation = system_config.simulation
        if simulations is not None:
            simulation = replace(simulation, num_simulations=simulations)
        if seed is not None:
            simulation = replace(simulation, seed=seed)

        analyzer = ReportAnalyzer(system_config.analysis, simulation)

        with console.status(f"[cyan]Parsing {report_file.name}...[/cyan]"):
            parsed = analyzer.load(
                report_file,
                format_hint=ReportFormat(report_format.lower()) if report_format else None,
                dialect=ReportDialect(dialect.lower()) if dialect else None,
            )
            result = analyzer.analyze(
                parsed,
                initial_balance_override=initial_balance,
                run_simulation=not no_simulation,
            )

        console.rule(f"[bold blue]{report_file.name}[/bold blue]")
        display_analysis_report(
            result,
            detail_level=cast(Literal["summary", "standard", "full"], detail.lower()),
            console=console,
        )

        if html_path is None and write_report:
            html_path = default_report_path(
                Path(system_config.output.default_report_dir), system_config.output.timestamp_format
            )
        if html_path is not None:
            written = HTMLReportGenerator(result, title=f"Strategy Report: {report_file.stem}").generate(html_path)
            console.print(f"[green]✓ HTML report:[/green] {written}")
        if csv_path is not None:
            written = export_trades_csv(result.trades, csv_path)
            console.print(f"[green]✓ Trade list:[/green] {written}")

    except ReportError as e:
        label = next((text for cls, text in _ERROR_LABELS.items() if isinstance(e, cls)), "Analysis failed")
        console.print()
        console.print(f"[bold red]✗ {label}:[/bold red] {e}")
        console.print("[dim]Check the file (MT5 or TradingView export, HTML, CSV or XLSX) and try again.[/dim]")
        sys.exit(2)

    except Exception as e:
        console.print()
        console.print(f"[bold red]✗ Analysis failed:[/bold red] {e}")
        import traceback

        console.print()
        console.print("[dim]" + traceback.format_exc() + "[/dim]")
        sys.exit(1)
