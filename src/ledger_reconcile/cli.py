"""
Command-line interface for the ledger statement reconciliation tool.
"""

from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .matching.choosers import Chooser, SkipAmbiguousChooser
from .matching.engine import ReconciliationEngine, ReconciliationRun, chooser_for_policy
from .parsers.ledger_parser import LedgerParser
from .parsers.statement_parser import StatementParser, describe_row
from .reports.excel_generator import ExcelReportGenerator
from .ui.terminal import TerminalChooser
from .utils.exceptions import AbortRequested, ReconciliationError
from .utils.logging_config import setup_logging

console = Console()

EXIT_ERROR = 1
EXIT_ABORTED = 2


@click.group()
@click.version_option(version=__version__)
def main():
    """Mark ledger transactions as cleared by matching them to a statement CSV."""
    pass


@main.command()
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-l",
    "--ledger",
    "ledger_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="LEDGER_FILE",
    help="Ledger journal to update (defaults to $LEDGER_FILE)",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the updated ledger here instead of updating it in place",
)
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option(
    "--date-window",
    type=click.IntRange(min=0),
    default=None,
    help="Override the date window in days",
)
@click.option(
    "--non-interactive",
    is_flag=True,
    help="Never prompt; ambiguous rows are skipped",
)
@click.option("--dry-run", is_flag=True, help="Show the diff without writing anything")
@click.option(
    "--report",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write an Excel report of the run",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also log to this file (rotated at 5MB)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def reconcile(
    statement_file: Path,
    ledger_file: Optional[Path],
    output: Optional[Path],
    config: Optional[Path],
    date_window: Optional[int],
    non_interactive: bool,
    dry_run: bool,
    report: Optional[Path],
    log_file: Optional[Path],
    verbose: bool,
):
    """
    Reconcile a ledger against a statement export.

    STATEMENT_FILE: Path to the statement CSV
    """
    if ledger_file is None:
        raise click.UsageError(
            "No ledger file specified: pass --ledger or set LEDGER_FILE"
        )

    try:
        recon_config = load_config(config)
        setup_logging(
            logging.DEBUG if verbose else recon_config.logging.level,
            log_file=log_file or _configured_log_file(recon_config),
            log_format=recon_config.logging.format,
        )

        if date_window is not None:
            recon_config.matching.date_window_days = date_window

        engine = ReconciliationEngine(
            recon_config, _build_chooser(recon_config, non_interactive)
        )
        run = engine.reconcile_files(ledger_file, statement_file)
    except AbortRequested as e:
        console.print(f"[yellow]{e}. The ledger was not modified.[/yellow]")
        sys.exit(EXIT_ABORTED)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(EXIT_ERROR)

    _display_summary(run)
    _display_unmatched(run)

    if dry_run:
        diff = engine.writer.diff(run.original_text, run.updated_text, ledger_file.name)
        if diff:
            click.echo(diff, nl=False)
        console.print("\n[yellow]Dry run - no files written[/yellow]")
        return

    try:
        target = output or ledger_file
        if run.changed or output is not None:
            engine.writer.write_file(run.updated_text, target)
            console.print(f"\n[green]Updated ledger written to {target}[/green]")
        else:
            console.print("\n[green]No changes to write[/green]")

        if report is not None:
            report_path = ExcelReportGenerator(recon_config).generate_report(run, report)
            console.print(f"[green]Report generated: {report_path}[/green]")
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(EXIT_ERROR)


@main.command("parse-ledger")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True)
def parse_ledger(ledger_file: Path, config: Optional[Path], limit: int):
    """
    Parse a ledger and display its transactions.

    LEDGER_FILE: Path to the ledger journal
    """
    try:
        recon_config = load_config(config)
        parser = LedgerParser(recon_config)
        ledger = parser.parse_file(ledger_file)
    except ReconciliationError as e:
        console.print(f"[red]Error parsing ledger: {e}[/red]")
        sys.exit(EXIT_ERROR)

    table = Table(title=f"Ledger Transactions: {ledger_file.name}")
    table.add_column("Line", justify="right")
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Amount", justify="right")
    table.add_column("Description")

    for txn in ledger.transactions[:limit]:
        table.add_row(
            str(txn.line_number),
            txn.date.isoformat(),
            txn.status.name.lower(),
            ", ".join(str(a) for a in txn.match_amounts) or "-",
            txn.description[:40] + "..." if len(txn.description) > 40 else txn.description,
        )

    console.print(table)

    if len(ledger.transactions) > limit:
        console.print(f"\n... and {len(ledger.transactions) - limit} more transactions")

    console.print(
        f"\nTotal transactions: {len(ledger.transactions)} "
        f"({len(ledger.uncleared)} uncleared)"
    )


@main.command("parse-statement")
@click.argument("statement_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True)
def parse_statement(statement_file: Path, config: Optional[Path], limit: int):
    """
    Parse a statement CSV and display its rows.

    STATEMENT_FILE: Path to the statement CSV
    """
    try:
        recon_config = load_config(config)
        parser = StatementParser(recon_config)
        statement = parser.parse_file(statement_file)
    except ReconciliationError as e:
        console.print(f"[red]Error parsing statement: {e}[/red]")
        sys.exit(EXIT_ERROR)

    table = Table(title=f"Statement Rows: {statement_file.name}")
    table.add_column("Row", justify="right")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Description")

    for row in statement.rows[:limit]:
        table.add_row(str(row.row_number), row.date.isoformat(), str(row.amount), row.description)

    console.print(table)

    if len(statement.rows) > limit:
        console.print(f"\n... and {len(statement.rows) - limit} more rows")

    console.print(f"\nTotal rows: {len(statement.rows)}")
    for skipped in statement.skipped:
        console.print(f"[yellow]Skipped row {skipped.row_number}: {skipped.reason}[/yellow]")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _configured_log_file(config: ReconConfig) -> Optional[Path]:
    return Path(config.logging.file) if config.logging.file else None


def _build_chooser(config: ReconConfig, non_interactive: bool) -> Chooser:
    """Pick the decision source for ambiguous rows."""
    if non_interactive:
        return SkipAmbiguousChooser()
    return chooser_for_policy(config.resolution.ambiguous_policy) or TerminalChooser(console)


def _display_summary(run: ReconciliationRun) -> None:
    """Display reconciliation summary in console."""
    summary = run.summary
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Ledger Transactions", str(summary.total_transactions))
    table.add_row("Already Cleared", str(summary.already_cleared))
    table.add_row("Statement Rows", str(summary.total_statement_rows))
    table.add_row("Matched", str(summary.matched_count))
    table.add_row("Ambiguous, Resolved", str(summary.ambiguous_resolved_count))
    table.add_row("Ambiguous, Skipped", str(summary.ambiguous_skipped_count))
    table.add_row("No Candidate", str(summary.no_candidate_count))
    table.add_row("Malformed Rows Skipped", str(summary.skipped_malformed_rows))
    table.add_row("Match Rate", f"{summary.match_rate:.1f}%")
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)


def _display_unmatched(run: ReconciliationRun) -> None:
    """List rows a human should look at."""
    summary = run.summary
    if not summary.unmatched and not summary.malformed:
        return

    table = Table(title="Rows Needing Attention")
    table.add_column("Row", justify="right")
    table.add_column("Statement")
    table.add_column("Reason")

    for resolution in summary.unmatched:
        reason = resolution.status.value.replace("_", " ")
        if resolution.candidates:
            lines = ", ".join(str(c.transaction.line_number) for c in resolution.candidates)
            reason += f" (ledger lines {lines})"
        table.add_row(str(resolution.row.row_number), describe_row(resolution.row), reason)

    for skipped in summary.malformed:
        table.add_row(str(skipped.row_number), "-", f"malformed: {skipped.reason}")

    console.print(table)


if __name__ == "__main__":
    main()
