"""
Reconciliation pipeline.
Parses the ledger and the statement, resolves every row, and produces the
updated ledger text together with a run summary.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

from ..config import ReconConfig
from ..models.transaction import (
    ReconciliationResult,
    ReconciliationSummary,
    ResolutionStatus,
)
from ..parsers.ledger_parser import LedgerParser, ParsedLedger
from ..parsers.statement_parser import ParsedStatement, StatementParser
from ..writers.ledger_writer import LedgerWriter, changed_line_count
from .choosers import Chooser, FirstCandidateChooser, SkipAmbiguousChooser
from .matcher import Matcher
from .resolver import Resolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationRun:
    """Everything a completed run produced. Nothing has been written yet."""

    original_text: str
    updated_text: str
    ledger: ParsedLedger
    statement: ParsedStatement
    result: ReconciliationResult
    summary: ReconciliationSummary

    @property
    def changed(self) -> bool:
        return self.original_text != self.updated_text


def chooser_for_policy(policy: str) -> Optional[Chooser]:
    """
    Non-interactive chooser for a configured policy name.

    Returns None for "prompt", which needs a terminal chooser from the caller.
    """
    if policy == "skip":
        return SkipAmbiguousChooser()
    if policy == "first":
        return FirstCandidateChooser()
    return None


class ReconciliationEngine:
    """
    Runs parse -> match/resolve -> write as one synchronous pass.

    Parse errors surface before any matching; an abort from the chooser
    surfaces before any text is rewritten. The engine never touches the
    filesystem except to read inputs in ``reconcile_files``.
    """

    def __init__(self, config: ReconConfig, chooser: Optional[Chooser] = None):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            chooser: Decision source for ambiguous rows; defaults to the
                configured non-interactive policy, or skipping
        """
        self.config = config
        if chooser is None:
            chooser = chooser_for_policy(config.resolution.ambiguous_policy)
        self.chooser = chooser or SkipAmbiguousChooser()

        self.ledger_parser = LedgerParser(config)
        self.statement_parser = StatementParser(config)
        self.matcher = Matcher(config)
        self.resolver = Resolver(config, self.chooser)
        self.writer = LedgerWriter(config)

    def reconcile(
        self,
        ledger_text: str,
        statement_text: str,
        ledger_name: str = "<ledger>",
        statement_name: str = "<statement>",
    ) -> ReconciliationRun:
        """
        Reconcile ledger text against statement text.

        Args:
            ledger_text: Full ledger journal
            statement_text: Statement CSV content
            ledger_name: Name used in messages and the summary
            statement_name: Name used in messages and the summary

        Returns:
            The completed run

        Raises:
            LedgerParseError, StatementParseError: On malformed input
            AbortRequested: If the chooser aborts
            WriteError: On an internal span inconsistency
        """
        ledger = self.ledger_parser.parse_text(ledger_text, name=ledger_name)
        statement = self.statement_parser.parse_text(statement_text, name=statement_name)
        return self.reconcile_parsed(ledger, statement)

    def reconcile_files(self, ledger_path: Path, statement_path: Path) -> ReconciliationRun:
        """Read both files and reconcile them. Does not write anything."""
        ledger = self.ledger_parser.parse_file(ledger_path)
        statement = self.statement_parser.parse_file(statement_path)
        return self.reconcile_parsed(ledger, statement)

    def reconcile_parsed(
        self, ledger: ParsedLedger, statement: ParsedStatement
    ) -> ReconciliationRun:
        """Match, resolve and rewrite already parsed inputs."""
        start_time = datetime.now()
        logger.info(
            f"Starting reconciliation: {len(statement.rows)} statement rows, "
            f"{len(ledger.uncleared)} uncleared of {len(ledger.transactions)} transactions"
        )

        pool = ledger.uncleared
        result = self.resolver.resolve(
            statement.rows,
            lambda row, claimed: self.matcher.find_candidates(row, pool, claimed),
        )

        updated_text = self.writer.apply(ledger, result)
        processing_time = (datetime.now() - start_time).total_seconds()

        summary = self.generate_summary(
            ledger=ledger,
            statement=statement,
            result=result,
            changed_lines=changed_line_count(ledger.text, updated_text),
            processing_time=processing_time,
        )

        logger.info(
            f"Reconciliation complete in {processing_time:.2f}s: "
            f"{summary.cleared_count} cleared, {summary.unmatched_count} unmatched"
        )

        return ReconciliationRun(
            original_text=ledger.text,
            updated_text=updated_text,
            ledger=ledger,
            statement=statement,
            result=result,
            summary=summary,
        )

    def generate_summary(
        self,
        ledger: ParsedLedger,
        statement: ParsedStatement,
        result: ReconciliationResult,
        changed_lines: int,
        processing_time: float,
    ) -> ReconciliationSummary:
        """
        Generate a summary of the reconciliation results.

        Args:
            ledger: Parsed ledger
            statement: Parsed statement
            result: Final resolution of every row
            changed_lines: Number of ledger lines rewritten
            processing_time: Time taken in seconds

        Returns:
            Reconciliation summary object
        """
        return ReconciliationSummary(
            ledger_filename=Path(ledger.name).name,
            statement_filename=Path(statement.name).name,
            reconciliation_date=datetime.now(),
            total_transactions=len(ledger.transactions),
            already_cleared=sum(1 for t in ledger.transactions if t.cleared),
            total_statement_rows=len(statement.rows),
            matched_count=result.count(ResolutionStatus.MATCHED),
            ambiguous_resolved_count=result.count(ResolutionStatus.CHOSEN),
            ambiguous_skipped_count=result.count(ResolutionStatus.SKIPPED),
            no_candidate_count=result.count(ResolutionStatus.NO_CANDIDATE),
            skipped_malformed_rows=len(statement.skipped),
            changed_lines=changed_lines,
            unmatched=result.unmatched,
            malformed=list(statement.skipped),
            processing_time_seconds=processing_time,
            config_file_used=self.config.config_file_path,
        )
