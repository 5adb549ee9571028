"""
Resolution of candidate lists into a final row -> transaction mapping.

Rows are processed strictly in input order. A transaction accepted for one
row is claimed and never offered to a later row, even if the later row would
have matched it better (first row wins, no backtracking).
"""

from collections.abc import Callable, Iterable, Sequence
import logging

from ..config import ReconConfig
from ..models.transaction import (
    DecisionAction,
    MatchCandidate,
    ReconciliationResult,
    ResolutionStatus,
    RowResolution,
    StatementRow,
)
from ..utils.exceptions import AbortRequested, ResolutionError
from .choosers import Chooser

logger = logging.getLogger(__name__)

CandidateSource = Callable[[StatementRow, frozenset[int]], Sequence[MatchCandidate]]


class Resolver:
    """
    Turns per-row candidates into decisions.

    A unique candidate in the top tier is accepted automatically. Several
    candidates in the top tier are handed to the chooser.
    """

    def __init__(self, config: ReconConfig, chooser: Chooser):
        """
        Initialize the resolver.

        Args:
            config: Application configuration
            chooser: Decision source for ambiguous rows
        """
        self.config = config
        self.chooser = chooser
        self.show_lower_tiers = config.resolution.show_lower_tiers

    def resolve(
        self,
        rows: Iterable[StatementRow],
        candidate_source: CandidateSource,
    ) -> ReconciliationResult:
        """
        Resolve every row in order.

        Args:
            rows: Statement rows in input order
            candidate_source: Called with (row, claimed ids) and returns that
                row's candidates. Claimed and cleared transactions are
                filtered out again here, so a fixed precomputed list works.

        Returns:
            The reconciliation result

        Raises:
            AbortRequested: If the chooser aborts; nothing is returned
        """
        resolutions: list[RowResolution] = []
        claimed: frozenset[int] = frozenset()

        for row in rows:
            resolution, claimed = self.resolve_row(
                row, candidate_source(row, claimed), claimed
            )
            resolutions.append(resolution)

        result = ReconciliationResult(resolutions=tuple(resolutions))
        logger.info(
            f"Resolved {len(resolutions)} rows: "
            f"{result.count(ResolutionStatus.MATCHED)} matched, "
            f"{result.count(ResolutionStatus.CHOSEN)} chosen, "
            f"{result.count(ResolutionStatus.SKIPPED)} skipped, "
            f"{result.count(ResolutionStatus.NO_CANDIDATE)} without candidates"
        )
        return result

    def resolve_row(
        self,
        row: StatementRow,
        candidates: Sequence[MatchCandidate],
        claimed: frozenset[int],
    ) -> tuple[RowResolution, frozenset[int]]:
        """
        Resolve a single row.

        Returns:
            The row's resolution and the claimed set to use for the next row
        """
        available = sorted(
            (
                c
                for c in candidates
                if not c.transaction.cleared and c.transaction.id not in claimed
            ),
            key=lambda c: c.sort_key,
        )

        if not available:
            logger.debug(f"Row {row.row_number}: no candidate")
            return RowResolution(row=row, status=ResolutionStatus.NO_CANDIDATE), claimed

        top = [c for c in available if c.tier is available[0].tier]
        if len(top) == 1:
            chosen = top[0]
            logger.debug(
                f"Row {row.row_number}: matched transaction #{chosen.transaction.id} "
                f"at line {chosen.transaction.line_number} ({chosen.tier.label})"
            )
            return (
                RowResolution(
                    row=row,
                    status=ResolutionStatus.MATCHED,
                    transaction=chosen.transaction,
                    candidates=tuple(available),
                ),
                claimed | {chosen.transaction.id},
            )

        presented = available if self.show_lower_tiers else top
        decision = self.chooser.choose(row, presented)

        if decision.action is DecisionAction.ABORT:
            logger.warning(f"Row {row.row_number}: abort requested")
            raise AbortRequested(row)

        if decision.action is DecisionAction.SKIP:
            logger.debug(f"Row {row.row_number}: ambiguous row skipped")
            return (
                RowResolution(
                    row=row,
                    status=ResolutionStatus.SKIPPED,
                    candidates=tuple(presented),
                ),
                claimed,
            )

        if decision.candidate is None or decision.candidate.transaction.id not in {
            c.transaction.id for c in presented
        }:
            raise ResolutionError(
                f"Row {row.row_number}: chooser accepted a candidate that was not offered"
            )

        txn = decision.candidate.transaction
        logger.debug(f"Row {row.row_number}: chose transaction #{txn.id}")
        return (
            RowResolution(
                row=row,
                status=ResolutionStatus.CHOSEN,
                transaction=txn,
                candidates=tuple(presented),
            ),
            claimed | {txn.id},
        )
