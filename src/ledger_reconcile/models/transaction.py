"""Data models for ledger transactions, statement rows and match results."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class TransactionStatus(Enum):
    """Status field of a ledger transaction header."""

    UNMARKED = ""
    PENDING = "!"
    CLEARED = "*"


class MatchTier(Enum):
    """Confidence tier of a candidate. Lower rank is more confident."""

    EXACT_DATE = 0  # Same amount, same date
    NEAR_DATE = 1  # Same amount, date inside the window

    @property
    def rank(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")


class DecisionAction(Enum):
    """What a chooser wants done with an ambiguous row."""

    ACCEPT = "accept"
    SKIP = "skip"
    ABORT = "abort"


class ResolutionStatus(Enum):
    """Final outcome for a statement row."""

    MATCHED = "matched"  # Unique top-tier candidate, accepted automatically
    CHOSEN = "chosen"  # Ambiguous, resolved by the chooser
    NO_CANDIDATE = "no_candidate"
    SKIPPED = "skipped"  # Ambiguous, chooser skipped it

    @property
    def is_accepted(self) -> bool:
        return self in (ResolutionStatus.MATCHED, ResolutionStatus.CHOSEN)


@dataclass(frozen=True)
class SourceSpan:
    """
    Location of a transaction's status marker inside the ledger text.

    ``start`` and ``end`` are absolute character offsets into the original
    text. A transaction without a marker gets a zero-width span at the place
    a marker would be inserted. ``text`` is what the parser found between the
    offsets, so the writer can detect stale spans.
    """

    line_number: int
    start: int
    end: int
    text: str = ""

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class Posting:
    """A single posting line of a transaction."""

    account: str
    amount: Optional[Decimal]
    line_number: int
    commodity: str = ""
    inferred: bool = False


@dataclass(frozen=True)
class Transaction:
    """
    A ledger transaction, reduced to the fields needed for matching.

    ``amount`` is the net of the postings on the reconciled side (bank or
    card account). ``reconciled_amounts`` holds each of those postings
    separately: a transfer between two reconciled accounts nets to zero but
    still shows up on both statements, once per posting. A transaction with
    no posting on that side can never be matched.
    """

    id: int
    date: date
    description: str
    amount: Optional[Decimal]
    status: TransactionStatus
    source_span: SourceSpan
    line_number: int
    code: Optional[str] = None
    postings: tuple[Posting, ...] = ()
    reconciled_amounts: tuple[Decimal, ...] = ()

    @property
    def cleared(self) -> bool:
        return self.status is TransactionStatus.CLEARED

    @property
    def match_amounts(self) -> tuple[Decimal, ...]:
        """Amounts a statement row may carry to match this transaction."""
        if self.reconciled_amounts:
            return self.reconciled_amounts
        return () if self.amount is None else (self.amount,)


@dataclass(frozen=True)
class StatementRow:
    """One row of the external statement export."""

    index: int
    row_number: int
    date: date
    amount: Decimal
    description: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class SkippedRow:
    """A statement row dropped because it could not be parsed."""

    row_number: int
    reason: str
    raw: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class MatchCandidate:
    """A transaction proposed for a statement row."""

    transaction: Transaction
    tier: MatchTier
    similarity: float = 0.0
    day_distance: int = 0
    # Reconciled posting amount that passed the amount filter
    amount: Optional[Decimal] = None

    @property
    def sort_key(self) -> tuple[int, float, int]:
        """Highest confidence first, ties broken by ascending transaction id."""
        return (self.tier.rank, -self.similarity, self.transaction.id)

    @property
    def confidence(self) -> float:
        """Display score in 0.0-1.0; tiers never overlap."""
        base = 1.0 - 0.5 * self.tier.rank
        return round(base - 0.25 + 0.25 * self.similarity, 4)


@dataclass(frozen=True)
class Decision:
    """Answer returned by a chooser for an ambiguous row."""

    action: DecisionAction
    candidate: Optional[MatchCandidate] = None

    @classmethod
    def accept(cls, candidate: MatchCandidate) -> "Decision":
        return cls(DecisionAction.ACCEPT, candidate)

    @classmethod
    def skip(cls) -> "Decision":
        return cls(DecisionAction.SKIP)

    @classmethod
    def abort(cls) -> "Decision":
        return cls(DecisionAction.ABORT)


@dataclass(frozen=True)
class RowResolution:
    """How a single statement row was resolved."""

    row: StatementRow
    status: ResolutionStatus
    transaction: Optional[Transaction] = None
    candidates: tuple[MatchCandidate, ...] = ()

    @property
    def is_accepted(self) -> bool:
        return self.status.is_accepted

    @property
    def matched_amount(self) -> Optional[Decimal]:
        """Ledger amount the accepted transaction matched on."""
        if self.transaction is None:
            return None
        for candidate in self.candidates:
            if candidate.transaction.id == self.transaction.id and candidate.amount is not None:
                return candidate.amount
        return self.transaction.amount


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Mapping of every statement row to an accepted transaction or to
    "unmatched". Built once by the resolver, never modified afterwards.
    """

    resolutions: tuple[RowResolution, ...] = ()

    @property
    def accepted_ids(self) -> frozenset[int]:
        return frozenset(
            r.transaction.id for r in self.resolutions if r.is_accepted and r.transaction
        )

    @property
    def accepted(self) -> list[RowResolution]:
        return [r for r in self.resolutions if r.is_accepted]

    @property
    def unmatched(self) -> list[RowResolution]:
        return [r for r in self.resolutions if not r.is_accepted]

    def transaction_for(self, row_index: int) -> Optional[Transaction]:
        """Accepted transaction for a row, or None when the row is unmatched."""
        for resolution in self.resolutions:
            if resolution.row.index == row_index:
                return resolution.transaction if resolution.is_accepted else None
        raise KeyError(row_index)

    def count(self, status: ResolutionStatus) -> int:
        return sum(1 for r in self.resolutions if r.status is status)


@dataclass
class ReconciliationSummary:
    """Summary of a reconciliation run."""

    # File information
    ledger_filename: str
    statement_filename: str
    reconciliation_date: datetime

    # Input counts
    total_transactions: int
    already_cleared: int
    total_statement_rows: int

    # Row outcomes
    matched_count: int
    ambiguous_resolved_count: int
    ambiguous_skipped_count: int
    no_candidate_count: int
    skipped_malformed_rows: int

    # Output
    changed_lines: int = 0

    # Rows a human should look at
    unmatched: list[RowResolution] = field(default_factory=list)
    malformed: list[SkippedRow] = field(default_factory=list)

    # Processing metadata
    processing_time_seconds: float = 0.0
    config_file_used: Optional[str] = None

    @property
    def unmatched_count(self) -> int:
        return self.ambiguous_skipped_count + self.no_candidate_count

    @property
    def cleared_count(self) -> int:
        return self.matched_count + self.ambiguous_resolved_count

    @property
    def match_rate(self) -> float:
        """Percentage of statement rows that were matched."""
        if self.total_statement_rows == 0:
            return 0.0
        return (self.cleared_count / self.total_statement_rows) * 100
