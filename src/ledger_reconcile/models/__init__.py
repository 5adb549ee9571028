"""Data models for reconciliation."""

from .transaction import (
    TransactionStatus,
    MatchTier,
    DecisionAction,
    ResolutionStatus,
    SourceSpan,
    Posting,
    Transaction,
    StatementRow,
    SkippedRow,
    MatchCandidate,
    Decision,
    RowResolution,
    ReconciliationResult,
    ReconciliationSummary,
)

__all__ = [
    "TransactionStatus",
    "MatchTier",
    "DecisionAction",
    "ResolutionStatus",
    "SourceSpan",
    "Posting",
    "Transaction",
    "StatementRow",
    "SkippedRow",
    "MatchCandidate",
    "Decision",
    "RowResolution",
    "ReconciliationResult",
    "ReconciliationSummary",
]
