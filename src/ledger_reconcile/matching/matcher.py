"""
Candidate matching for statement rows.

Amount is a hard filter, the date decides the confidence tier, and
description similarity orders candidates inside a tier.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional
import logging
import re

from ..config import ReconConfig
from ..models.transaction import (
    MatchCandidate,
    MatchTier,
    StatementRow,
    Transaction,
)

logger = logging.getLogger(__name__)


def normalize_description(description: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    desc = description.lower()
    desc = re.sub(r"[^a-z0-9\s]", " ", desc)
    return " ".join(desc.split())


def description_similarity(left: str, right: str) -> float:
    """
    Similarity of two descriptions in 0.0-1.0.

    Containment of one normalized description in the other scores 1.0,
    otherwise the score is the token overlap (Jaccard index).
    """
    a = normalize_description(left)
    b = normalize_description(right)
    if not a or not b:
        return 0.0
    if a in b or b in a:
        return 1.0

    tokens_a = set(a.split())
    tokens_b = set(b.split())
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


class Matcher:
    """Proposes ranked candidate transactions for statement rows."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the matcher.

        Args:
            config: Application configuration
        """
        self.config = config
        self.date_window_days = config.matching.date_window_days
        self.amount_epsilon = Decimal(str(config.matching.amount_epsilon))

    def find_candidates(
        self,
        row: StatementRow,
        transactions: Iterable[Transaction],
        claimed: frozenset[int] = frozenset(),
    ) -> list[MatchCandidate]:
        """
        Rank the transactions that could correspond to a statement row.

        Cleared and claimed transactions are never offered.

        Args:
            row: Statement row to match
            transactions: Ledger transactions to consider
            claimed: Ids already accepted for earlier rows

        Returns:
            Candidates, highest confidence first; ties by ascending id.
            Empty when nothing passes the amount and date filters.
        """
        candidates: list[MatchCandidate] = []

        for txn in transactions:
            if txn.cleared or txn.id in claimed:
                continue

            candidate = self.score(row, txn)
            if candidate is not None:
                candidates.append(candidate)

        candidates.sort(key=lambda c: c.sort_key)

        logger.debug(
            f"Row {row.row_number} ({row.date} {row.amount}): "
            f"{len(candidates)} candidate(s)"
        )
        return candidates

    def score(self, row: StatementRow, txn: Transaction) -> Optional[MatchCandidate]:
        """
        Score one transaction against a row.

        Returns:
            A candidate, or None when no reconciled posting has the row's
            amount or the date is outside the window
        """
        amount = next(
            (a for a in txn.match_amounts if abs(a - row.amount) <= self.amount_epsilon),
            None,
        )
        if amount is None:
            return None

        day_distance = abs((txn.date - row.date).days)
        if day_distance == 0:
            tier = MatchTier.EXACT_DATE
        elif day_distance <= self.date_window_days:
            tier = MatchTier.NEAR_DATE
        else:
            return None

        return MatchCandidate(
            transaction=txn,
            tier=tier,
            similarity=description_similarity(row.description, txn.description),
            day_distance=day_distance,
            amount=amount,
        )
