"""
Decision sources for ambiguous statement rows.

The resolver calls ``choose`` and blocks until it gets a Decision back.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
import logging

from ..models.transaction import Decision, MatchCandidate, StatementRow

logger = logging.getLogger(__name__)


class Chooser(ABC):
    """Abstract base class for ambiguous-match decision sources."""

    @abstractmethod
    def choose(
        self, row: StatementRow, candidates: Sequence[MatchCandidate]
    ) -> Decision:
        """
        Pick one of the candidates for a row, skip the row, or abort.

        Args:
            row: Statement row being resolved
            candidates: Candidates presented, highest confidence first

        Returns:
            Decision.accept(candidate), Decision.skip() or Decision.abort()
        """
        pass


class SkipAmbiguousChooser(Chooser):
    """Non-interactive policy: leave every ambiguous row unmatched."""

    def choose(
        self, row: StatementRow, candidates: Sequence[MatchCandidate]
    ) -> Decision:
        logger.info(
            f"Row {row.row_number}: {len(candidates)} equally ranked candidates, skipping"
        )
        return Decision.skip()


class FirstCandidateChooser(Chooser):
    """Non-interactive policy: take the highest ranked candidate."""

    def choose(
        self, row: StatementRow, candidates: Sequence[MatchCandidate]
    ) -> Decision:
        if not candidates:
            return Decision.skip()
        return Decision.accept(candidates[0])


class ScriptedChooser(Chooser):
    """
    Replays a fixed sequence of answers.

    Each answer is a Decision, an int (0-based index into the presented
    candidates), or one of the strings "skip" and "abort". Running out of
    answers skips.
    """

    def __init__(self, answers: Iterable):
        self._answers = list(answers)
        self.calls: list[tuple[StatementRow, tuple[MatchCandidate, ...]]] = []

    @property
    def remaining(self) -> int:
        return len(self._answers)

    def choose(
        self, row: StatementRow, candidates: Sequence[MatchCandidate]
    ) -> Decision:
        self.calls.append((row, tuple(candidates)))
        if not self._answers:
            return Decision.skip()

        answer = self._answers.pop(0)
        if isinstance(answer, Decision):
            return answer
        if isinstance(answer, int):
            return Decision.accept(candidates[answer])
        if answer == "abort":
            return Decision.abort()
        return Decision.skip()
