"""
Interactive chooser backed by a rich console prompt.
"""

from collections.abc import Sequence
from typing import Optional, TextIO

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from ..matching.choosers import Chooser
from ..models.transaction import Decision, MatchCandidate, StatementRow

SKIP_KEY = "s"
ABORT_KEY = "a"


class TerminalChooser(Chooser):
    """
    Shows the statement row and its candidates, then asks for a number,
    "s" to skip the row or "a" to abort the whole run.
    """

    def __init__(self, console: Optional[Console] = None, stream: Optional[TextIO] = None):
        """
        Args:
            console: Console to render on (stdout by default)
            stream: Input stream for answers (stdin by default)
        """
        self.console = console or Console()
        self.stream = stream

    def choose(
        self, row: StatementRow, candidates: Sequence[MatchCandidate]
    ) -> Decision:
        self.console.print()
        self.console.print(
            f"[bold]Statement row {row.row_number}:[/bold] "
            f"{row.date.isoformat()}  [cyan]{row.amount}[/cyan]  {row.description}"
        )
        self.console.print(render_candidates(candidates))

        choices = [str(i) for i in range(1, len(candidates) + 1)] + [SKIP_KEY, ABORT_KEY]
        answer = Prompt.ask(
            f"Match which transaction? (1-{len(candidates)}, "
            f"{SKIP_KEY}=skip, {ABORT_KEY}=abort)",
            choices=choices,
            default=SKIP_KEY,
            show_choices=False,
            console=self.console,
            stream=self.stream,
        )

        if answer == ABORT_KEY:
            return Decision.abort()
        if answer == SKIP_KEY:
            return Decision.skip()
        return Decision.accept(candidates[int(answer) - 1])


def render_candidates(candidates: Sequence[MatchCandidate]) -> Table:
    """Table of candidates with enough detail to tell them apart."""
    table = Table(title="Candidate transactions")
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Description")
    table.add_column("Line", justify="right")
    table.add_column("Tier")
    table.add_column("Score", justify="right")

    for number, candidate in enumerate(candidates, start=1):
        txn = candidate.transaction
        table.add_row(
            str(number),
            txn.date.isoformat(),
            str(candidate.amount if candidate.amount is not None else txn.amount),
            txn.description,
            str(txn.line_number),
            candidate.tier.label,
            f"{candidate.confidence:.2f}",
        )

    return table
