"""
Applies cleared markers to ledger text.

Edits are span-local substring replacements on the original text; the
document is never re-serialized from parsed structure, so comments,
alignment and formatting quirks survive untouched.
"""

from pathlib import Path
from typing import Optional
import difflib
import logging
import os
import tempfile

from ..config import ReconConfig
from ..models.transaction import ReconciliationResult, SourceSpan, Transaction
from ..parsers.ledger_parser import ParsedLedger
from ..utils.exceptions import WriteError

logger = logging.getLogger(__name__)


class LedgerWriter:
    """Sets the cleared marker on accepted transactions."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the writer.

        Args:
            config: Application configuration
        """
        self.config = config
        self.cleared_marker = config.input.ledger.cleared_marker
        self.pending_marker = config.input.ledger.pending_marker
        self.context_lines = config.output.diff_context_lines

    def apply(self, ledger: ParsedLedger, result: ReconciliationResult) -> str:
        """
        Produce the updated ledger text.

        Args:
            ledger: Parsed ledger holding the original text and spans
            result: Final reconciliation result

        Returns:
            New text, identical to the original except for status markers

        Raises:
            WriteError: If a span is unknown, out of bounds, stale or overlaps
                another span
        """
        by_id = {txn.id: txn for txn in ledger.transactions}
        targets: list[Transaction] = []
        for txn_id in sorted(result.accepted_ids):
            txn = by_id.get(txn_id)
            if txn is None:
                raise WriteError(f"Accepted transaction #{txn_id} is not in the ledger")
            if not txn.cleared:
                targets.append(txn)

        return self.apply_spans(ledger.text, [t.source_span for t in targets])

    def apply_spans(self, text: str, spans: list[SourceSpan]) -> str:
        """
        Rewrite the marker at each span in a single ordered pass.

        Args:
            text: Original ledger text
            spans: Marker spans to set to cleared

        Returns:
            Updated text
        """
        ordered = sorted(spans, key=lambda s: (s.start, s.end))
        pieces: list[str] = []
        cursor = 0
        previous: Optional[SourceSpan] = None

        for span in ordered:
            if span.start < 0 or span.end > len(text) or span.start > span.end:
                raise WriteError(
                    f"Span {span.start}-{span.end} on line {span.line_number} "
                    f"is outside the ledger text"
                )
            if previous is not None and span.start < max(previous.end, previous.start + 1):
                raise WriteError(
                    f"Span on line {span.line_number} overlaps span on line "
                    f"{previous.line_number}"
                )
            found = text[span.start : span.end]
            if found != span.text:
                raise WriteError(
                    f"Stale span on line {span.line_number}: expected {span.text!r}, "
                    f"found {found!r}"
                )

            pieces.append(text[cursor : span.start])
            pieces.append(self._replacement(text, span))
            cursor = span.end
            previous = span

        pieces.append(text[cursor:])
        updated = "".join(pieces)

        logger.info(f"Marked {len(ordered)} transaction(s) as cleared")
        return updated

    def _replacement(self, text: str, span: SourceSpan) -> str:
        """Text that replaces the span so the transaction reads as cleared."""
        if not span.is_empty:
            # Pending or already cleared marker, swapped in place
            return self.cleared_marker
        if span.end >= len(text) or text[span.end] in "\r\n":
            return f" {self.cleared_marker}"
        return f"{self.cleared_marker} "

    def diff(self, original: str, updated: str, filename: str = "ledger") -> str:
        """
        Render a unified diff preview of the changes.

        Args:
            original: Original ledger text
            updated: Updated ledger text
            filename: Name shown in the diff header

        Returns:
            Unified diff, empty when nothing changed
        """
        return "".join(
            difflib.unified_diff(
                original.splitlines(keepends=True),
                updated.splitlines(keepends=True),
                fromfile=f"a/{filename}",
                tofile=f"b/{filename}",
                n=self.context_lines,
            )
        )

    def write_file(self, text: str, output_path: Path, encoding: Optional[str] = None) -> Path:
        """
        Write the ledger atomically: a temporary file next to the target is
        renamed over it, so readers see either the old or the new text.

        Args:
            text: Ledger text to write
            output_path: Destination path
            encoding: Text encoding, defaults to the ledger input encoding

        Returns:
            The destination path
        """
        encoding = encoding or self.config.input.ledger.encoding
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
            )
        except OSError as e:
            raise WriteError(f"Failed to write ledger {output_path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
                f.write(text)
            if output_path.exists():
                os.chmod(tmp_name, output_path.stat().st_mode & 0o7777)
            os.replace(tmp_name, output_path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise WriteError(f"Failed to write ledger {output_path}: {e}") from e

        logger.info(f"Ledger written: {output_path}")
        return output_path


def changed_line_count(original: str, updated: str) -> int:
    """Number of lines that differ between two texts with the same line count."""
    old_lines = original.split("\n")
    new_lines = updated.split("\n")
    if len(old_lines) != len(new_lines):
        raise WriteError("Rewrite changed the number of ledger lines")
    return sum(1 for old, new in zip(old_lines, new_lines) if old != new)
