"""Ledger writers."""

from .ledger_writer import LedgerWriter, changed_line_count

__all__ = ["LedgerWriter", "changed_line_count"]
