"""Parsers for ledger journals and statement CSV files."""

from .ledger_parser import LedgerParser, ParsedLedger
from .statement_parser import StatementParser, ParsedStatement

__all__ = ["LedgerParser", "ParsedLedger", "StatementParser", "ParsedStatement"]
