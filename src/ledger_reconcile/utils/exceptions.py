"""Custom exceptions for the reconciliation application."""

from typing import Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class ParseError(ReconciliationError):
    """
    Malformed input construct.

    Carries the 1-based line (or data row) number and the name of the
    construct that could not be understood, when known.
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        construct: Optional[str] = None,
    ):
        self.line_number = line_number
        self.construct = construct
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class LedgerParseError(ParseError):
    """Error parsing the ledger journal. Always fatal."""

    pass


class StatementParseError(ParseError):
    """Error parsing the statement CSV file."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ResolutionError(ReconciliationError):
    """A chooser returned a decision the resolver cannot apply."""

    pass


class AbortRequested(ReconciliationError):
    """The user asked to abort the run. Nothing has been written."""

    def __init__(self, row=None):
        self.row = row
        if row is not None:
            message = f"Reconciliation aborted at statement row {row.row_number}"
        else:
            message = "Reconciliation aborted"
        super().__init__(message)


class WriteError(ReconciliationError):
    """Stale or overlapping marker spans; indicates a parser/writer bug."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
