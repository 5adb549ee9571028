"""Errors and logging setup shared across the package."""

from .exceptions import (
    ReconciliationError,
    ParseError,
    LedgerParseError,
    StatementParseError,
    ConfigurationError,
    ResolutionError,
    AbortRequested,
    WriteError,
    ReportGenerationError,
)
from .logging_config import setup_logging

__all__ = [
    "ReconciliationError",
    "ParseError",
    "LedgerParseError",
    "StatementParseError",
    "ConfigurationError",
    "ResolutionError",
    "AbortRequested",
    "WriteError",
    "ReportGenerationError",
    "setup_logging",
]
