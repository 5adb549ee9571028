"""
Statement CSV parser.
Reads bank or card statement exports into StatementRow records.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from pathlib import Path
from typing import Any, Optional
import logging
import re

import pandas as pd

from ..config import ReconConfig
from ..models.transaction import SkippedRow, StatementRow
from ..utils.exceptions import StatementParseError

logger = logging.getLogger(__name__)

# All-numeric dates such as 01/05/24 or 24-01-05
NUMERIC_DATE_RE = re.compile(r"^\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}$")
AMOUNT_RE = re.compile(
    r"^(?P<sign1>[-+])?\s*(?P<pre>[^\d\s.,+-]+)?\s*(?P<sign2>[-+])?\s*"
    r"(?P<number>\d[\d,]*(?:\.\d+)?|\.\d+)\s*(?P<post>[^\d\s.,+-]+)?$"
)


@dataclass(frozen=True)
class ParsedStatement:
    """Rows read from a statement, plus the rows that had to be dropped."""

    rows: tuple[StatementRow, ...] = ()
    skipped: tuple[SkippedRow, ...] = ()
    name: str = "<statement>"


class StatementParser:
    """
    Parser for delimited statement exports.

    Columns are located by header name (case and surrounding whitespace
    ignored) or, for header-less files, by position. Rows with an unreadable
    date or amount are skipped with a warning, or abort the parse when
    ``on_malformed_row`` is "fail".
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        statement_config = config.input.statement
        self.encoding = statement_config.encoding
        self.delimiter = statement_config.delimiter
        self.has_header = statement_config.has_header
        self.date_formats = statement_config.date_formats
        self.column_mappings = statement_config.column_mappings
        self.invert_amounts = statement_config.invert_amounts
        self.fail_on_malformed = statement_config.on_malformed_row == "fail"

    def parse_file(self, file_path: Path) -> ParsedStatement:
        """
        Parse a statement CSV file.

        Args:
            file_path: Path to the CSV file

        Returns:
            Parsed statement rows in file order

        Raises:
            StatementParseError: If the file cannot be read, a required column
                is missing, or a row is malformed and the policy is "fail"
        """
        logger.info(f"Parsing statement file: {file_path}")

        try:
            with open(file_path, "r", encoding=self.encoding, newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read statement file: {e}")
            raise StatementParseError(f"Failed to read statement file: {e}") from e

        return self.parse_text(content, name=str(file_path))

    def parse_text(self, text: str, name: str = "<statement>") -> ParsedStatement:
        """
        Parse statement text.

        Args:
            text: Delimited statement content
            name: Name used in log messages

        Returns:
            Parsed statement
        """
        try:
            df = pd.read_csv(
                StringIO(text),
                sep=self.delimiter,
                header=0 if self.has_header else None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                skipinitialspace=True,
            )
        except pd.errors.EmptyDataError:
            logger.warning(f"Statement {name} is empty")
            return ParsedStatement(name=name)
        except (pd.errors.ParserError, ValueError) as e:
            logger.error(f"Failed to read statement CSV: {e}")
            raise StatementParseError(f"Failed to read statement CSV: {e}") from e

        columns = self._resolve_columns(df)
        rows, skipped = self._process_dataframe(df, columns)

        logger.info(f"Extracted {len(rows)} rows from statement {name}")
        if skipped:
            logger.warning(f"Skipped {len(skipped)} malformed statement row(s) in {name}")

        return ParsedStatement(rows=tuple(rows), skipped=tuple(skipped), name=name)

    def _resolve_columns(self, df: pd.DataFrame) -> dict[str, Any]:
        """
        Map logical column names to the DataFrame's actual columns.

        Raises:
            StatementParseError: If date, or every amount column, is absent
        """
        if self.has_header:
            by_name = {str(c).strip().lower(): c for c in df.columns}
        else:
            by_name = {}

        resolved: dict[str, Any] = {}
        for logical, wanted in self.column_mappings.items():
            if self.has_header:
                actual = by_name.get(str(wanted).strip().lower())
            else:
                try:
                    position = int(wanted)
                except (TypeError, ValueError) as e:
                    raise StatementParseError(
                        f"column '{logical}' must be a position when the file has no header",
                        construct="column",
                    ) from e
                actual = position if 0 <= position < len(df.columns) else None

            if actual is not None:
                resolved[logical] = actual

        if "date" not in resolved:
            raise StatementParseError(
                f"required column 'date' ({self.column_mappings.get('date', 'Date')!r}) "
                f"not found; columns are {list(df.columns)}",
                construct="column",
            )
        if not any(c in resolved for c in ("amount", "debit", "credit")):
            raise StatementParseError(
                f"required column 'amount' ({self.column_mappings.get('amount', 'Amount')!r}) "
                f"not found; columns are {list(df.columns)}",
                construct="column",
            )
        return resolved

    def _process_dataframe(
        self, df: pd.DataFrame, columns: dict[str, Any]
    ) -> tuple[list[StatementRow], list[SkippedRow]]:
        """Convert DataFrame rows to statement rows, keeping file order."""
        rows: list[StatementRow] = []
        skipped: list[SkippedRow] = []

        for idx, series in df.iterrows():
            row_number = int(idx) + 1
            raw = {str(k): ("" if pd.isna(v) else v) for k, v in series.to_dict().items()}
            if not any(str(v).strip() for v in raw.values()):
                continue

            try:
                row_date = self._parse_date(self._cell(series, columns, "date"))
                amount = self._row_amount(series, columns)
            except ValueError as e:
                if self.fail_on_malformed:
                    raise StatementParseError(str(e), row_number, "row") from e
                logger.warning(f"Row {row_number}: {e}, skipping")
                skipped.append(SkippedRow(row_number=row_number, reason=str(e), raw=raw))
                continue

            rows.append(
                StatementRow(
                    index=len(rows),
                    row_number=row_number,
                    date=row_date,
                    amount=-amount if self.invert_amounts else amount,
                    description=self._cell(series, columns, "description"),
                    raw=raw,
                )
            )

        return rows, skipped

    def _cell(self, series: pd.Series, columns: dict[str, Any], logical: str) -> str:
        column = columns.get(logical)
        if column is None:
            return ""
        value = series.get(column)
        return "" if value is None or pd.isna(value) else str(value).strip()

    def _row_amount(self, series: pd.Series, columns: dict[str, Any]) -> Decimal:
        """Signed amount from a single amount column or a debit/credit pair."""
        if "amount" in columns:
            return self._parse_amount(self._cell(series, columns, "amount"))

        debit_text = self._cell(series, columns, "debit")
        credit_text = self._cell(series, columns, "credit")
        if not debit_text and not credit_text:
            raise ValueError("no debit or credit amount")

        debit = self._parse_amount(debit_text) if debit_text else Decimal("0")
        credit = self._parse_amount(credit_text) if credit_text else Decimal("0")
        return credit - abs(debit)

    def _parse_date(self, value: str) -> date:
        """
        Parse a statement date using the configured formats.

        Two-digit years are refused instead of guessed.
        """
        if not value:
            raise ValueError("missing date")

        if NUMERIC_DATE_RE.match(value) and not any(
            len(part) == 4 for part in re.findall(r"\d+", value)
        ):
            raise ValueError(f"ambiguous two-digit year in date '{value}'")

        candidates = [value]
        # Tolerate a time part such as "2024-01-05 10:32" or "2024-01-05T10:32:00"
        head = re.split(r"[T\s]", value, maxsplit=1)[0]
        if head != value:
            candidates.append(head)

        for text in candidates:
            for date_format in self.date_formats:
                try:
                    return datetime.strptime(text, date_format).date()
                except ValueError:
                    continue

        raise ValueError(f"unrecognized date '{value}'")

    def _parse_amount(self, value: str) -> Decimal:
        """
        Parse an amount such as -$1,234.50, $-5, (12.00), 12.00- or 7.5 USD.
        """
        text = value.strip()
        if not text:
            raise ValueError("missing amount")

        negative = False
        if text.startswith("(") and text.endswith(")"):
            negative = True
            text = text[1:-1].strip()
        elif text.endswith("-"):
            negative = True
            text = text[:-1].strip()

        match = AMOUNT_RE.match(text)
        if not match or (match.group("sign1") and match.group("sign2")):
            raise ValueError(f"unrecognized amount '{value}'")

        try:
            amount = Decimal(match.group("number").replace(",", ""))
        except InvalidOperation as e:
            raise ValueError(f"unrecognized amount '{value}'") from e

        if "-" in (match.group("sign1"), match.group("sign2")):
            negative = not negative
        return -amount if negative else amount


def describe_row(row: Optional[StatementRow]) -> str:
    """One-line description of a statement row for messages."""
    if row is None:
        return "-"
    return f"{row.date.isoformat()} {row.amount} {row.description}".rstrip()
