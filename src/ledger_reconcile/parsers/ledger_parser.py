"""
Plain-text ledger (hledger/ledger journal) parser.

Reads journal text into Transaction records. Only the fields needed for
matching and clearing are modeled; the original text is kept verbatim so the
writer can flip status markers in place.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
import fnmatch
import logging
import re

from ..config import ReconConfig
from ..models.transaction import (
    Posting,
    SourceSpan,
    Transaction,
    TransactionStatus,
)
from ..utils.exceptions import LedgerParseError

logger = logging.getLogger(__name__)

# Unindented lines starting with one of these are comments
TOP_LEVEL_COMMENT_CHARS = ";#%|*"

DATE_RE = re.compile(
    r"^(?:(?P<year>\d{4})(?P<sep1>[-/.]))?(?P<month>\d{1,2})(?P<sep2>[-/.])(?P<day>\d{1,2})$"
)
YEAR_DIRECTIVE_RE = re.compile(r"^(?:Y|year|apply\s+year)\s*(?P<year>\d{4})\s*$")
ACCOUNT_AMOUNT_SPLIT_RE = re.compile(r"\s{2,}|\t")

BOM = "\ufeff"

# First words of the top-level directives that are skipped
DIRECTIVE_KEYWORDS = frozenset(
    {
        "account", "alias", "apply", "assert", "bucket", "capture", "check",
        "commodity", "decimal-mark", "def", "define", "end", "eval", "expr",
        "include", "payee", "tag", "test", "unalias", "value", "year",
        "A", "C", "D", "N", "P", "Y",
    }
)
# Periodic (~) and automated (=) transactions, ledger option lines (--)
DIRECTIVE_PREFIXES = ("~", "=", "--")

COMMODITY = r'(?:"[^"]*"|[^\d\s\-+.,;@="]+)'
AMOUNT_RE = re.compile(
    rf"^(?P<sign1>[-+])?\s*(?P<pre>{COMMODITY})?\s*(?P<sign2>[-+])?\s*"
    rf"(?P<number>\d[\d,]*(?:\.\d+)?|\.\d+)\s*(?P<post>{COMMODITY})?$"
)


@dataclass(frozen=True)
class ParsedLedger:
    """Parsed journal: the verbatim text plus the transactions found in it."""

    text: str
    transactions: tuple[Transaction, ...] = ()
    name: str = "<ledger>"

    @property
    def uncleared(self) -> list[Transaction]:
        return [t for t in self.transactions if not t.cleared]


@dataclass
class _TransactionBuilder:
    """Accumulates the lines of the transaction currently being read."""

    line_number: int
    date: date
    status: TransactionStatus
    span: SourceSpan
    description: str
    code: Optional[str]
    postings: list[Posting] = field(default_factory=list)


class LedgerParser:
    """
    Parser for plain-text accounting journals.

    Recognizes transaction headers (date, optional status marker, optional
    code, description), their indented postings, comments and directives.
    Any construct it cannot understand inside a transaction is a fatal
    LedgerParseError, since a partially understood ledger cannot be safely
    rewritten.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        ledger_config = config.input.ledger
        self.encoding = ledger_config.encoding
        self.cleared_marker = ledger_config.cleared_marker
        self.pending_marker = ledger_config.pending_marker
        self.account_patterns = [p.lower() for p in ledger_config.account_patterns]

    def parse_file(self, file_path: Path) -> ParsedLedger:
        """
        Parse a ledger file.

        Args:
            file_path: Path to the journal

        Returns:
            Parsed ledger with the verbatim text

        Raises:
            LedgerParseError: If the file cannot be read or parsed
        """
        logger.info(f"Parsing ledger file: {file_path}")

        try:
            # newline="" keeps \r\n endings so offsets match what gets written back
            with open(file_path, "r", encoding=self.encoding, newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read ledger file: {e}")
            raise LedgerParseError(f"Failed to read ledger file: {e}") from e

        return self.parse_text(content, name=str(file_path))

    def parse_text(self, text: str, name: str = "<ledger>") -> ParsedLedger:
        """
        Parse journal text into transactions.

        Args:
            text: Full ledger text
            name: Name used in log messages

        Returns:
            Parsed ledger

        Raises:
            LedgerParseError: On a bad date, bad or missing amount, a
                transaction without postings, or an unrecognized top-level line
        """
        transactions: list[Transaction] = []
        current: Optional[_TransactionBuilder] = None
        default_year: Optional[int] = None
        in_comment_block = False
        in_directive = False

        offset = 0
        for line_number, raw_line in enumerate(text.split("\n"), start=1):
            line_start = offset
            offset += len(raw_line) + 1
            line = raw_line.rstrip("\r")
            if line_number == 1 and line.startswith(BOM):
                # Keep the BOM in the text; offsets stay relative to it
                line = line[1:]
                line_start += 1

            if in_comment_block:
                if line.strip() == "end comment":
                    in_comment_block = False
                continue

            if not line.strip():
                self._finish(current, transactions)
                current = None
                in_directive = False
                continue

            if line[0] in " \t":
                if current is not None:
                    self._read_posting_line(current, line, line_number)
                elif not in_directive:
                    logger.debug(f"{name}:{line_number}: ignoring orphan indented line")
                continue

            self._finish(current, transactions)
            current = None
            in_directive = False

            if line[0] in TOP_LEVEL_COMMENT_CHARS:
                continue
            if line.rstrip() == "comment":
                in_comment_block = True
                continue
            if line[0].isdigit():
                current = self._read_header(line, line_number, line_start, default_year)
                continue

            year_match = YEAR_DIRECTIVE_RE.match(line.rstrip())
            if year_match:
                default_year = int(year_match.group("year"))
            elif not self._is_directive(line):
                raise LedgerParseError(
                    f"unrecognized line '{line.strip()}'", line_number, "directive"
                )
            # Directives own their indented sub-lines
            in_directive = True

        self._finish(current, transactions)

        cleared = sum(1 for t in transactions if t.cleared)
        logger.info(
            f"Parsed {len(transactions)} transactions from {name} "
            f"({cleared} already cleared)"
        )
        return ParsedLedger(text=text, transactions=tuple(transactions), name=name)

    def _read_header(
        self,
        line: str,
        line_number: int,
        line_start: int,
        default_year: Optional[int],
    ) -> _TransactionBuilder:
        """Read a transaction header line: date, status, code, description."""
        token_match = re.match(r"[^\s;]+", line)
        token = token_match.group(0)
        primary = token.split("=", 1)[0]
        txn_date = self._parse_date(primary, line_number, default_year)

        pos = token_match.end()
        while pos < len(line) and line[pos] in " \t":
            pos += 1

        if self._is_marker_at(line, pos):
            marker = line[pos]
            status = (
                TransactionStatus.CLEARED
                if marker == self.cleared_marker
                else TransactionStatus.PENDING
            )
            span = SourceSpan(line_number, line_start + pos, line_start + pos + 1, marker)
            rest = line[pos + 1 :]
        else:
            status = TransactionStatus.UNMARKED
            span = SourceSpan(line_number, line_start + pos, line_start + pos, "")
            rest = line[pos:]

        rest = rest.strip()
        code = None
        if rest.startswith("("):
            close = rest.find(")")
            if close != -1:
                code = rest[1:close].strip()
                rest = rest[close + 1 :].strip()

        description = rest.split(";", 1)[0].strip()

        return _TransactionBuilder(
            line_number=line_number,
            date=txn_date,
            status=status,
            span=span,
            description=description,
            code=code,
        )

    def _is_directive(self, line: str) -> bool:
        if line.startswith(DIRECTIVE_PREFIXES):
            return True
        return line.split(maxsplit=1)[0] in DIRECTIVE_KEYWORDS

    def _is_marker_at(self, line: str, pos: int) -> bool:
        """True when a status marker sits at pos."""
        if pos >= len(line) or line[pos] not in (self.cleared_marker, self.pending_marker):
            return False
        # A letter marker must stand alone, or "Payroll" would read as marker "P"
        if line[pos].isalnum():
            return pos + 1 == len(line) or line[pos + 1] in " \t;"
        return True

    def _parse_date(
        self, token: str, line_number: int, default_year: Optional[int]
    ) -> date:
        """Parse a journal date such as 2024-01-05, 2024/1/5 or 1/5."""
        match = DATE_RE.match(token)
        if not match or (match.group("sep1") and match.group("sep1") != match.group("sep2")):
            raise LedgerParseError(f"bad date '{token}'", line_number, "date")

        year_text = match.group("year")
        if year_text is None:
            if default_year is None:
                raise LedgerParseError(
                    f"bad date '{token}': no year and no year directive",
                    line_number,
                    "date",
                )
            year = default_year
        else:
            year = int(year_text)

        try:
            return date(year, int(match.group("month")), int(match.group("day")))
        except ValueError as e:
            raise LedgerParseError(f"bad date '{token}': {e}", line_number, "date") from e

    def _read_posting_line(
        self, current: _TransactionBuilder, line: str, line_number: int
    ) -> None:
        """Read an indented line belonging to the current transaction."""
        body = line.strip()
        if body.startswith(";"):
            return

        body = body.split(";", 1)[0].rstrip()
        if body[:1] in (self.cleared_marker, self.pending_marker) and body[1:2] in (" ", "\t"):
            body = body[1:].lstrip()

        parts = ACCOUNT_AMOUNT_SPLIT_RE.split(body, maxsplit=1)
        account = parts[0].strip()
        amount_text = parts[1] if len(parts) > 1 else ""
        # Drop cost (@, @@) and balance assertion (=, ==) parts
        amount_text = re.split(r"[@=]", amount_text, maxsplit=1)[0].strip()

        amount: Optional[Decimal] = None
        commodity = ""
        if amount_text:
            amount, commodity = self._parse_amount(amount_text, line_number)

        current.postings.append(
            Posting(
                account=account,
                amount=amount,
                line_number=line_number,
                commodity=commodity,
            )
        )

    def _parse_amount(self, text: str, line_number: int) -> tuple[Decimal, str]:
        """Parse a posting amount like -$1,000.00, $-5, 12.50 EUR or "AB C" 3."""
        match = AMOUNT_RE.match(text)
        if not match or (match.group("sign1") and match.group("sign2")):
            raise LedgerParseError(f"bad amount '{text}'", line_number, "amount")

        try:
            value = Decimal(match.group("number").replace(",", ""))
        except InvalidOperation as e:
            raise LedgerParseError(f"bad amount '{text}'", line_number, "amount") from e

        if "-" in (match.group("sign1"), match.group("sign2")):
            value = -value
        commodity = (match.group("pre") or match.group("post") or "").strip('"')
        return value, commodity

    def _finish(
        self,
        current: Optional[_TransactionBuilder],
        transactions: list[Transaction],
    ) -> None:
        """Close the current transaction and append it."""
        if current is None:
            return

        if not current.postings:
            raise LedgerParseError(
                "unterminated transaction: header has no postings",
                current.line_number,
                "transaction",
            )

        postings = self._infer_missing_amount(current)

        reconciled = [p.amount for p in postings if self._is_reconciled_account(p.account)]
        amount: Optional[Decimal] = None
        if reconciled:
            amount = sum(reconciled, Decimal("0"))

        transactions.append(
            Transaction(
                id=len(transactions),
                date=current.date,
                description=current.description,
                amount=amount,
                status=current.status,
                source_span=current.span,
                line_number=current.line_number,
                code=current.code,
                postings=tuple(postings),
                reconciled_amounts=tuple(reconciled),
            )
        )

    def _infer_missing_amount(self, current: _TransactionBuilder) -> list[Posting]:
        """Fill in the single elided posting amount so the transaction balances."""
        missing = [p for p in current.postings if p.amount is None]
        if not missing:
            return list(current.postings)
        if len(missing) > 1:
            raise LedgerParseError(
                "missing amount: only one posting per transaction may omit its amount",
                missing[1].line_number,
                "amount",
            )

        known = [p for p in current.postings if p.amount is not None]
        inferred = -sum((p.amount for p in known), Decimal("0"))
        commodity = known[0].commodity if known else ""

        return [
            Posting(
                account=p.account,
                amount=inferred,
                line_number=p.line_number,
                commodity=commodity,
                inferred=True,
            )
            if p.amount is None
            else p
            for p in current.postings
        ]

    def _is_reconciled_account(self, account: str) -> bool:
        """True when the posting belongs to the side compared with the statement."""
        name = account.strip("()[]").lower()
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.account_patterns)
