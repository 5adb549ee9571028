"""Builders and sample inputs shared by the tests."""

from datetime import date
from decimal import Decimal

from ledger_reconcile.models.transaction import (
    SourceSpan,
    StatementRow,
    Transaction,
    TransactionStatus,
)

SAMPLE_LEDGER = """\
; Household journal
account Assets:Checking
account Expenses:Food

2024-01-05 Coffee Shop
    Expenses:Food            $42.00
    Assets:Checking         -$42.00

2024-01-07 * Grocery Store  ; already reconciled
    Expenses:Food            $80.15
    Assets:Checking

2024-01-10 ! (1042) Landlord
    Expenses:Rent         $1,000.00
    Assets:Checking      -$1,000.00
"""

SAMPLE_STATEMENT = """\
Date,Description,Amount
2024-01-05,COFFEE SHOP #12,-42.00
2024-01-11,LANDLORD PAYMENT,"-$1,000.00"
"""


def make_transaction(
    txn_id: int,
    when: date,
    amount: str,
    description: str = "",
    status: TransactionStatus = TransactionStatus.UNMARKED,
) -> Transaction:
    """Transaction with a dummy span, for tests that never write text."""
    return Transaction(
        id=txn_id,
        date=when,
        description=description,
        amount=Decimal(amount),
        status=status,
        source_span=SourceSpan(line_number=txn_id + 1, start=0, end=0),
        line_number=txn_id + 1,
    )


def make_row(index: int, when: date, amount: str, description: str = "") -> StatementRow:
    return StatementRow(
        index=index,
        row_number=index + 1,
        date=when,
        amount=Decimal(amount),
        description=description,
    )


def journal(*blocks: str) -> str:
    """Join transaction blocks with blank lines, ending in a newline."""
    return "\n\n".join(b.strip("\n") for b in blocks) + "\n"
