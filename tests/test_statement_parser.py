from datetime import date
from decimal import Decimal

import pytest

from ledger_reconcile.parsers.statement_parser import StatementParser, describe_row
from ledger_reconcile.utils.exceptions import StatementParseError
from tests.helpers import SAMPLE_STATEMENT


@pytest.fixture
def parser(config):
    return StatementParser(config)


class TestColumns:
    """Header matching and column mappings."""

    def test_sample_statement(self, parser):
        statement = parser.parse_text(SAMPLE_STATEMENT)

        assert len(statement.rows) == 2
        first, second = statement.rows
        assert first.index == 0
        assert first.date == date(2024, 1, 5)
        assert first.amount == Decimal("-42.00")
        assert first.description == "COFFEE SHOP #12"
        assert second.index == 1
        assert second.amount == Decimal("-1000.00")
        assert statement.skipped == ()

    def test_header_names_ignore_case_and_whitespace(self, parser):
        text = " DATE , amount ,  Description\n2024-01-05, -4.50 ,Tea\n"
        row = parser.parse_text(text).rows[0]
        assert row.date == date(2024, 1, 5)
        assert row.amount == Decimal("-4.50")
        assert row.description == "Tea"

    def test_leading_blank_lines_before_header(self, parser):
        text = "\nDate,Description,Amount\n2025-01-01,Groceries,$50.00\n"
        row = parser.parse_text(text).rows[0]
        assert row.amount == Decimal("50.00")

    def test_missing_date_column_is_fatal(self, parser):
        with pytest.raises(StatementParseError, match="'date'"):
            parser.parse_text("When,Amount\n2024-01-05,1\n")

    def test_missing_amount_column_is_fatal(self, parser):
        with pytest.raises(StatementParseError, match="'amount'"):
            parser.parse_text("Date,Value\n2024-01-05,1\n")

    def test_description_column_is_optional(self, parser):
        row = parser.parse_text("Date,Amount\n2024-01-05,1\n").rows[0]
        assert row.description == ""

    def test_custom_mapping_and_delimiter(self, config):
        config.input.statement.delimiter = ";"
        config.input.statement.column_mappings = {
            "date": "Booking Date",
            "amount": "Value",
            "description": "Payee",
        }
        text = "Booking Date;Payee;Value\n2024-02-01;Gas Station;-20.00\n"
        row = StatementParser(config).parse_text(text).rows[0]
        assert row.amount == Decimal("-20.00")
        assert row.description == "Gas Station"

    def test_positional_mapping_without_header(self, config):
        config.input.statement.has_header = False
        config.input.statement.column_mappings = {"date": 0, "amount": 2, "description": 1}
        statement = StatementParser(config).parse_text(
            "2024-02-01,Gas,-20.00\n2024-02-02,Food,-5\n"
        )
        assert [r.amount for r in statement.rows] == [Decimal("-20.00"), Decimal("-5")]

    def test_debit_credit_columns(self, config):
        config.input.statement.column_mappings = {
            "date": "Date",
            "debit": "Debit",
            "credit": "Credit",
            "description": "Description",
        }
        text = "Date,Description,Debit,Credit\n2024-01-05,Coffee,42.00,\n2024-01-06,Salary,,1500\n"
        statement = StatementParser(config).parse_text(text)
        assert [r.amount for r in statement.rows] == [Decimal("-42.00"), Decimal("1500")]

    def test_invert_amounts(self, config):
        config.input.statement.invert_amounts = True
        row = StatementParser(config).parse_text("Date,Amount\n2024-01-05,42.00\n").rows[0]
        assert row.amount == Decimal("-42.00")

    def test_empty_input(self, parser):
        assert parser.parse_text("").rows == ()


class TestValues:
    """Date and amount formats."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("-$1,234.50", Decimal("-1234.50")),
            ("$-5", Decimal("-5")),
            ("(12.00)", Decimal("-12.00")),
            ("12.00-", Decimal("-12.00")),
            ("7.5 USD", Decimal("7.5")),
            ("+3", Decimal("3")),
        ],
    )
    def test_amount_formats(self, parser, text, expected):
        assert parser._parse_amount(text) == expected

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2024-01-05", date(2024, 1, 5)),
            ("2024/01/05", date(2024, 1, 5)),
            ("01/05/2024", date(2024, 1, 5)),
            ("2024-01-05 10:32", date(2024, 1, 5)),
            ("2024-01-05T10:32:00", date(2024, 1, 5)),
        ],
    )
    def test_date_formats(self, parser, text, expected):
        assert parser._parse_date(text) == expected

    @pytest.mark.parametrize("text", ["01/05/24", "24-01-05", "5.1.24"])
    def test_two_digit_years_are_rejected(self, parser, text):
        with pytest.raises(ValueError, match="two-digit year"):
            parser._parse_date(text)


class TestMalformedRows:
    """Rows with unreadable values are skipped or fatal per configuration."""

    TEXT = (
        "Date,Description,Amount\n"
        "2024-01-05,Good,-1.00\n"
        "01/05/24,Short year,-2.00\n"
        "2024-01-06,Bad amount,abc\n"
        ",,\n"
        "2024-01-07,Also good,-3.00\n"
    )

    def test_skip_is_default(self, parser):
        statement = parser.parse_text(self.TEXT)

        assert [r.description for r in statement.rows] == ["Good", "Also good"]
        assert [r.index for r in statement.rows] == [0, 1]
        assert [s.row_number for s in statement.skipped] == [2, 3]
        assert "two-digit year" in statement.skipped[0].reason
        assert "abc" in statement.skipped[1].reason

    def test_fail_policy(self, config):
        config.input.statement.on_malformed_row = "fail"
        with pytest.raises(StatementParseError) as exc_info:
            StatementParser(config).parse_text(self.TEXT)
        assert exc_info.value.line_number == 2
        assert exc_info.value.construct == "row"


def test_describe_row(parser):
    row = parser.parse_text(SAMPLE_STATEMENT).rows[0]
    assert describe_row(row) == "2024-01-05 -42.00 COFFEE SHOP #12"
    assert describe_row(None) == "-"
