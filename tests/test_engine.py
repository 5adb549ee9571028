from decimal import Decimal
from pathlib import Path

import pytest

from ledger_reconcile.matching.choosers import (
    FirstCandidateChooser,
    ScriptedChooser,
    SkipAmbiguousChooser,
)
from ledger_reconcile.matching.engine import ReconciliationEngine, chooser_for_policy
from ledger_reconcile.models.transaction import ResolutionStatus
from ledger_reconcile.utils.exceptions import (
    AbortRequested,
    LedgerParseError,
    StatementParseError,
)
from tests.helpers import SAMPLE_LEDGER, SAMPLE_STATEMENT, journal

GAS_LEDGER = journal(
    "2024-02-01 Gas Station A\n    Expenses:Auto  $20.00\n    Assets:Checking",
    "2024-02-01 Gas Station B\n    Expenses:Auto  $20.00\n    Assets:Checking",
)


def statement(*rows: str) -> str:
    return "Date,Description,Amount\n" + "".join(f"{r}\n" for r in rows)


class TestScenarios:
    """End-to-end runs over in-memory text."""

    def test_exact_unique_match(self, config):
        ledger = journal(
            "2024-01-05 Coffee Shop\n    Expenses:Food  $42.00\n    Assets:Checking  $-42.00"
        )
        run = ReconciliationEngine(config).reconcile(
            ledger, statement("2024-01-05,Coffee,-42.00")
        )

        assert run.updated_text.startswith("2024-01-05 * Coffee Shop\n")
        assert run.summary.matched_count == 1
        assert run.summary.unmatched_count == 0
        assert run.result.resolutions[0].status is ResolutionStatus.MATCHED

    def test_date_window_match(self, config):
        ledger = journal("2024-01-05 Refund\n    Assets:Checking  $-10.00\n    Income:Misc")
        run = ReconciliationEngine(config).reconcile(
            ledger, statement("2024-01-07,Refund,-10.00")
        )

        resolution = run.result.resolutions[0]
        assert resolution.status is ResolutionStatus.MATCHED
        assert resolution.candidates[0].day_distance == 2
        assert run.updated_text.startswith("2024-01-05 * Refund\n")

    def test_ambiguous_skip_leaves_ledger_unchanged(self, config):
        chooser = ScriptedChooser(["skip"])
        run = ReconciliationEngine(config, chooser).reconcile(
            GAS_LEDGER, statement("2024-02-01,GAS,-20.00")
        )

        assert len(chooser.calls) == 1
        assert len(chooser.calls[0][1]) == 2
        assert run.result.resolutions[0].status is ResolutionStatus.SKIPPED
        assert run.updated_text == GAS_LEDGER
        assert not run.changed
        assert run.summary.ambiguous_skipped_count == 1

    def test_ambiguous_choice_clears_only_the_chosen(self, config):
        run = ReconciliationEngine(config, ScriptedChooser([1])).reconcile(
            GAS_LEDGER, statement("2024-02-01,GAS,-20.00")
        )

        lines = run.updated_text.split("\n")
        assert "2024-02-01 Gas Station A" in lines
        assert "2024-02-01 * Gas Station B" in lines
        assert run.summary.ambiguous_resolved_count == 1

    def test_card_payment_clears_from_checking_statement(self, config):
        ledger = journal(
            "2024-03-01 Visa payment\n"
            "    Liabilities:Visa  $500.00\n"
            "    Assets:Checking  -$500.00"
        )
        run = ReconciliationEngine(config).reconcile(
            ledger, statement("2024-03-01,VISA PAYMENT,-500.00")
        )

        resolution = run.result.resolutions[0]
        assert resolution.status is ResolutionStatus.MATCHED
        assert resolution.matched_amount == Decimal("-500.00")
        assert run.updated_text.startswith("2024-03-01 * Visa payment\n")

    def test_no_candidate(self, config):
        run = ReconciliationEngine(config).reconcile(
            SAMPLE_LEDGER, statement("2024-01-05,Mystery,-999.00")
        )

        assert run.result.resolutions[0].status is ResolutionStatus.NO_CANDIDATE
        assert run.updated_text == SAMPLE_LEDGER
        assert run.summary.no_candidate_count == 1

    def test_abort_leaves_no_trace(self, config):
        ledger = SAMPLE_LEDGER + "\n" + GAS_LEDGER
        engine = ReconciliationEngine(config, ScriptedChooser(["abort"]))

        with pytest.raises(AbortRequested) as exc_info:
            engine.reconcile(
                ledger,
                statement("2024-01-05,COFFEE,-42.00", "2024-02-01,GAS,-20.00"),
            )

        # The coffee row was already matched when the abort arrived
        assert exc_info.value.row.row_number == 2


class TestRunProperties:
    def test_sample_run(self, config):
        run = ReconciliationEngine(config).reconcile(SAMPLE_LEDGER, SAMPLE_STATEMENT)

        lines = run.updated_text.split("\n")
        assert lines[4] == "2024-01-05 * Coffee Shop"
        assert lines[8] == "2024-01-07 * Grocery Store  ; already reconciled"
        assert lines[12] == "2024-01-10 * (1042) Landlord"
        assert run.summary.changed_lines == 2
        assert run.summary.cleared_count == 2
        assert run.summary.already_cleared == 1
        assert run.summary.match_rate == pytest.approx(100.0)

    def test_second_run_is_a_no_op(self, config):
        engine = ReconciliationEngine(config)
        first = engine.reconcile(SAMPLE_LEDGER, SAMPLE_STATEMENT)
        second = engine.reconcile(first.updated_text, SAMPLE_STATEMENT)

        assert second.updated_text == first.updated_text
        assert second.summary.no_candidate_count == 2

    def test_one_transaction_per_row(self, config):
        ledger = journal("2024-03-01 Parking\n    Expenses:Auto  $5\n    Assets:Checking")
        run = ReconciliationEngine(config).reconcile(
            ledger, statement("2024-03-01,PARK,-5", "2024-03-01,PARK,-5")
        )

        statuses = [r.status for r in run.result.resolutions]
        assert statuses == [ResolutionStatus.MATCHED, ResolutionStatus.NO_CANDIDATE]
        assert run.summary.changed_lines == 1

    def test_malformed_rows_are_counted(self, config):
        run = ReconciliationEngine(config).reconcile(
            SAMPLE_LEDGER, SAMPLE_STATEMENT + "05/01/24,Short,-1.00\n"
        )
        assert run.summary.skipped_malformed_rows == 1
        assert run.summary.malformed[0].row_number == 3

    def test_parse_errors_surface_before_matching(self, config):
        chooser = ScriptedChooser([])
        engine = ReconciliationEngine(config, chooser)
        with pytest.raises(LedgerParseError):
            engine.reconcile(
                "2024-99-01 Bad\n    Assets:Bank  $1\n    Income:X\n", SAMPLE_STATEMENT
            )
        with pytest.raises(StatementParseError):
            engine.reconcile(SAMPLE_LEDGER, "When,What\n1,2\n")
        assert chooser.calls == []


class TestFiles:
    def test_reconcile_files_does_not_write(self, config, sample_files):
        ledger_path, statement_path = sample_files
        before = ledger_path.read_bytes()

        run = ReconciliationEngine(config).reconcile_files(ledger_path, statement_path)

        assert run.changed
        assert ledger_path.read_bytes() == before
        assert run.summary.ledger_filename == "main.journal"
        assert run.summary.statement_filename == "statement.csv"

    def test_missing_statement(self, config, sample_files):
        ledger_path, _ = sample_files
        with pytest.raises(StatementParseError):
            ReconciliationEngine(config).reconcile_files(ledger_path, Path("/nonexistent.csv"))

    def test_abort_leaves_files_untouched(self, config, tmp_path):
        ledger_path = tmp_path / "main.journal"
        ledger_path.write_text(SAMPLE_LEDGER + "\n" + GAS_LEDGER, encoding="utf-8")
        statement_path = tmp_path / "statement.csv"
        statement_path.write_text(
            statement("2024-01-05,COFFEE,-42.00", "2024-02-01,GAS,-20.00"), encoding="utf-8"
        )
        before = ledger_path.read_bytes()
        engine = ReconciliationEngine(config, ScriptedChooser(["abort"]))

        with pytest.raises(AbortRequested):
            engine.reconcile_files(ledger_path, statement_path)

        assert ledger_path.read_bytes() == before
        assert sorted(p.name for p in tmp_path.iterdir()) == ["main.journal", "statement.csv"]


@pytest.mark.parametrize(
    "policy, expected",
    [("skip", SkipAmbiguousChooser), ("first", FirstCandidateChooser), ("prompt", type(None))],
)
def test_chooser_for_policy(policy, expected):
    assert isinstance(chooser_for_policy(policy), expected)
