"""
Excel report generator for reconciliation runs.
Creates a multi-sheet workbook with the summary and per-row outcomes.
"""

from pathlib import Path
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..models.transaction import ReconciliationSummary, ResolutionStatus, RowResolution
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
CHOSEN_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_config = config.output.sheets

    def generate_report(self, run, output_path: Path) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            run: Completed ReconciliationRun
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be saved
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        if self.sheet_config.summary.enabled:
            self._create_summary_sheet(wb, run.summary)
        if self.sheet_config.matched.enabled:
            self._create_matched_sheet(wb, run.result.accepted)
        if self.sheet_config.unmatched.enabled:
            self._create_unmatched_sheet(wb, run.result.unmatched)
        if self.sheet_config.skipped_rows.enabled:
            self._create_skipped_rows_sheet(wb, run.summary)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, summary: ReconciliationSummary) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Ledger Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        rows = [
            ("Ledger File:", summary.ledger_filename),
            ("Statement File:", summary.statement_filename),
            ("Reconciliation Date:", summary.reconciliation_date.strftime("%Y-%m-%d %H:%M:%S")),
            ("Config File:", summary.config_file_used or "Default"),
            ("", ""),
            ("Ledger Transactions:", summary.total_transactions),
            ("Already Cleared:", summary.already_cleared),
            ("Statement Rows:", summary.total_statement_rows),
            ("Matched:", summary.matched_count),
            ("Ambiguous, Resolved:", summary.ambiguous_resolved_count),
            ("Ambiguous, Skipped:", summary.ambiguous_skipped_count),
            ("No Candidate:", summary.no_candidate_count),
            ("Malformed Rows Skipped:", summary.skipped_malformed_rows),
            ("Lines Changed:", summary.changed_lines),
            ("Match Rate:", f"{summary.match_rate:.1f}%"),
            ("Processing Time:", f"{summary.processing_time_seconds:.2f}s"),
        ]

        for i, (label, value) in enumerate(rows, start=3):
            ws[f"A{i}"] = label
            ws[f"B{i}"] = value

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_matched_sheet(self, wb: Workbook, accepted: list[RowResolution]) -> None:
        """Create the sheet of rows that cleared a transaction."""
        ws = wb.create_sheet(self.sheet_config.matched.name)
        self._write_headers(
            ws,
            [
                "Row",
                "Statement Date",
                "Statement Amount",
                "Statement Description",
                "Ledger Line",
                "Ledger Date",
                "Ledger Amount",
                "Ledger Description",
                "Resolution",
            ],
        )

        for row_num, resolution in enumerate(accepted, start=2):
            row = resolution.row
            txn = resolution.transaction
            fill = MATCH_FILL if resolution.status is ResolutionStatus.MATCHED else CHOSEN_FILL
            self._write_row(
                ws,
                row_num,
                [
                    row.row_number,
                    row.date,
                    float(row.amount),
                    row.description,
                    txn.line_number,
                    txn.date,
                    float(resolution.matched_amount),
                    txn.description,
                    resolution.status.value,
                ],
                fill,
            )

        self._auto_fit_columns(ws)

    def _create_unmatched_sheet(self, wb: Workbook, unmatched: list[RowResolution]) -> None:
        """Create the sheet of rows left unmatched, for investigation."""
        ws = wb.create_sheet(self.sheet_config.unmatched.name)
        self._write_headers(
            ws, ["Row", "Date", "Amount", "Description", "Reason", "Candidates"]
        )

        for row_num, resolution in enumerate(unmatched, start=2):
            row = resolution.row
            candidate_lines = ", ".join(
                str(c.transaction.line_number) for c in resolution.candidates
            )
            self._write_row(
                ws,
                row_num,
                [
                    row.row_number,
                    row.date,
                    float(row.amount),
                    row.description,
                    resolution.status.value,
                    candidate_lines,
                ],
                UNMATCHED_FILL,
            )

        self._auto_fit_columns(ws)

    def _create_skipped_rows_sheet(self, wb: Workbook, summary: ReconciliationSummary) -> None:
        """Create the sheet of malformed statement rows."""
        ws = wb.create_sheet(self.sheet_config.skipped_rows.name)
        self._write_headers(ws, ["Row", "Reason", "Raw Data"])

        for row_num, skipped in enumerate(summary.malformed, start=2):
            raw = "; ".join(f"{k}={v}" for k, v in skipped.raw.items())
            self._write_row(
                ws, row_num, [skipped.row_number, skipped.reason, raw], UNMATCHED_FILL
            )

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _write_row(self, ws: Worksheet, row_num: int, values: list, fill: PatternFill) -> None:
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row_num, column=col, value=value)
            cell.border = THIN_BORDER
            cell.fill = fill

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            ws.column_dimensions[column_cells[0].column_letter].width = min(max_length + 2, 50)
