"""Results writing domain exports."""

from .report_models import RESULT_COLUMNS, RESULTS_SHEET_NAME, RUN_INFO_SHEET_NAME, RunMetadata
from .run_report_writer import write_results_workbook

__all__ = [
    "RESULT_COLUMNS",
    "RESULTS_SHEET_NAME",
    "RUN_INFO_SHEET_NAME",
    "RunMetadata",
    "write_results_workbook",
]
