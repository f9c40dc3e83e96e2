"""Results workbook writer service."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .report_models import RESULT_COLUMNS, RESULTS_SHEET_NAME, RUN_INFO_SHEET_NAME, RunMetadata

_STATE_COLORS = {
    "success": "FF55AA55",
    "failure": "FFFF4444",
    "pending": "FF8844FF",
}


def write_results_workbook(
    report_data: Mapping[str, Any],
    output_path: Path | str,
    run_metadata: RunMetadata,
) -> Path:
    """Write one row per reported test plus a RunInfo sheet and return the output path."""
    workbook = Workbook()
    sheet = workbook.active
    if sheet is None:
        raise RuntimeError("Workbook active sheet is not available.")
    assert isinstance(sheet, Worksheet)
    sheet.title = RESULTS_SHEET_NAME

    _write_header(sheet)
    tests: Sequence[Mapping[str, Any]] = report_data.get("tests") or ()
    for row_index, test in enumerate(tests, start=2):
        _write_test_row(sheet, row_index, test)

    _write_run_info_sheet(workbook, run_metadata, report_data.get("stats") or {})

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output)
    return output.resolve()


def _write_header(sheet: Worksheet) -> None:
    for column_index, name in enumerate(RESULT_COLUMNS, start=1):
        cell = sheet.cell(row=1, column=column_index, value=name)
        cell.font = Font(bold=True)
        sheet.column_dimensions[get_column_letter(column_index)].width = max(
            12, min(len(name) + 6, 40)
        )
    sheet.column_dimensions[get_column_letter(len(RESULT_COLUMNS))].width = 60
    sheet.freeze_panes = "A2"


def _write_test_row(sheet: Worksheet, row_index: int, test: Mapping[str, Any]) -> None:
    state = str(test.get("state", ""))
    error = test.get("err") or {}
    values = (
        test.get("batch") or None,
        _suite_path(test) or None,
        test.get("title", ""),
        state,
        _rounded(test.get("duration")),
        test.get("currentRetry", 0),
        (error.get("message") if isinstance(error, Mapping) else str(error)) or None,
    )
    for column_index, value in enumerate(values, start=1):
        sheet.cell(row=row_index, column=column_index, value=value)
    color = _STATE_COLORS.get(state)
    if color:
        sheet.cell(row=row_index, column=4).font = Font(color=color, bold=True)


def _suite_path(test: Mapping[str, Any]) -> str:
    full_title = str(test.get("fullTitle", ""))
    title = str(test.get("title", ""))
    suite_path = full_title[: -len(title)].strip() if title and full_title.endswith(title) else ""
    batch = test.get("batch")
    batch_root = f"{batch}_root" if batch else ""
    if batch_root and suite_path.startswith(batch_root):
        suite_path = suite_path[len(batch_root) :].strip()
    return suite_path


def _rounded(value: Any) -> float | None:
    if isinstance(value, (int, float)):
        return round(float(value), 1)
    return None


def _write_run_info_sheet(
    workbook: Workbook, run_metadata: RunMetadata, stats: Mapping[str, Any]
) -> None:
    sheet = workbook.create_sheet(RUN_INFO_SHEET_NAME)
    entries = (
        ("run_start", run_metadata.run_start.isoformat()),
        ("config_path", str(run_metadata.config_path)),
        ("batches", ", ".join(run_metadata.batch_keys)),
        ("update_snapshots", run_metadata.update_snapshots),
        ("aborted", run_metadata.aborted),
        ("suites", stats.get("suites", 0)),
        ("tests", stats.get("tests", 0)),
        ("passes", stats.get("passes", 0)),
        ("pending", stats.get("pending", 0)),
        ("failures", stats.get("failures", 0)),
        ("duration_ms", _rounded(stats.get("duration_ms"))),
    )
    for row, (key, value) in enumerate(entries, start=1):
        sheet.cell(row=row, column=1, value=key)
        sheet.cell(row=row, column=2, value=value)
