"""Spreadsheet serialization for the record ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Font

from .models.record import RECORD_COLUMNS, AssessmentRecord

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DEFAULT_SHEET_NAME = "Responses"
_COLUMN_WIDTH = 22


def build_workbook(records: Iterable[AssessmentRecord], *, sheet_name: str = DEFAULT_SHEET_NAME) -> bytes:
    """Serialize ``records`` into a single-sheet ``.xlsx`` workbook.

    The header row always lists every record column, so an empty ledger still
    yields a valid sheet.
    """

    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = sheet_name
    worksheet.append(list(RECORD_COLUMNS))
    for cell in worksheet[1]:
        cell.font = Font(bold=True)

    for record in records:
        row = record.as_row()
        worksheet.append([row[column] for column in RECORD_COLUMNS])

    for column_cells in worksheet.columns:
        worksheet.column_dimensions[column_cells[0].column_letter].width = _COLUMN_WIDTH
    worksheet.freeze_panes = "A2"

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def artifact_filename(basename: str, moment: datetime | None = None) -> str:
    """Return the timestamped local file name for an export."""

    stamp = (moment or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{basename}_{stamp}.xlsx"


__all__ = ["DEFAULT_SHEET_NAME", "XLSX_MEDIA_TYPE", "artifact_filename", "build_workbook"]
