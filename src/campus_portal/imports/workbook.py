"""Reading and writing .xlsx workbooks with openpyxl.

Parsing runs in a worker thread (read_rows_async) because openpyxl is
synchronous and a large upload would otherwise stall the event loop.
"""

import asyncio
import io
import zipfile
from typing import Any, Iterable, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

XLSX_MEDIA_TYPE = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)

Row = tuple[int, tuple[Any, ...]]  # (1-based sheet row number, cell values)


class SpreadsheetError(Exception):
    """The upload could not be read as a workbook."""


def _is_blank(values: Sequence[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


def read_rows(data: bytes) -> list[Row]:
    """Data rows of the first worksheet, header and blank rows skipped."""
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise SpreadsheetError(f"Unreadable workbook: {e}") from e

    try:
        if not workbook.worksheets:
            raise SpreadsheetError("Workbook has no worksheets")
        sheet = workbook.worksheets[0]
        rows = []
        for number, values in enumerate(
            sheet.iter_rows(min_row=2, values_only=True), start=2
        ):
            if values is None or _is_blank(values):
                continue
            rows.append((number, tuple(values)))
        return rows
    finally:
        workbook.close()


async def read_rows_async(data: bytes) -> list[Row]:
    return await asyncio.to_thread(read_rows, data)


def build_workbook(
    title: str,
    columns: Sequence[tuple[str, int]],
    rows: Iterable[Sequence[Any]],
) -> bytes:
    """Single-sheet workbook: a header row from `columns` (header, width), then `rows`."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append([header for header, _ in columns])
    for index, (_, width) in enumerate(columns, start=1):
        sheet.column_dimensions[sheet.cell(row=1, column=index).column_letter].width = width
    for row in rows:
        sheet.append(list(row))

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
