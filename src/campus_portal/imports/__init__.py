"""Bulk roster import from spreadsheets.

Learn: An upload goes through four stages:
1. workbook.read_rows — openpyxl parses the first sheet (header skipped)
2. rows.parse_*_row — positional cells → typed row, or a RowRejection
3. pipeline.BulkImportPipeline — lookups, hashing, one UpsertOperation per row,
   progress events on the bus
4. store.SqlImportStore — all upserts in one transaction

Bad rows are counted and skipped; only a file with no usable rows at all
fails the request.
"""

from campus_portal.imports.pipeline import (
    IMPORT_SPECS,
    BulkImportPipeline,
    ImportProgress,
    ImportResult,
    NoValidRowsError,
    UpsertOperation,
)
from campus_portal.imports.workbook import SpreadsheetError, read_rows, read_rows_async

__all__ = [
    "IMPORT_SPECS",
    "BulkImportPipeline",
    "ImportProgress",
    "ImportResult",
    "NoValidRowsError",
    "SpreadsheetError",
    "UpsertOperation",
    "read_rows",
    "read_rows_async",
]
