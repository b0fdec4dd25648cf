"""Row parsing tests — cell normalization, required fields, year of study."""

from datetime import date, datetime

import pytest

from campus_portal.imports.rows import (
    FacultyRow,
    RowRejection,
    StudentRow,
    cell_text,
    derive_current_year,
    parse_faculty_row,
    parse_student_row,
)
from campus_portal.imports.workbook import SpreadsheetError, build_workbook, read_rows

from conftest import STUDENT_HEADER, make_xlsx


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, None),
        ("  ", None),
        (" S1 ", "S1"),
        (2023.0, "2023"),
        (12, "12"),
        (datetime(2023, 7, 1, 9, 30), "2023-07-01"),
    ],
)
def test_cell_text(value, expected):
    assert cell_text(value) == expected


def test_student_row_parsed():
    row = parse_student_row(2, ["S1", "Alice", "CSE", 2023.0, None, "pw"])
    assert isinstance(row, StudentRow)
    assert row.student_id == "S1"
    assert row.admission_year == "2023"
    assert row.roll_number is None


def test_student_row_short_is_padded():
    row = parse_student_row(2, ["S1", "Alice"])
    assert row == RowRejection(2, "password")


def test_student_row_missing_name_rejected():
    row = parse_student_row(7, ["S1", "", "CSE", "2023", "1", "pw"])
    assert isinstance(row, RowRejection)
    assert row.to_dict() == {"row": 7, "field": "name", "reason": "missing_required_field"}


def test_faculty_row_requires_department():
    assert parse_faculty_row(3, ["F1", "Bob", None, "pw"]) == RowRejection(3, "department")


def test_faculty_row_parsed():
    row = parse_faculty_row(3, ["F1", "Bob", "cse", "pw"])
    assert isinstance(row, FacultyRow)
    assert row.department == "cse"


@pytest.mark.parametrize(
    "admission_year, expected",
    [
        ("2023", 3),
        ("2023-24", 3),
        ("Batch of 2025", 1),
        ("2026", 1),  # not started yet: floor of 1
        ("1850", None),
        ("n/a", None),
    ],
)
def test_derive_current_year(admission_year, expected):
    assert derive_current_year(admission_year, today=date(2025, 9, 1)) == expected


# ═══════════════════════════════════════════════════════════
# Workbook reading
# ═══════════════════════════════════════════════════════════


def test_read_rows_skips_header_and_blank_rows():
    data = make_xlsx(
        STUDENT_HEADER,
        [
            ["S1", "Alice", "CSE", "2023", "1", "pw"],
            [None, None, None, None, None, None],
            ["S2", "Bob", "CSE", "2023", "2", "pw"],
        ],
    )
    rows = read_rows(data)
    assert [number for number, _ in rows] == [2, 4]
    assert rows[0][1][0] == "S1"


def test_read_rows_header_only():
    assert read_rows(make_xlsx(STUDENT_HEADER, [])) == []


def test_read_rows_rejects_garbage():
    with pytest.raises(SpreadsheetError):
        read_rows(b"definitely not a workbook")


def test_build_workbook_round_trips_header():
    data = build_workbook("Sheet", [("A", 10), ("B", 12)], [["x", 1]])
    assert read_rows(data) == [(2, ("x", 1))]
