"""Row validation and normalization.

Learn: Spreadsheet cells arrive as whatever openpyxl decoded: str, int,
float, datetime or None. cell_text() turns each into stripped text or
None, then every required column is checked explicitly. A row that fails
becomes a RowRejection naming the row and the missing column, instead of
silently vanishing.

Column layout (header row excluded):
    students: Student ID | Name | Department | Admission Year | Roll Number | Password
    faculty:  Faculty ID | Name | Department | Password
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Sequence, Union

MISSING_FIELD = "missing_required_field"

_YEAR = re.compile(r"(\d{4})")


@dataclass(frozen=True)
class RowRejection:
    row_number: int
    field: str
    reason: str = MISSING_FIELD

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row_number, "field": self.field, "reason": self.reason}


@dataclass(frozen=True)
class StudentRow:
    row_number: int
    student_id: str
    name: str
    password: str
    department: Optional[str] = None
    admission_year: Optional[str] = None
    roll_number: Optional[str] = None


@dataclass(frozen=True)
class FacultyRow:
    row_number: int
    faculty_id: str
    name: str
    department: str
    password: str


def cell_text(value: Any) -> Optional[str]:
    """Cell value as stripped text; None for empty cells."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)  # 2023.0 -> "2023"
    elif isinstance(value, datetime):
        value = value.date().isoformat()
    text = str(value).strip()
    return text or None


def _cells(values: Sequence[Any], width: int) -> list[Optional[str]]:
    padded = list(values[:width]) + [None] * max(0, width - len(values))
    return [cell_text(v) for v in padded]


def _first_missing(row: dict[str, Optional[str]], required: Sequence[str]) -> Optional[str]:
    for name in required:
        if row[name] is None:
            return name
    return None


def parse_student_row(
    row_number: int, values: Sequence[Any]
) -> Union[StudentRow, RowRejection]:
    student_id, name, department, admission_year, roll_number, password = _cells(values, 6)
    fields = {"student_id": student_id, "name": name, "password": password}
    missing = _first_missing(fields, ("student_id", "name", "password"))
    if missing:
        return RowRejection(row_number, missing)
    return StudentRow(
        row_number=row_number,
        student_id=student_id,
        name=name,
        password=password,
        department=department,
        admission_year=admission_year,
        roll_number=roll_number,
    )


def parse_faculty_row(
    row_number: int, values: Sequence[Any]
) -> Union[FacultyRow, RowRejection]:
    faculty_id, name, department, password = _cells(values, 4)
    fields = {
        "faculty_id": faculty_id,
        "name": name,
        "department": department,
        "password": password,
    }
    missing = _first_missing(fields, ("faculty_id", "name", "department", "password"))
    if missing:
        return RowRejection(row_number, missing)
    return FacultyRow(
        row_number=row_number,
        faculty_id=faculty_id,
        name=name,
        department=department,
        password=password,
    )


def derive_current_year(admission_year: str, today: Optional[date] = None) -> Optional[int]:
    """Year of study from an admission year like "2023" or "2023-24".

    Uses the first 4-digit number; years outside 1900-2100 are ignored.
    Returns None when nothing usable is found.
    """
    match = _YEAR.search(admission_year)
    if not match:
        return None
    start = int(match.group(1))
    if not 1900 <= start <= 2100:
        return None
    today = today or date.today()
    return max(1, today.year - start + 1)
