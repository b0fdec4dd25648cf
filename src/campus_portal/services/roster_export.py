"""Spreadsheet templates and roster exports.

Templates carry the exact column order the bulk import expects plus one
sample row. Exports resolve department codes to names and recompute the
year of study from the admission year, so an export taken in a later
calendar year shows the student's current year rather than the year
they were imported in.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_portal.db.models import Department, Faculty, Student
from campus_portal.events.types import ImportTarget
from campus_portal.imports.rows import derive_current_year
from campus_portal.imports.workbook import build_workbook

TEMPLATE_COLUMNS = {
    ImportTarget.STUDENTS: [
        ("Student ID", 20),
        ("Name", 30),
        ("Department ID", 16),
        ("Admission Year", 18),
        ("Roll Number", 16),
        ("Password", 20),
    ],
    ImportTarget.FACULTY: [
        ("Faculty ID", 20),
        ("Name", 30),
        ("Department ID", 20),
        ("Password", 20),
    ],
}

TEMPLATE_SAMPLES = {
    ImportTarget.STUDENTS: ["SID-001", "Alice Brown", "CSE", "2023", "001", "pass123"],
    ImportTarget.FACULTY: ["FAC-001", "John Doe", "CSE", "pass123"],
}

STUDENT_EXPORT_COLUMNS = [
    ("Student ID", 20),
    ("Name", 30),
    ("Department Name", 24),
    ("Department ID", 16),
    ("Admission Year", 16),
    ("Roll Number", 14),
    ("Current Year", 14),
    ("Approved", 15),
    ("Registration Date", 25),
]

FACULTY_EXPORT_COLUMNS = [
    ("Faculty ID", 20),
    ("Name", 30),
    ("Department", 20),
    ("Join Date", 25),
]


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    # Excel cells can't hold timezone-aware datetimes.
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def build_template(target: ImportTarget) -> bytes:
    title = "StudentsTemplate" if target is ImportTarget.STUDENTS else "FacultyTemplate"
    return build_workbook(title, TEMPLATE_COLUMNS[target], [TEMPLATE_SAMPLES[target]])


async def export_students(db: AsyncSession, today: Optional[date] = None) -> bytes:
    students = (
        await db.execute(select(Student).order_by(Student.student_id))
    ).scalars().all()
    departments = dict(
        (await db.execute(select(Department.did, Department.name))).tuples().all()
    )

    rows = []
    for s in students:
        current_year = s.current_year
        if s.admission_year:
            current_year = derive_current_year(s.admission_year, today) or current_year
        rows.append([
            s.student_id,
            s.name,
            departments.get(s.department, s.department or "") if s.department else "",
            s.department or "",
            s.admission_year or "",
            s.roll_number or "",
            current_year if current_year is not None else "",
            bool(s.is_approved),
            _naive(s.created_at),
        ])
    return build_workbook("Students", STUDENT_EXPORT_COLUMNS, rows)


async def export_faculty(db: AsyncSession) -> bytes:
    faculty = (
        await db.execute(select(Faculty).order_by(Faculty.faculty_id))
    ).scalars().all()
    rows = [[f.faculty_id, f.name, f.department, _naive(f.created_at)] for f in faculty]
    return build_workbook("Faculty", FACULTY_EXPORT_COLUMNS, rows)
