"""Template and export download tests."""

import io
from datetime import date

import pytest
from openpyxl import load_workbook

from campus_portal.db.models import Department, Faculty, Student
from campus_portal.services.roster_export import export_students

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _sheet(content: bytes):
    workbook = load_workbook(io.BytesIO(content))
    return workbook.active


@pytest.mark.asyncio
async def test_student_template(client):
    r = await client.get("/api/v1/admin/template/students")
    assert r.status_code == 200
    assert r.headers["content-type"] == XLSX
    assert 'filename="students_template.xlsx"' in r.headers["content-disposition"]

    sheet = _sheet(r.content)
    assert sheet.title == "StudentsTemplate"
    header = [c.value for c in sheet[1]]
    assert header == [
        "Student ID", "Name", "Department ID", "Admission Year", "Roll Number", "Password",
    ]
    assert sheet.max_row == 2


@pytest.mark.asyncio
async def test_faculty_template(client):
    r = await client.get("/api/v1/admin/template/faculty")
    sheet = _sheet(r.content)
    assert sheet.title == "FacultyTemplate"
    assert [c.value for c in sheet[1]] == ["Faculty ID", "Name", "Department ID", "Password"]


@pytest.mark.asyncio
async def test_template_round_trips_through_import(client):
    template = (await client.get("/api/v1/admin/template/faculty")).content
    r = await client.post(
        "/api/v1/admin/bulk/faculty",
        files={"file": ("faculty_template.xlsx", template, XLSX)},
    )
    assert r.status_code == 201
    assert r.json()["imported"] == 1


@pytest.mark.asyncio
async def test_export_faculty(client, db_session):
    db_session.add(Faculty(faculty_id="F1", name="Bob", department="CSE", password_hash="x"))
    await db_session.commit()

    r = await client.get("/api/v1/admin/export/faculty")
    assert r.status_code == 200
    assert "faculty_export_" in r.headers["content-disposition"]

    rows = list(_sheet(r.content).iter_rows(min_row=2, values_only=True))
    assert rows[0][:3] == ("F1", "Bob", "CSE")


@pytest.mark.asyncio
async def test_export_students_resolves_department_and_year(db_session):
    db_session.add(Department(did="CSE", name="Computer Science", hod="Dr. Rao"))
    db_session.add(
        Student(
            student_id="S1",
            name="Alice",
            password_hash="x",
            is_approved=True,
            department="CSE",
            admission_year="2023",
            roll_number="01",
            current_year=1,  # stored at import, now stale
        )
    )
    await db_session.commit()

    content = await export_students(db_session, today=date(2025, 9, 1))

    rows = list(_sheet(content).iter_rows(min_row=2, values_only=True))
    assert rows[0][:8] == ("S1", "Alice", "Computer Science", "CSE", "2023", "01", 3, True)


@pytest.mark.asyncio
async def test_export_requires_admin(unauthenticated_client):
    r = await unauthenticated_client.get("/api/v1/admin/export/students")
    assert r.status_code == 401
