"""Bulk import API tests — uploads through to the database.

Learn: These run the whole stack: multipart upload → openpyxl → pipeline →
SQLite upserts → audit entry → bus events. `recorded` collects whatever
the request published on the test app's bus.
"""

import pytest
from sqlalchemy import func, select

from campus_portal.db.models import AuditLog, Department, Faculty, Student
from campus_portal.events.types import EventType

from conftest import ADMIN_ID, FACULTY_HEADER, STUDENT_HEADER, make_xlsx

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(data: bytes, name: str = "roster.xlsx"):
    return {"file": (name, data, XLSX)}


async def _seed_department(session_factory, did="CSE", name="Computer Science"):
    async with session_factory() as s:
        s.add(Department(did=did, name=name, hod="Dr. Rao"))
        await s.commit()


@pytest.mark.asyncio
async def test_import_students(client, session_factory, recorded):
    await _seed_department(session_factory)
    data = make_xlsx(
        STUDENT_HEADER,
        [
            ["S1", "Alice", "Computer Science", "2023", "01", "pw1"],
            ["S2", "Bob", "cse", 2024, None, "pw2"],
            ["S3", None, "CSE", "2024", None, "pw3"],
        ],
    )

    r = await client.post("/api/v1/admin/bulk/students", files=_upload(data))

    assert r.status_code == 201
    body = r.json()
    assert body["imported"] == 2
    assert body["skipped"] == 1
    assert body["total"] == 3
    assert body["message"] == "2 students imported successfully."
    assert body["rejected_rows"] == [
        {"row": 4, "field": "name", "reason": "missing_required_field"}
    ]

    async with session_factory() as s:
        students = {
            st.student_id: st for st in (await s.execute(select(Student))).scalars()
        }
    assert set(students) == {"S1", "S2"}
    assert students["S1"].department == "CSE"
    assert students["S1"].roll_number == "01"
    assert students["S1"].is_approved is True
    assert students["S2"].department == "CSE"
    assert students["S2"].roll_number == "S2"
    assert students["S2"].admission_year == "2024"
    assert students["S2"].password_hash != "pw2"

    types = [e.type for e in recorded]
    assert types[-1] is EventType.BULK_IMPORT_COMPLETED
    assert EventType.BULK_IMPORT_PROGRESS in types


@pytest.mark.asyncio
async def test_import_twice_is_idempotent(client, session_factory):
    data = make_xlsx(
        FACULTY_HEADER,
        [["F1", "Bob", "CSE", "pw"], ["F2", "Eve", "ECE", "pw"]],
    )

    r1 = await client.post("/api/v1/admin/bulk/faculty", files=_upload(data))
    r2 = await client.post("/api/v1/admin/bulk/faculty", files=_upload(data))

    assert r1.status_code == 201
    assert r2.status_code == 201
    async with session_factory() as s:
        count = (await s.execute(select(func.count()).select_from(Faculty))).scalar_one()
    assert count == 2


@pytest.mark.asyncio
async def test_reimport_updates_existing_record(client, session_factory):
    first = make_xlsx(FACULTY_HEADER, [["F1", "Bob", "CSE", "pw"]])
    second = make_xlsx(FACULTY_HEADER, [["F1", "Robert", "ECE", "pw"]])

    await client.post("/api/v1/admin/bulk/faculty", files=_upload(first))
    await client.post("/api/v1/admin/bulk/faculty", files=_upload(second))

    async with session_factory() as s:
        faculty = (await s.execute(select(Faculty))).scalars().all()
    assert len(faculty) == 1
    assert faculty[0].name == "Robert"
    assert faculty[0].department == "ECE"


@pytest.mark.asyncio
async def test_duplicate_ids_in_one_file_last_row_wins(client, session_factory):
    data = make_xlsx(
        STUDENT_HEADER,
        [["S1", "First", None, None, None, "pw"], ["S1", "Second", None, None, None, "pw"]],
    )
    r = await client.post("/api/v1/admin/bulk/students", files=_upload(data))
    assert r.status_code == 201

    async with session_factory() as s:
        students = (await s.execute(select(Student))).scalars().all()
    assert [st.name for st in students] == ["Second"]


@pytest.mark.asyncio
async def test_header_only_file_is_rejected(client, session_factory, recorded):
    r = await client.post(
        "/api/v1/admin/bulk/students", files=_upload(make_xlsx(STUDENT_HEADER, []))
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "No valid students data found in file."
    assert not any(e.type is EventType.BULK_IMPORT_COMPLETED for e in recorded)

    async with session_factory() as s:
        audits = (await s.execute(select(func.count()).select_from(AuditLog))).scalar_one()
    assert audits == 0


@pytest.mark.asyncio
async def test_all_rows_invalid_is_rejected(client):
    data = make_xlsx(FACULTY_HEADER, [["F1", "Bob", None, "pw"]])
    r = await client.post("/api/v1/admin/bulk/faculty", files=_upload(data))
    assert r.status_code == 400
    assert r.json()["detail"] == "No valid faculty data found in file."


@pytest.mark.asyncio
async def test_unreadable_file_is_server_error(client):
    r = await client.post(
        "/api/v1/admin/bulk/students", files=_upload(b"not a spreadsheet", "x.xlsx")
    )
    assert r.status_code == 500
    assert r.json()["detail"] == "Error processing file."


@pytest.mark.asyncio
async def test_missing_file(client):
    r = await client.post("/api/v1/admin/bulk/students")
    assert r.status_code == 400
    assert r.json()["detail"] == "No file uploaded."


@pytest.mark.asyncio
async def test_unknown_target(client):
    data = make_xlsx(STUDENT_HEADER, [])
    r = await client.post("/api/v1/admin/bulk/parents", files=_upload(data))
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_import_writes_one_audit_entry(client, session_factory):
    data = make_xlsx(FACULTY_HEADER, [["F1", "Bob", "CSE", "pw"], ["F2", None, "CSE", "pw"]])
    await client.post("/api/v1/admin/bulk/faculty", files=_upload(data))

    async with session_factory() as s:
        entries = (await s.execute(select(AuditLog))).scalars().all()
    assert len(entries) == 1
    assert entries[0].actor_id == ADMIN_ID
    assert entries[0].action == "BULK_IMPORT_FACULTY"
    assert entries[0].details == {"count": 1, "skipped": 1, "total": 2}


@pytest.mark.asyncio
async def test_import_requires_admin(unauthenticated_client):
    data = make_xlsx(FACULTY_HEADER, [["F1", "Bob", "CSE", "pw"]])
    r = await unauthenticated_client.post("/api/v1/admin/bulk/faculty", files=_upload(data))
    assert r.status_code == 401
