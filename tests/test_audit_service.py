"""Audit recorder tests — persistence, best-effort failure, paging."""

import pytest

from campus_portal.services.audit_service import AuditAction, AuditRecorder, list_audit_logs


@pytest.mark.asyncio
async def test_record_persists_entry(session_factory, db_session):
    recorder = AuditRecorder(session_factory)

    entry = await recorder.record("admin-1", AuditAction.END_CLASS, {"classId": "c1"})

    assert entry is not None
    page = await list_audit_logs(db_session)
    assert page["total"] == 1
    assert page["data"][0].action == "END_CLASS"
    assert page["data"][0].details == {"classId": "c1"}


@pytest.mark.asyncio
async def test_unknown_action_is_swallowed(session_factory, db_session):
    recorder = AuditRecorder(session_factory)

    assert await recorder.record("admin-1", "DROP_EVERYTHING") is None
    assert (await list_audit_logs(db_session))["total"] == 0


@pytest.mark.asyncio
async def test_storage_failure_is_swallowed():
    def broken_factory():
        raise RuntimeError("database unavailable")

    recorder = AuditRecorder(broken_factory)
    assert await recorder.record("admin-1", AuditAction.CREATE_CLASS, {}) is None


@pytest.mark.asyncio
async def test_limit_is_clamped(session_factory, db_session):
    recorder = AuditRecorder(session_factory)
    for i in range(3):
        await recorder.record("admin-1", AuditAction.CREATE_CLASS, {"n": i})

    page = await list_audit_logs(db_session, page=0, limit=500)
    assert page["page"] == 1
    assert page["limit"] == 100
    assert [e.details["n"] for e in page["data"]] == [2, 1, 0]

    empty = await list_audit_logs(db_session, page=5, limit=2)
    assert empty["data"] == []
    assert empty["total_pages"] == 2
