"""Admin API — departments, classes, student approval, audit log.

Learn: Routes handle HTTP concerns (status codes, error responses);
AcademicService handles the writes, the audit entry and the dashboard
event. Every route here sits behind require_admin (see api/__init__.py).
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campus_portal.api.deps import get_audit_recorder, get_bus
from campus_portal.auth.dependencies import CurrentIdentity, get_current_user
from campus_portal.db.engine import get_db
from campus_portal.realtime.bus import NotificationBus
from campus_portal.schemas.admin import (
    AuditLogPage,
    ClassCreate,
    ClassRead,
    DepartmentCreate,
    DepartmentRead,
    StudentApproval,
    StudentRead,
)
from campus_portal.services.academic_service import (
    AcademicService,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from campus_portal.services.audit_service import AuditRecorder, list_audit_logs

router = APIRouter(prefix="/admin")


def _svc(
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> AcademicService:
    return AcademicService(db, bus=bus, audit=audit)


# ─── Departments ────────────────────────────────────────

@router.get("/departments", response_model=list[DepartmentRead])
async def list_departments(svc: AcademicService = Depends(_svc)):
    return await svc.list_departments()


@router.post("/departments", response_model=DepartmentRead, status_code=201)
async def create_department(
    body: DepartmentCreate,
    svc: AcademicService = Depends(_svc),
    identity: CurrentIdentity = Depends(get_current_user),
):
    try:
        return await svc.create_department(
            body.did, body.name, body.hod, actor_id=identity.user_id
        )
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


# ─── Classes ────────────────────────────────────────────

@router.post("/classes", response_model=ClassRead, status_code=201)
async def create_class(
    body: ClassCreate,
    svc: AcademicService = Depends(_svc),
    identity: CurrentIdentity = Depends(get_current_user),
):
    try:
        return await svc.create_class(**body.model_dump(), actor_id=identity.user_id)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch("/classes/{class_id}/end", response_model=ClassRead)
async def end_class(
    class_id: uuid.UUID,
    svc: AcademicService = Depends(_svc),
    identity: CurrentIdentity = Depends(get_current_user),
):
    """Mark a class Ended without deleting it."""
    try:
        return await svc.end_class(class_id, actor_id=identity.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ─── Students ───────────────────────────────────────────

@router.patch("/students/{student_pk}/approve", response_model=StudentRead)
async def approve_student(
    student_pk: uuid.UUID,
    body: StudentApproval,
    svc: AcademicService = Depends(_svc),
    identity: CurrentIdentity = Depends(get_current_user),
):
    try:
        return await svc.approve_student(student_pk, body.approve, actor_id=identity.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ─── Audit log ──────────────────────────────────────────

@router.get("/audit-logs", response_model=AuditLogPage)
async def audit_logs(
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
):
    """Audit entries, newest first."""
    return await list_audit_logs(db, page=page, limit=limit)
