"""Bulk roster API — spreadsheet import, templates and exports.

Learn: POST /admin/bulk/{students|faculty} takes a multipart `file`:
- 201 with imported/skipped counts when at least one row was usable
- 400 when no file was sent or no row was usable
- 413 when the upload is over the size limit
- 500 when the file isn't a readable workbook or the batch write fails

Progress and completion events go out on the bus while the request is
running, so an admin dashboard with the event stream open sees the
counters move.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_portal.api.deps import get_audit_recorder, get_bus
from campus_portal.auth.dependencies import CurrentIdentity, get_current_user
from campus_portal.config import settings
from campus_portal.db.engine import get_db
from campus_portal.events.models import now_ms
from campus_portal.events.types import ImportTarget
from campus_portal.imports import (
    IMPORT_SPECS,
    BulkImportPipeline,
    NoValidRowsError,
    SpreadsheetError,
    read_rows_async,
)
from campus_portal.imports.store import SqlImportStore
from campus_portal.imports.workbook import XLSX_MEDIA_TYPE
from campus_portal.realtime.bus import NotificationBus
from campus_portal.schemas.admin import ImportSummary
from campus_portal.services.audit_service import AuditRecorder
from campus_portal.services.roster_export import (
    build_template,
    export_faculty,
    export_students,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/admin")


def _xlsx(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ─── Import ─────────────────────────────────────────────

@router.post("/bulk/{target}", response_model=ImportSummary, status_code=201)
async def bulk_import(
    target: ImportTarget,
    file: Optional[UploadFile] = File(None),
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Upsert a roster from an .xlsx upload (header row first)."""
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded.")

    data = await file.read()
    if len(data) > settings.import_max_upload_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail="File too large.")

    log = logger.bind(target=target.value, filename=file.filename, size=len(data))
    try:
        rows = await read_rows_async(data)
    except SpreadsheetError as e:
        log.warning("bulk_import.unreadable", error=str(e))
        raise HTTPException(status_code=500, detail="Error processing file.")

    pipeline = BulkImportPipeline(
        bus,
        SqlImportStore(db),
        audit,
        progress_every=settings.import_progress_every,
    )
    try:
        result = await pipeline.run(IMPORT_SPECS[target], rows, actor_id=identity.user_id)
    except NoValidRowsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        log.exception("bulk_import.write_failed")
        raise HTTPException(status_code=500, detail="Error writing imported records.")

    return ImportSummary(
        message=result.message,
        imported=result.imported,
        skipped=result.skipped,
        total=result.total,
        rejected_rows=[r.to_dict() for r in result.rejections],
    )


# ─── Templates ──────────────────────────────────────────

@router.get("/template/{target}")
async def download_template(target: ImportTarget):
    return _xlsx(build_template(target), f"{target.value}_template.xlsx")


# ─── Exports ────────────────────────────────────────────

@router.get("/export/students")
async def export_student_roster(db: AsyncSession = Depends(get_db)):
    return _xlsx(await export_students(db), f"students_export_{now_ms()}.xlsx")


@router.get("/export/faculty")
async def export_faculty_roster(db: AsyncSession = Depends(get_db)):
    return _xlsx(await export_faculty(db), f"faculty_export_{now_ms()}.xlsx")
