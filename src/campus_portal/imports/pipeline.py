"""Bulk import pipeline — rows in, idempotent upserts out.

Learn: The pipeline walks the rows in order. For each valid row it
resolves the department, hashes the password and appends one
UpsertOperation keyed by the natural id (student_id / faculty_id).
Invalid rows only bump the `skipped` counter.

Progress is published to the bus every `progress_every` rows and on the
last row, so `processed + skipped == total` holds in the final progress
event. When the loop is done:

    no operations   → NoValidRowsError, nothing written
    otherwise       → one batched write, one audit entry, one
                      BULK_IMPORT_COMPLETED event

Running the same file twice leaves the same rows behind: every operation
is an upsert on the natural id. Audit entries and events are not
deduplicated.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, Union

import structlog

from campus_portal.auth.password import hash_password_async
from campus_portal.events.models import import_completed, import_progress
from campus_portal.events.types import ImportTarget
from campus_portal.imports.rows import (
    FacultyRow,
    RowRejection,
    StudentRow,
    derive_current_year,
    parse_faculty_row,
    parse_student_row,
)
from campus_portal.imports.workbook import Row
from campus_portal.realtime.bus import NotificationBus
from campus_portal.services.audit_service import AuditAction, AuditRecorder

logger = structlog.get_logger()


@dataclass(frozen=True)
class UpsertOperation:
    """Insert-or-update of one record, matched on `filter`."""

    filter: dict[str, Any]
    update: dict[str, Any]
    upsert: bool = True

    @property
    def key(self) -> Any:
        return next(iter(self.filter.values()))


@dataclass
class ImportProgress:
    total: int
    processed: int = 0
    skipped: int = 0

    @property
    def seen(self) -> int:
        return self.processed + self.skipped


@dataclass
class ImportResult:
    target: ImportTarget
    imported: int
    skipped: int
    total: int
    rejections: list[RowRejection] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"{self.imported} {self.target.value} imported successfully."


class NoValidRowsError(Exception):
    """The upload contained no row that could be imported."""

    def __init__(self, target: ImportTarget, rejections: Sequence[RowRejection] = ()):
        self.target = target
        self.rejections = list(rejections)
        super().__init__(f"No valid {target.value} data found in file.")


class ImportStore(Protocol):
    async def resolve_department(self, value: str) -> Optional[str]:
        """Department code for a code or name, or None if unknown."""
        ...

    async def bulk_upsert(
        self, target: ImportTarget, operations: Sequence[UpsertOperation]
    ) -> int:
        ...


Hasher = Callable[[str], Awaitable[str]]


# ─── Per-roster rules ─────────────────────────────────────


class ImportSpec:
    """How one roster's rows are parsed and turned into upserts."""

    target: ImportTarget
    audit_action: AuditAction

    def parse(self, row_number: int, values: Sequence[Any]) -> Union[Any, RowRejection]:
        raise NotImplementedError

    async def build(self, row: Any, pipeline: "BulkImportPipeline") -> UpsertOperation:
        raise NotImplementedError


class StudentImport(ImportSpec):
    target = ImportTarget.STUDENTS
    audit_action = AuditAction.BULK_IMPORT_STUDENTS

    def parse(self, row_number, values):
        return parse_student_row(row_number, values)

    async def build(self, row: StudentRow, pipeline: "BulkImportPipeline") -> UpsertOperation:
        update: dict[str, Any] = {
            "name": row.name,
            "password_hash": await pipeline.hasher(row.password),
            "is_approved": True,  # bulk-imported students skip the approval queue
            "roll_number": row.roll_number or row.student_id,
        }
        if row.department:
            department = await pipeline.store.resolve_department(row.department)
            if department:
                update["department"] = department
        if row.admission_year:
            update["admission_year"] = row.admission_year
            current_year = derive_current_year(row.admission_year, pipeline.today)
            if current_year is not None:
                update["current_year"] = current_year
        return UpsertOperation(filter={"student_id": row.student_id}, update=update)


class FacultyImport(ImportSpec):
    target = ImportTarget.FACULTY
    audit_action = AuditAction.BULK_IMPORT_FACULTY

    def parse(self, row_number, values):
        return parse_faculty_row(row_number, values)

    async def build(self, row: FacultyRow, pipeline: "BulkImportPipeline") -> UpsertOperation:
        # Faculty always carry a department; keep the raw code when unknown.
        department = await pipeline.store.resolve_department(row.department)
        return UpsertOperation(
            filter={"faculty_id": row.faculty_id},
            update={
                "name": row.name,
                "department": department or row.department.upper(),
                "password_hash": await pipeline.hasher(row.password),
            },
        )


IMPORT_SPECS: dict[ImportTarget, ImportSpec] = {
    ImportTarget.STUDENTS: StudentImport(),
    ImportTarget.FACULTY: FacultyImport(),
}


# ─── Pipeline ─────────────────────────────────────────────


class BulkImportPipeline:
    def __init__(
        self,
        bus: NotificationBus,
        store: ImportStore,
        audit: Optional[AuditRecorder] = None,
        *,
        progress_every: int = 25,
        hasher: Hasher = hash_password_async,
        today: Optional[date] = None,
    ):
        self.bus = bus
        self.store = store
        self.audit = audit
        self.progress_every = max(progress_every, 1)
        self.hasher = hasher
        self.today = today

    async def run(
        self, spec: ImportSpec, rows: Sequence[Row], actor_id: str
    ) -> ImportResult:
        log = logger.bind(target=spec.target.value, actor_id=actor_id)
        progress = ImportProgress(total=len(rows))
        operations: list[UpsertOperation] = []
        rejections: list[RowRejection] = []

        for row_number, values in rows:
            parsed = spec.parse(row_number, values)
            if isinstance(parsed, RowRejection):
                progress.skipped += 1
                rejections.append(parsed)
                log.debug("bulk_import.row_skipped", row=row_number, field=parsed.field)
            else:
                operations.append(await spec.build(parsed, self))
                progress.processed += 1

            if progress.seen % self.progress_every == 0 or progress.seen == progress.total:
                self.bus.publish(
                    import_progress(
                        spec.target, progress.processed, progress.total, progress.skipped
                    )
                )

        if not operations:
            log.info("bulk_import.no_valid_rows", total=progress.total)
            raise NoValidRowsError(spec.target, rejections)

        await self.store.bulk_upsert(spec.target, operations)

        if self.audit is not None:
            await self.audit.record(
                actor_id,
                spec.audit_action,
                {
                    "count": len(operations),
                    "skipped": progress.skipped,
                    "total": progress.total,
                },
            )

        self.bus.publish(
            import_completed(spec.target, len(operations), progress.total, progress.skipped)
        )
        log.info(
            "bulk_import.completed",
            imported=len(operations),
            skipped=progress.skipped,
            total=progress.total,
        )
        return ImportResult(
            target=spec.target,
            imported=len(operations),
            skipped=progress.skipped,
            total=progress.total,
            rejections=rejections,
        )
