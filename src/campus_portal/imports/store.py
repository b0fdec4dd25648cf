"""SQLAlchemy-backed storage for bulk imports.

Learn: Upserts are INSERT ... ON CONFLICT (natural id) DO UPDATE, built
with the dialect's own insert() (PostgreSQL in production, SQLite in
tests). Columns missing from an operation's update are left untouched on
conflict, so re-importing a row without a department keeps the one
already stored.

Statements run one per row inside a single transaction. A multi-row
VALUES would be faster but PostgreSQL rejects it when the same id appears
twice in one file; row by row, the later row simply wins.
"""

from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_portal.db.models import Department, Faculty, Student, utcnow
from campus_portal.events.types import ImportTarget
from campus_portal.imports.pipeline import UpsertOperation

_TABLES = {
    ImportTarget.STUDENTS: (Student, "student_id"),
    ImportTarget.FACULTY: (Faculty, "faculty_id"),
}

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlImportStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_department(self, value: str) -> Optional[str]:
        """Match by name (case-insensitive) first, then by code."""
        text = value.strip()
        if not text:
            return None

        by_name = await self.db.execute(
            select(Department.did).where(func.lower(Department.name) == text.lower())
        )
        did = by_name.scalars().first()
        if did:
            return did

        by_code = await self.db.execute(
            select(Department.did).where(Department.did == text.upper())
        )
        return by_code.scalars().first()

    async def bulk_upsert(
        self, target: ImportTarget, operations: Sequence[UpsertOperation]
    ) -> int:
        model, key = _TABLES[target]
        dialect = self.db.get_bind().dialect.name
        try:
            insert = _INSERTS[dialect]
        except KeyError:
            raise NotImplementedError(f"Upsert not supported on {dialect}")

        now = utcnow()
        try:
            for op in operations:
                if op.upsert:
                    stmt = (
                        insert(model)
                        .values(**op.filter, **op.update)
                        .on_conflict_do_update(
                            index_elements=[key],
                            set_={**op.update, "updated_at": now},
                        )
                    )
                else:
                    stmt = (
                        update(model)
                        .where(getattr(model, key) == op.key)
                        .values(**op.update, updated_at=now)
                    )
                await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return len(operations)
