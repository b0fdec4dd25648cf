"""Audit trail — append-only log of admin actions.

Learn: Every mutating admin action leaves one AuditLog row saying who did
what. The row is written *after* the action commits, through its own
session, so an audit entry never describes something that didn't happen
and never shares a transaction with the action itself.

Recording is best-effort. If the audit table is unreachable or the
action name is unknown, the failure is logged and swallowed: a broken
audit trail must not turn a successful import into a 500.
"""

import math
from enum import Enum
from typing import Any, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_portal.db.models import AuditLog

logger = structlog.get_logger()


class AuditAction(str, Enum):
    CREATE_DEPARTMENT = "CREATE_DEPARTMENT"
    CREATE_CLASS = "CREATE_CLASS"
    END_CLASS = "END_CLASS"
    APPROVE_STUDENT = "APPROVE_STUDENT"
    BULK_IMPORT_STUDENTS = "BULK_IMPORT_STUDENTS"
    BULK_IMPORT_FACULTY = "BULK_IMPORT_FACULTY"


class AuditRecorder:
    """Writes audit entries; never raises."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def record(
        self,
        actor_id: str,
        action: AuditAction | str,
        details: Optional[dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Persist one entry. Returns it, or None if recording failed."""
        try:
            entry = AuditLog(
                actor_id=str(actor_id),
                action=AuditAction(action).value,
                details=dict(details or {}),
            )
            async with self._session_factory() as session:
                session.add(entry)
                await session.commit()
            return entry
        except Exception:
            logger.exception(
                "audit.record_failed",
                actor_id=str(actor_id),
                action=str(getattr(action, "value", action)),
            )
            return None


async def list_audit_logs(
    db: AsyncSession, page: int = 1, limit: int = 20
) -> dict[str, Any]:
    """Newest-first page of audit entries.

    page is 1-based; limit is clamped to 1..100.
    """
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    total = (await db.execute(select(func.count()).select_from(AuditLog))).scalar_one()
    result = await db.execute(
        select(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "data": list(result.scalars().all()),
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit),
    }
