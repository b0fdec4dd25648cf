"""Academic service — departments, classes and student approval.

Learn: Service layer separates business logic from HTTP routing.
Routes translate the exceptions below into status codes; services commit
their own writes, then audit, then notify. That order matters: the
audit entry and the dashboard event both describe a change that has
already been committed.
"""

import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_portal.auth.password import hash_password_async
from campus_portal.db.models import Department, SchoolClass, Student, utcnow
from campus_portal.events.models import class_ended, student_pending_approval
from campus_portal.realtime.bus import NotificationBus
from campus_portal.services.audit_service import AuditAction, AuditRecorder


class NotFoundError(Exception):
    pass


class ConflictError(Exception):
    pass


class InvalidStateError(Exception):
    pass


class AcademicService:
    def __init__(
        self,
        db: AsyncSession,
        bus: Optional[NotificationBus] = None,
        audit: Optional[AuditRecorder] = None,
    ):
        self.db = db
        self.bus = bus
        self.audit = audit

    async def _audit(self, actor_id: str, action: AuditAction, details: dict) -> None:
        if self.audit is not None:
            await self.audit.record(actor_id, action, details)

    # ─── Departments ────────────────────────────────────

    async def list_departments(self) -> list[Department]:
        result = await self.db.execute(select(Department).order_by(Department.did))
        return list(result.scalars().all())

    async def create_department(
        self, did: str, name: str, hod: str, actor_id: str
    ) -> Department:
        did = did.strip().upper()
        name = name.strip()
        existing = await self.db.execute(
            select(Department.id).where(
                or_(Department.did == did, func.lower(Department.name) == name.lower())
            )
        )
        if existing.scalars().first():
            raise ConflictError("Department ID or name already exists")

        department = Department(did=did, name=name, hod=hod.strip())
        self.db.add(department)
        await self.db.commit()

        await self._audit(
            actor_id, AuditAction.CREATE_DEPARTMENT, {"did": did, "name": name}
        )
        return department

    # ─── Classes ────────────────────────────────────────

    async def create_class(
        self,
        *,
        class_code: str,
        class_name: str,
        department: str,
        term_year: str,
        odd_even: str,
        semester: int,
        actor_id: str,
    ) -> SchoolClass:
        existing = await self.db.execute(
            select(SchoolClass.id).where(
                SchoolClass.class_code == class_code, SchoolClass.semester == semester
            )
        )
        if existing.scalars().first():
            raise ConflictError("Class already exists for this semester")

        cls = SchoolClass(
            class_code=class_code,
            class_name=class_name,
            department=department.strip().upper(),
            term_year=term_year,
            odd_even=odd_even,
            semester=semester,
        )
        self.db.add(cls)
        await self.db.commit()

        await self._audit(
            actor_id,
            AuditAction.CREATE_CLASS,
            {"classId": str(cls.id), "className": cls.class_name},
        )
        return cls

    async def end_class(self, class_id: uuid.UUID, actor_id: str) -> SchoolClass:
        """Archive a class and tell connected dashboards."""
        cls = await self.db.get(SchoolClass, class_id)
        if cls is None:
            raise NotFoundError("Class not found")
        if cls.status == "Ended":
            raise InvalidStateError("Class already ended")

        cls.status = "Ended"
        cls.ended_at = utcnow()
        await self.db.commit()

        await self._audit(
            actor_id,
            AuditAction.END_CLASS,
            {"classId": str(cls.id), "className": cls.class_name},
        )
        if self.bus is not None:
            self.bus.publish(class_ended(str(cls.id), cls.class_name))
        return cls

    # ─── Students ───────────────────────────────────────

    async def approve_student(
        self, student_pk: uuid.UUID, approve: bool, actor_id: str
    ) -> Student:
        student = await self.db.get(Student, student_pk)
        if student is None:
            raise NotFoundError("Student not found")

        student.is_approved = approve
        await self.db.commit()

        await self._audit(
            actor_id,
            AuditAction.APPROVE_STUDENT,
            {"studentId": student.student_id, "approved": approve},
        )
        return student

    async def register_student(self, student_id: str, name: str, password: str) -> Student:
        """Self-registration: stored unapproved, admins are notified live."""
        student_id = student_id.strip()
        existing = await self.db.execute(
            select(Student.id).where(Student.student_id == student_id)
        )
        if existing.scalars().first():
            raise ConflictError("Student already exists")

        student = Student(
            student_id=student_id,
            name=name.strip(),
            password_hash=await hash_password_async(password),
            is_approved=False,
            roll_number=student_id,
        )
        self.db.add(student)
        await self.db.commit()

        if self.bus is not None:
            self.bus.publish(student_pending_approval(student.student_id, str(student.id)))
        return student
