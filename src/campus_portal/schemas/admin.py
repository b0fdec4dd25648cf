"""Pydantic schemas for admin routes.

Learn: Pydantic v2 models validate request/response data. Separate
"Create" schemas (input) from "Read" schemas (output) for clean APIs.
"""

import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# ─── Departments ────────────────────────────────────────

class DepartmentCreate(BaseModel):
    did: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    hod: str = Field(..., min_length=1, max_length=100)


class DepartmentRead(BaseModel):
    id: uuid.UUID
    did: str
    name: str
    hod: str

    model_config = {"from_attributes": True}


# ─── Classes ────────────────────────────────────────────

class ClassCreate(BaseModel):
    class_code: str = Field(..., min_length=1, max_length=50)
    class_name: str = Field(..., min_length=1, max_length=100)
    department: str = Field(..., min_length=1, max_length=20)
    term_year: str = Field(..., min_length=4, max_length=20)
    odd_even: Literal["Odd", "Even"]
    semester: int = Field(..., ge=1, le=8)


class ClassRead(BaseModel):
    id: uuid.UUID
    class_code: str
    class_name: str
    department: str
    term_year: str
    odd_even: str
    semester: int
    status: str
    ended_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ─── Students ───────────────────────────────────────────

class StudentApproval(BaseModel):
    approve: bool


class StudentRead(BaseModel):
    id: uuid.UUID
    student_id: str
    name: str
    is_approved: bool
    department: Optional[str] = None
    admission_year: Optional[str] = None
    roll_number: Optional[str] = None
    current_year: Optional[int] = None

    model_config = {"from_attributes": True}


# ─── Bulk import ────────────────────────────────────────

class ImportSummary(BaseModel):
    message: str
    imported: int
    skipped: int
    total: int
    rejected_rows: list[dict[str, Any]] = []


# ─── Audit log ──────────────────────────────────────────

class AuditLogRead(BaseModel):
    id: int
    actor_id: str
    action: str
    details: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogPage(BaseModel):
    data: list[AuditLogRead]
    page: int
    limit: int
    total: int
    total_pages: int
