"""Auth API — login, student self-registration, token refresh.

Learn: Routes for the three roles:
- POST /auth/login → campus id + password + role → JWT tokens
- POST /auth/register-student → unapproved student, admins notified live
- POST /auth/refresh → refresh token → new token pair

Unknown ids and wrong passwords get the same 401 so the endpoint can't
be used to enumerate accounts.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_portal.api.deps import get_bus
from campus_portal.auth.jwt import (
    TokenError,
    create_access_token,
    create_refresh_token,
    verify_refresh_token,
)
from campus_portal.auth.password import verify_password
from campus_portal.db.engine import get_db
from campus_portal.db.models import Admin, Faculty, Student
from campus_portal.realtime.bus import NotificationBus
from campus_portal.schemas.auth import (
    LoggedInUser,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterStudentRequest,
    TokenResponse,
)
from campus_portal.services.academic_service import AcademicService, ConflictError

router = APIRouter(prefix="/auth")

# role → (model, natural id column)
_ACCOUNTS = {
    "admin": (Admin, Admin.admin_id),
    "faculty": (Faculty, Faculty.faculty_id),
    "student": (Student, Student.student_id),
}


def _tokens(user_id: str, role: str, display_id: str) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user_id, role),
        refresh_token=create_refresh_token(user_id, role),
        user=LoggedInUser(id=display_id, role=role),
    )


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login with campus id, password and role → JWT tokens."""
    model, id_column = _ACCOUNTS[body.role]
    result = await db.execute(select(model).where(id_column == body.id))
    user = result.scalars().first()

    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if body.role == "student" and not user.is_approved:
        raise HTTPException(status_code=403, detail="Student not approved yet")

    return _tokens(str(user.id), body.role, body.id)


# ─── Registration ────────────────────────────────────────


@router.post("/register-student", response_model=MessageResponse, status_code=201)
async def register_student(
    body: RegisterStudentRequest,
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
):
    """Create an unapproved student account."""
    svc = AcademicService(db, bus=bus)
    try:
        await svc.register_student(body.student_id, body.name, body.password)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return MessageResponse(message="Registered. Awaiting approval.")


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest):
    """Exchange a refresh token for a new token pair."""
    try:
        payload = verify_refresh_token(body.refresh_token)
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return _tokens(payload["sub"], payload["role"], payload["sub"])
