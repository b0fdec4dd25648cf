"""Test fixtures — a throwaway SQLite database and a fresh app per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own SQLite file (aiosqlite) with the schema created,
   so nothing leaks between tests and no database server is needed.
2. Each test gets its own app from create_app(bus=...), so the bus and the
   stream manager are fresh too. Tests subscribe to `bus` to see events.
3. get_db and the audit recorder are pointed at the test database.

Env vars are set before campus_portal is imported: bcrypt at 4 rounds
keeps password hashing fast, and the module-level engine never points
at a real server.
"""

import os

os.environ.setdefault("CAMPUS_BCRYPT_ROUNDS", "4")
os.environ.setdefault("CAMPUS_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import io

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_portal.api.deps import get_audit_recorder
from campus_portal.auth.dependencies import CurrentIdentity, get_current_user
from campus_portal.db.engine import build_engine, create_schema, get_db
from campus_portal.main import create_app
from campus_portal.realtime.bus import NotificationBus
from campus_portal.services.audit_service import AuditRecorder

ADMIN_ID = "00000000-0000-0000-0000-000000000001"


def make_xlsx(header, rows) -> bytes:
    """Build an in-memory workbook: header row, then data rows."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(header))
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


STUDENT_HEADER = ["Student ID", "Name", "Department ID", "Admission Year", "Roll Number", "Password"]
FACULTY_HEADER = ["Faculty ID", "Name", "Department ID", "Password"]


@pytest.fixture()
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'campus.db'}"


@pytest_asyncio.fixture()
async def engine(database_url):
    engine = build_engine(database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def bus():
    return NotificationBus()


@pytest.fixture()
def recorded(bus):
    """Every event published on the test bus, in order."""
    events = []
    bus.subscribe(events.append)
    return events


@pytest.fixture()
def app(bus):
    return create_app(bus=bus)


def _override_db(app, session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_recorder] = lambda: AuditRecorder(session_factory)


@pytest_asyncio.fixture()
async def client(app, session_factory):
    """HTTP client with the database and auth overridden for testing.

    Learn: We override get_current_user to return an admin identity so all
    protected routes work without real JWT tokens.
    """
    _override_db(app, session_factory)
    app.dependency_overrides[get_current_user] = lambda: CurrentIdentity(
        user_id=ADMIN_ID, role="admin"
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauthenticated_client(app, session_factory):
    """HTTP client WITHOUT auth override — for testing real JWT flows."""
    _override_db(app, session_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
