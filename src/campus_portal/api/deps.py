"""Shared route dependencies.

Learn: The bus and the stream manager hang off app.state, where
create_app() put them. Routes reach them through these functions, never
through a module global, so every app instance (and every test) gets its
own.
"""

from fastapi import Request

from campus_portal.db.engine import async_session_factory
from campus_portal.realtime.bus import NotificationBus
from campus_portal.realtime.sse import StreamSessionManager
from campus_portal.services.audit_service import AuditRecorder


def get_bus(request: Request) -> NotificationBus:
    return request.app.state.bus


def get_stream_manager(request: Request) -> StreamSessionManager:
    return request.app.state.stream_manager


def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder(async_session_factory)
