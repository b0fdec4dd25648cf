"""Live event stream endpoint.

Learn: GET /admin/events?token=JWT is consumed by the browser's
EventSource, which can't send an Authorization header; hence the query
parameter. The header still works and wins when both are present.

The handler only creates the session. The session opens (ack frame, bus
subscription, heartbeat) when the server starts sending the body, and
EventStreamResponse closes it however the response ends.
"""

from fastapi import APIRouter, Depends

from campus_portal.api.deps import get_stream_manager
from campus_portal.auth.dependencies import CurrentIdentity, require_stream_admin
from campus_portal.realtime.sse import EventStreamResponse, StreamSessionManager

router = APIRouter(prefix="/admin")


@router.get("/events")
async def admin_event_stream(
    identity: CurrentIdentity = Depends(require_stream_admin),
    manager: StreamSessionManager = Depends(get_stream_manager),
):
    session = manager.create_session(user_id=identity.user_id)
    return EventStreamResponse(session)
