"""Real-time infrastructure — in-process bus + Server-Sent Events.

Learn: Events flow through two hops:
1. Services → NotificationBus.publish (synchronous, in-process fan-out)
2. Bus → StreamSession queue → SSE response → admin dashboard

The bus is created by the app factory and handed to whoever needs it;
there is no module-level instance. Delivery is best-effort and only
reaches subscribers connected at publish time.
"""

from campus_portal.realtime.bus import NotificationBus, Subscription
from campus_portal.realtime.sse import (
    EventStreamResponse,
    StreamSession,
    StreamSessionManager,
    StreamState,
)

__all__ = [
    "EventStreamResponse",
    "NotificationBus",
    "StreamSession",
    "StreamSessionManager",
    "StreamState",
    "Subscription",
]
