"""Server-Sent Events — live notification stream for admin dashboards.

Learn: Each browser tab opens one long-lived GET /admin/events. The
connection walks a small state machine:

    CONNECTING ──open()──▶ OPEN ──close()──▶ CLOSED

open() queues the CONNECTION_ESTABLISHED acknowledgment, subscribes to
the NotificationBus and starts a heartbeat task. close() undoes all
three. It can be reached from several places at once (client gone,
failed write, full queue, server shutdown) so it is guarded to run once.

The bus callback never writes to the socket. It drops a formatted frame
into a bounded per-session queue and returns, and the response body
drains that queue. A client that stops reading fills its own queue and
gets disconnected; nobody else notices.

Heartbeats are SSE comment lines, ignored by EventSource but enough to
keep proxies from reaping an idle connection. They also surface dead
clients: on modern ASGI servers a failed write is the only disconnect
signal a streaming response gets.
"""

import asyncio
import json
import uuid
from enum import Enum
from typing import AsyncIterator, Callable, Mapping, Optional

import structlog
from starlette.requests import ClientDisconnect
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from campus_portal.events.models import Event, connection_established, now_ms
from campus_portal.realtime.bus import NotificationBus, Subscription

logger = structlog.get_logger()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Disable response buffering on nginx-style proxies
    "X-Accel-Buffering": "no",
}

_CLOSED = object()  # queue sentinel that ends frames()


def format_event(event: Event) -> str:
    return f"data: {json.dumps(event.to_dict(), default=str)}\n\n"


def format_heartbeat(timestamp: Optional[int] = None) -> str:
    return f": heartbeat {timestamp if timestamp is not None else now_ms()}\n\n"


class StreamState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class StreamSession:
    """One admin client's event stream."""

    def __init__(
        self,
        bus: NotificationBus,
        *,
        heartbeat_interval: float = 15.0,
        queue_size: int = 256,
        user_id: Optional[str] = None,
        on_open: Optional[Callable[["StreamSession"], None]] = None,
        on_close: Optional[Callable[["StreamSession"], None]] = None,
    ):
        self.id = uuid.uuid4().hex[:12]
        self.user_id = user_id
        self.state = StreamState.CONNECTING
        self.close_reason: Optional[str] = None
        self._bus = bus
        self._heartbeat_interval = heartbeat_interval
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._subscription: Optional[Subscription] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._on_open = on_open
        self._on_close = on_close
        self._log = logger.bind(stream_id=self.id, user_id=user_id)

    @property
    def heartbeat_task(self) -> Optional[asyncio.Task]:
        return self._heartbeat_task

    @property
    def pending_frames(self) -> int:
        return self._queue.qsize()

    # ─── Lifecycle ──────────────────────────────────────

    def open(self) -> None:
        """CONNECTING → OPEN. Must run inside the event loop."""
        if self.state is not StreamState.CONNECTING:
            raise RuntimeError(f"Cannot open a stream in state {self.state.value}")
        self.state = StreamState.OPEN
        self._enqueue(format_event(connection_established()))
        self._subscription = self._bus.subscribe(self._deliver)
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(), name=f"sse-heartbeat-{self.id}"
        )
        if self._on_open is not None:
            self._on_open(self)
        self._log.info("sse.opened")

    def close(self, reason: str = "client_disconnected") -> bool:
        """Move to CLOSED and release everything. Returns False if already closed."""
        if self.state is StreamState.CLOSED:
            return False
        self.state = StreamState.CLOSED
        self.close_reason = reason

        if self._subscription is not None:
            self._bus.unsubscribe(self._subscription)
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()
        self._wake_reader()

        if self._on_close is not None:
            self._on_close(self)
        self._log.info("sse.closed", reason=reason)
        return True

    # ─── Frames ─────────────────────────────────────────

    async def frames(self) -> AsyncIterator[str]:
        """Response body: yields SSE frames until the session closes."""
        if self.state is StreamState.CONNECTING:
            self.open()
        try:
            while True:
                frame = await self._queue.get()
                if frame is _CLOSED:
                    return
                yield frame
        except asyncio.CancelledError:
            self.close("client_disconnected")
            raise
        finally:
            self.close("stream_ended")

    def _deliver(self, event: Event) -> None:
        """Bus callback — queue the frame, never block."""
        if self.state is StreamState.OPEN:
            self._enqueue(format_event(event))

    def _enqueue(self, frame: str) -> bool:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self._log.warning("sse.queue_full", pending=self._queue.qsize())
            self.close("queue_full")
            return False
        return True

    def _wake_reader(self) -> None:
        # Pending frames are dropped on close; make room for the sentinel.
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()

    async def _heartbeat_loop(self) -> None:
        while self.state is StreamState.OPEN:
            await asyncio.sleep(self._heartbeat_interval)
            if self.state is not StreamState.OPEN or not self._enqueue(format_heartbeat()):
                return


class StreamSessionManager:
    """Creates stream sessions and tracks the open ones."""

    def __init__(
        self,
        bus: NotificationBus,
        *,
        heartbeat_interval: float = 15.0,
        queue_size: int = 256,
    ):
        self._bus = bus
        self._heartbeat_interval = heartbeat_interval
        self._queue_size = queue_size
        self._sessions: dict[str, StreamSession] = {}

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    def sessions(self) -> list[StreamSession]:
        return list(self._sessions.values())

    def create_session(self, user_id: Optional[str] = None) -> StreamSession:
        """New session in CONNECTING state; it registers itself once opened."""
        return StreamSession(
            self._bus,
            heartbeat_interval=self._heartbeat_interval,
            queue_size=self._queue_size,
            user_id=user_id,
            on_open=self._track,
            on_close=self._forget,
        )

    def close_all(self, reason: str = "server_shutdown") -> int:
        sessions = self.sessions()
        for session in sessions:
            session.close(reason)
        return len(sessions)

    def _track(self, session: StreamSession) -> None:
        self._sessions[session.id] = session

    def _forget(self, session: StreamSession) -> None:
        self._sessions.pop(session.id, None)


class EventStreamResponse(StreamingResponse):
    """StreamingResponse that always closes its session, whichever way it ends."""

    def __init__(
        self,
        session: StreamSession,
        headers: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(
            session.frames(),
            headers={**SSE_HEADERS, **(headers or {})},
            media_type="text/event-stream",
        )
        self.session = session

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except (OSError, ClientDisconnect):
            self.session.close("write_failed")
        finally:
            self.session.close("client_disconnected")
