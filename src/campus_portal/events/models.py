"""Notification events.

Learn: An Event is ephemeral. It lives only as long as one publish call.
Nothing is stored or replayed; a dashboard that connects late simply
queries the API for current state.

The event type decides the payload keys, so events are built through the
factory functions below rather than by hand. On the wire an event is one
flat JSON object: {"type", "target"?, ...payload, "timestamp"}.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from campus_portal.events.types import EventType, ImportTarget


def now_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Event:
    type: EventType
    payload: dict[str, Any] = field(default_factory=dict)
    target: Optional[str] = None
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value}
        if self.target is not None:
            data["target"] = self.target
        data.update(self.payload)
        data["timestamp"] = self.timestamp
        return data


def connection_established(message: str = "Live event stream connected.") -> Event:
    return Event(EventType.CONNECTION_ESTABLISHED, {"message": message})


def import_progress(
    target: ImportTarget, processed: int, total: int, skipped: int
) -> Event:
    return Event(
        EventType.BULK_IMPORT_PROGRESS,
        {"processed": processed, "total": total, "skipped": skipped},
        target=target.value,
    )


def import_completed(
    target: ImportTarget, imported: int, total: int, skipped: int
) -> Event:
    return Event(
        EventType.BULK_IMPORT_COMPLETED,
        {"imported": imported, "total": total, "skipped": skipped},
        target=target.value,
    )


def class_ended(class_id: str, class_name: str) -> Event:
    return Event(EventType.CLASS_ENDED, {"classId": class_id, "className": class_name})


def student_pending_approval(student_id: str, record_id: str) -> Event:
    return Event(
        EventType.NEW_STUDENT_PENDING_APPROVAL,
        {"studentId": student_id, "id": record_id},
    )
