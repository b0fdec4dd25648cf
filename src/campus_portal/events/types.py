"""Event type constants.

Learn: Centralizing event types prevents typos and makes it easy to
discover every notification the admin dashboard can receive. The values
go over the wire unchanged, so the frontend matches on these strings.
"""

from enum import Enum


class EventType(str, Enum):
    # ─── Stream lifecycle ───────────────────────────────────
    CONNECTION_ESTABLISHED = "CONNECTION_ESTABLISHED"

    # ─── Bulk import ────────────────────────────────────────
    BULK_IMPORT_PROGRESS = "BULK_IMPORT_PROGRESS"
    BULK_IMPORT_COMPLETED = "BULK_IMPORT_COMPLETED"

    # ─── Academic domain ────────────────────────────────────
    CLASS_ENDED = "CLASS_ENDED"
    NEW_STUDENT_PENDING_APPROVAL = "NEW_STUDENT_PENDING_APPROVAL"


class ImportTarget(str, Enum):
    """Which roster a bulk import writes to. Doubles as the event `target`."""

    STUDENTS = "students"
    FACULTY = "faculty"
