"""Bug request model."""

from __future__ import annotations

from enum import StrEnum

from portaldb.models._base import PortalBaseModel


class BugType(StrEnum):
    CRASH_ANDROID = "crash-android"
    DELAY_MAKER = "delay-maker"
    CRASH_IOS = "crash-ios"

    @property
    def label(self) -> str:
        """Human-readable name shown in request lists."""
        return _BUG_TYPE_LABELS[self]


_BUG_TYPE_LABELS: dict[BugType, str] = {
    BugType.CRASH_ANDROID: "Crash Android",
    BugType.DELAY_MAKER: "Delay Maker",
    BugType.CRASH_IOS: "Crash iOS",
}


class RequestStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"


class BugRequest(PortalBaseModel):
    """A request submitted by a regular user and processed by an admin.

    ``id`` is the creation time in epoch milliseconds, bumped when needed
    so ids stay strictly increasing within a document. ``timestamp`` is a
    display string, not parsed back. Stored targets are taken as written;
    blank input is rejected when a request is recorded, not when a stored
    document is read back.
    """

    id: int
    target_number: str
    bug_type: BugType
    username: str
    status: RequestStatus = RequestStatus.PENDING
    timestamp: str = ""

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING
