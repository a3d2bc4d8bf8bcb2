"""Data models for the portal document."""

from portaldb.models._base import PortalBaseModel, from_epoch_ms, to_epoch_ms
from portaldb.models.bug_request import BugRequest, BugType, RequestStatus
from portaldb.models.document import Document, DocumentStats
from portaldb.models.remote import RemoteSnapshot, RevisionToken
from portaldb.models.user import User, UserRole

__all__ = [
    "BugRequest",
    "BugType",
    "Document",
    "DocumentStats",
    "PortalBaseModel",
    "RemoteSnapshot",
    "RequestStatus",
    "RevisionToken",
    "User",
    "UserRole",
    "from_epoch_ms",
    "to_epoch_ms",
]
