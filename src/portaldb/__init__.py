"""portaldb - Document store and remote sync for the request portal."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("portaldb")
except PackageNotFoundError:
    __version__ = "0+local"
from portaldb.client import RemoteStoreClient
from portaldb.config import RemoteStoreConfig
from portaldb.exceptions import (
    AccountExpiredError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    PortalAuthError,
    PortalConfigError,
    PortalConnectionError,
    PortalError,
    PortalTransportError,
    PortalValidationError,
    RemoteApiError,
    RemoteWriteConflictError,
    RequestNotFoundError,
)
from portaldb.mirror import JsonFileMirror, MemoryMirror, Mirror
from portaldb.models import (
    BugRequest,
    BugType,
    Document,
    DocumentStats,
    RemoteSnapshot,
    RequestStatus,
    User,
    UserRole,
)
from portaldb.store import PortalStore

__all__ = [
    "__version__",
    "AccountExpiredError",
    "BugRequest",
    "BugType",
    "Document",
    "DocumentStats",
    "DuplicateUsernameError",
    "InvalidCredentialsError",
    "JsonFileMirror",
    "MemoryMirror",
    "Mirror",
    "PortalAuthError",
    "PortalConfigError",
    "PortalConnectionError",
    "PortalError",
    "PortalStore",
    "PortalTransportError",
    "PortalValidationError",
    "RemoteApiError",
    "RemoteSnapshot",
    "RemoteStoreClient",
    "RemoteStoreConfig",
    "RemoteWriteConflictError",
    "RequestNotFoundError",
    "RequestStatus",
    "User",
    "UserRole",
]
