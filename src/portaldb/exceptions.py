"""Custom exception hierarchy for portaldb."""

from __future__ import annotations


class PortalError(Exception):
    """Base exception for all portaldb errors."""


class PortalConfigError(PortalError):
    """Invalid or missing configuration."""


class PortalValidationError(PortalError):
    """Bad or missing input (empty target, unknown bug type, ...)."""


class PortalAuthError(PortalError):
    """Authentication against the user list failed."""

    def __init__(self, message: str, *, username: str = "") -> None:
        self.username = username
        super().__init__(message)


class InvalidCredentialsError(PortalAuthError):
    """No user matches the supplied username and password."""


class AccountExpiredError(PortalAuthError):
    """Credentials matched a non-admin user whose expiry has passed."""


class DuplicateUsernameError(PortalError):
    """A user with this exact username already exists."""

    def __init__(self, message: str, *, username: str = "") -> None:
        self.username = username
        super().__init__(message)


class RequestNotFoundError(PortalError):
    """No bug request carries the given id."""

    def __init__(self, message: str, *, request_id: int | None = None) -> None:
        self.request_id = request_id
        super().__init__(message)


class PortalTransportError(PortalError):
    """HTTP-level failure (network, authorization, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class RemoteApiError(PortalError):
    """Contents API returned a non-success response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class RemoteWriteConflictError(RemoteApiError):
    """Replace rejected because the revision token is stale or missing.

    The remote document changed after its revision was read (or exists
    while no revision was supplied).  Callers decide whether to re-fetch
    and retry; the client never does so on its own.
    """


class PortalConnectionError(PortalError):
    """Repository is unreachable with the configured credentials."""
