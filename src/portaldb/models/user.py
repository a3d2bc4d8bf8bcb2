"""Portal user account model."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import field_validator

from portaldb.models._base import PortalBaseModel, from_epoch_ms, to_epoch_ms


class UserRole(StrEnum):
    ADMIN = "admin"
    USER = "user"


class User(PortalBaseModel):
    """A portal account.

    Parameters
    ----------
    username : str
        Unique, case-sensitive login name.
    password : str
        Plaintext password, compared verbatim at login.
    role : UserRole
        ``admin`` accounts are never subject to expiry.
    expiry : int or None
        Expiry instant in epoch milliseconds. ``None`` (an unparsable day
        count saved by older clients) means the account has already lapsed.
    created_at : int
        Creation instant in epoch milliseconds.
    """

    username: str
    password: str
    role: UserRole = UserRole.USER
    expiry: int | None
    created_at: int = 0

    @field_validator("username")
    @classmethod
    def _require_username(cls, value: str) -> str:
        if not value:
            raise ValueError("username must be non-empty")
        return value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def expires_at(self) -> datetime | None:
        if self.expiry is None:
            return None
        return from_epoch_ms(self.expiry)

    def is_expired(self, now: datetime) -> bool:
        """Whether the account has lapsed at *now*; admins never lapse."""
        if self.is_admin:
            return False
        if self.expiry is None:
            return True
        return self.expiry < to_epoch_ms(now)
