"""Remembered login state kept in the durable mirror."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from portaldb.models.user import User


class LoginSession(BaseModel):
    """The user remembered between runs, with the time they logged in.

    Parameters
    ----------
    user : User
        Snapshot of the account at login time.  It is re-checked against
        the current document when the session is restored.
    logged_in_at : datetime
        When :meth:`PortalStore.login` succeeded.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user: User
    logged_in_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text: str) -> LoginSession:
        return cls.model_validate_json(text)
