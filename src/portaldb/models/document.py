"""The persisted document: every user and every bug request."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portaldb.models.bug_request import BugRequest
from portaldb.models.user import User


class Document(BaseModel):
    """Unit of persistence and of remote synchronization.

    Both the durable mirror and the remote store treat a document as one
    blob; users and requests are never versioned separately.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    users: list[User] = Field(default_factory=list)
    bug_requests: list[BugRequest] = Field(default_factory=list)
    last_updated: datetime | None = None

    def to_json(self) -> str:
        """Serialize with camelCase keys, indented like the stored file."""
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, text: str | bytes) -> Document:
        return cls.model_validate_json(text)

    def find_user(self, username: str) -> User | None:
        for user in self.users:
            if user.username == username:
                return user
        return None

    def find_request(self, request_id: int) -> BugRequest | None:
        for request in self.bug_requests:
            if request.id == request_id:
                return request
        return None


class DocumentStats(BaseModel):
    """Counters shown on the admin database-info panel."""

    model_config = ConfigDict(frozen=True)

    user_count: int
    request_count: int
    pending_count: int
