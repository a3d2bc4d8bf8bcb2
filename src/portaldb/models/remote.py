"""Remote document snapshot model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from portaldb.models.document import Document

#: Opaque content revision returned by the contents API. Never parsed,
#: only handed back on the next conditional write.
RevisionToken = str


class RemoteSnapshot(BaseModel):
    """Result of fetching the remote document.

    Parameters
    ----------
    document : Document
        Decoded document, empty when the file does not exist yet.
    revision : str or None
        Revision token of the stored file, ``None`` when it does not exist.
    """

    model_config = ConfigDict(frozen=True)

    document: Document
    revision: RevisionToken | None = None

    @property
    def exists(self) -> bool:
        return self.revision is not None
