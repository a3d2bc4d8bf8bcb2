"""High-level async client for the remote document store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import aiohttp

from portaldb._api import contents as _contents_api
from portaldb._transport import ContentsTransport
from portaldb.config import RemoteStoreConfig
from portaldb.exceptions import PortalConnectionError, PortalError
from portaldb.models.document import Document
from portaldb.models.remote import RemoteSnapshot, RevisionToken

_logger = logging.getLogger(__name__)


def _default_commit_message() -> str:
    return f"Update database: {datetime.now(UTC).isoformat()}"


class RemoteStoreClient:
    """Async client that keeps one JSON document in a remote repository.

    Writes use optimistic concurrency: every :meth:`save` re-reads the
    file's current revision immediately before the conditional replace,
    so a concurrent writer's change is rejected instead of overwritten.
    No revision is ever cached between operations.

    Usage::

        async with RemoteStoreClient(config) as client:
            await client.test_connection()
            document = await client.load()
            await client.save(document)
    """

    def __init__(
        self,
        config: RemoteStoreConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: ContentsTransport | None = None

    @property
    def config(self) -> RemoteStoreConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RemoteStoreClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = ContentsTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    def _require_transport(self) -> ContentsTransport:
        if self._transport is None:
            raise PortalError("Client not initialized. Use 'async with RemoteStoreClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch(self) -> RemoteSnapshot:
        """Fetch the document together with its revision token."""
        return await _contents_api.fetch_document(self._config, self._require_transport())

    async def load(self) -> Document:
        """Fetch the document; an absent file yields an empty document."""
        snapshot = await self.fetch()
        return snapshot.document

    async def save(self, document: Document, *, message: str | None = None) -> RevisionToken | None:
        """Replace the remote document, guarded by its current revision.

        Raises
        ------
        RemoteWriteConflictError
            The file changed between the revision read and the replace.
        RemoteApiError
            Any other rejected write.
        PortalTransportError
            Network or authorization failure, including during the
            revision read.
        """
        transport = self._require_transport()
        revision = await _contents_api.fetch_revision(self._config, transport)
        if revision is None:
            _logger.debug("No remote revision for %s; creating file", self._config.file_path)

        return await _contents_api.put_document(
            self._config,
            transport,
            document,
            message=message or _default_commit_message(),
            revision=revision,
        )

    async def test_connection(self) -> None:
        """Check that the repository is reachable with the configured token.

        Raises
        ------
        PortalConnectionError
            On any failure; the underlying error is chained.
        """
        transport = self._require_transport()
        try:
            await _contents_api.fetch_repository(self._config, transport)
        except PortalError as exc:
            raise PortalConnectionError(f"Connection test failed: {exc}") from exc
        _logger.debug("Repository %s reachable", self._config.repo)
