"""Repository contents endpoints.

Endpoints:
  - GET /repos/{repo}/contents/{path}?ref={branch}
  - PUT /repos/{repo}/contents/{path}
  - GET /repos/{repo}

The document is stored base64-encoded; its ``sha`` is the revision token
threaded into the conditional replace.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from portaldb._constants import (
    AUTH_FAILURE_STATUS_CODES,
    CONFLICT_STATUS_CODES,
    UNPROCESSABLE_STATUS,
)
from portaldb._transport import Transport
from portaldb.config import RemoteStoreConfig
from portaldb.exceptions import (
    PortalTransportError,
    RemoteApiError,
    RemoteWriteConflictError,
)
from portaldb.models.document import Document
from portaldb.models.remote import RemoteSnapshot, RevisionToken

_logger = logging.getLogger(__name__)


def contents_endpoint(config: RemoteStoreConfig) -> str:
    return f"/repos/{config.repo}/contents/{quote(config.file_path)}"


def repository_endpoint(config: RemoteStoreConfig) -> str:
    return f"/repos/{config.repo}"


def encode_document(document: Document) -> str:
    """Serialize *document* and base64-encode its UTF-8 bytes."""
    return base64.b64encode(document.to_json().encode("utf-8")).decode("ascii")


def decode_document(content: str, *, endpoint: str) -> Document:
    """Decode a base64 ``content`` field back into a document.

    The API wraps base64 output in newlines; they are ignored.
    """
    try:
        raw = base64.b64decode("".join(content.split()), validate=True)
        return Document.from_json(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValidationError) as exc:
        raise RemoteApiError(
            f"{endpoint} content is not a valid document: {exc}",
            endpoint=endpoint,
        ) from exc


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        message = body.get("message")
        if message:
            return str(message)
    return ""


def _raise_for_status(*, method: str, endpoint: str, status: int, body: Any) -> None:
    message = _error_message(body)
    if status in AUTH_FAILURE_STATUS_CODES:
        raise PortalTransportError(
            f"{method} {endpoint} unauthorized: status={status} message={message}",
            status_code=status,
            endpoint=endpoint,
        )
    if method == "PUT" and (
        status in CONFLICT_STATUS_CODES or (status == UNPROCESSABLE_STATUS and "sha" in message.lower())
    ):
        raise RemoteWriteConflictError(
            f"{endpoint} changed since its revision was read: status={status} message={message}",
            status_code=status,
            endpoint=endpoint,
        )
    raise RemoteApiError(
        f"{method} {endpoint} failed: status={status} message={message}",
        status_code=status,
        endpoint=endpoint,
    )


async def _get_file_entry(config: RemoteStoreConfig, transport: Transport) -> dict[str, Any] | None:
    """GET the file entry; ``None`` when the file does not exist."""
    endpoint = contents_endpoint(config)
    status, body = await transport.request("GET", endpoint, params={"ref": config.branch})

    if status == 404:
        _logger.debug("Remote document absent endpoint=%s branch=%s", endpoint, config.branch)
        return None
    if status != 200:
        _raise_for_status(method="GET", endpoint=endpoint, status=status, body=body)

    # A directory listing comes back as a list.
    if not isinstance(body, dict) or not isinstance(body.get("sha"), str):
        raise RemoteApiError(
            f"{endpoint} did not return a file entry",
            status_code=status,
            endpoint=endpoint,
        )
    return body


async def fetch_revision(config: RemoteStoreConfig, transport: Transport) -> RevisionToken | None:
    """Read only the current revision token of the document file."""
    entry = await _get_file_entry(config, transport)
    if entry is None:
        return None
    revision: RevisionToken = entry["sha"]
    return revision


async def fetch_document(config: RemoteStoreConfig, transport: Transport) -> RemoteSnapshot:
    """Fetch the document and its current revision.

    A missing file is not an error: it yields an empty document with no
    revision.
    """
    endpoint = contents_endpoint(config)
    body = await _get_file_entry(config, transport)
    if body is None:
        return RemoteSnapshot(document=Document(), revision=None)

    content = body.get("content")
    if not isinstance(content, str) or not content.strip():
        raise RemoteApiError(
            f"{endpoint} returned no inline content (encoding={body.get('encoding')})",
            status_code=200,
            endpoint=endpoint,
        )

    document = decode_document(content, endpoint=endpoint)
    _logger.debug(
        "Remote document fetched users=%d requests=%d",
        len(document.users),
        len(document.bug_requests),
    )
    return RemoteSnapshot(document=document, revision=body["sha"])


async def put_document(
    config: RemoteStoreConfig,
    transport: Transport,
    document: Document,
    *,
    message: str,
    revision: RevisionToken | None,
) -> RevisionToken | None:
    """Replace the stored document, conditional on *revision*.

    ``revision`` must be omitted only when the file is known not to exist.
    Returns the revision of the newly written file when the API reports it.
    """
    endpoint = contents_endpoint(config)
    payload: dict[str, Any] = {
        "message": message,
        "content": encode_document(document),
        "branch": config.branch,
    }
    if revision is not None:
        payload["sha"] = revision

    status, body = await transport.request("PUT", endpoint, payload=payload)
    if status not in (200, 201):
        _raise_for_status(method="PUT", endpoint=endpoint, status=status, body=body)

    new_revision: RevisionToken | None = None
    if isinstance(body, dict) and isinstance(body.get("content"), dict):
        sha = body["content"].get("sha")
        new_revision = sha if isinstance(sha, str) else None
    _logger.debug("Remote document written status=%d created=%s", status, revision is None)
    return new_revision


async def fetch_repository(config: RemoteStoreConfig, transport: Transport) -> dict[str, Any]:
    """Read repository metadata; raises on any non-200 response."""
    endpoint = repository_endpoint(config)
    status, body = await transport.request("GET", endpoint)
    if status != 200:
        _raise_for_status(method="GET", endpoint=endpoint, status=status, body=body)
    return body if isinstance(body, dict) else {}
