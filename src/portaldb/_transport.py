"""HTTP transport for the repository contents API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from portaldb._constants import ACCEPT_HEADER, USER_AGENT
from portaldb._redact import redact_for_log
from portaldb.config import RemoteStoreConfig
from portaldb.exceptions import PortalTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the endpoint module.

    Returns ``(status, body)`` for every HTTP response, whatever the status;
    only network-level failures raise.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> tuple[int, Any]:
        ...


class ContentsTransport:
    """Authenticated JSON transport over an aiohttp session."""

    def __init__(
        self,
        config: RemoteStoreConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session

    def _headers(self, *, with_body: bool) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": ACCEPT_HEADER,
            "authorization": f"Bearer {self._config.token}",
            "user-agent": USER_AGENT,
        }
        if with_body:
            headers["content-type"] = "application/json"
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, str] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> tuple[int, Any]:
        """Send one request and return ``(status, decoded JSON body)``.

        Bodies that are empty or not JSON decode to ``None`` for error
        statuses; a 2xx response that is not JSON is a transport error.
        """
        url = f"{self._config.base_url}{endpoint}"
        body = json.dumps(payload) if payload is not None else None

        _logger.debug("%s %s", method, url)
        if self._config.api_trace_enabled and payload is not None:
            _logger.debug("%s %s payload=%s", method, url, redact_for_log(dict(payload)))

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                data=body,
                headers=self._headers(with_body=body is not None),
            ) as resp:
                status = resp.status
                text = await resp.text()
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise PortalTransportError(
                f"{method} {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc

        decoded: Any = None
        if text.strip():
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError as exc:
                if 200 <= status < 300:
                    raise PortalTransportError(
                        f"Invalid JSON from {endpoint}: {text[:200]}",
                        status_code=status,
                        endpoint=endpoint,
                    ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("%s %s status=%d body=%s", method, url, status, redact_for_log(decoded))

        return status, decoded
