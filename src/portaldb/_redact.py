"""Helpers for safe debug logging.

Two kinds of payload pass through the DEBUG logs: contents-API bodies,
whose ``content`` field is the base64-encoded document, and the document
itself, whose ``users`` each carry a plaintext password. Neither may be
logged verbatim.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MASK = "<redacted>"

# Keys masked wherever they appear in an API body
_SECRET_KEYS: frozenset[str] = frozenset({"password", "token", "authorization"})


def redact_document(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of a serialized document with user passwords masked."""
    redacted = dict(data)
    users = data.get("users")
    if isinstance(users, list):
        redacted["users"] = [
            {**user, "password": _MASK} if isinstance(user, Mapping) and "password" in user else user
            for user in users
        ]
    return redacted


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of an API body that is safe to log.

    A string ``content`` (the encoded document) is replaced by its length,
    document-shaped mappings lose their passwords, secret keys are masked
    at any depth, and long strings are truncated.
    """
    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, Mapping):
        if "users" in value:
            value = redact_document(value)
        redacted: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            if name.lower() in _SECRET_KEYS:
                redacted[name] = _MASK
            elif name == "content" and isinstance(item, str):
                redacted[name] = f"<base64:{len(item)} chars>"
            else:
                redacted[name] = redact_for_log(item, max_string=max_string)
        return redacted

    if isinstance(value, list):
        return [redact_for_log(item, max_string=max_string) for item in value]

    return value
