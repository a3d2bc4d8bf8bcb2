"""Remote store configuration for portaldb."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from portaldb._constants import BASE_URL, DEFAULT_BRANCH, DEFAULT_FILE_PATH
from portaldb.exceptions import PortalConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class RemoteStoreConfig:
    """Where and how the remote document is stored.

    Parameters
    ----------
    repo : str
        Repository identifier in ``owner/name`` form.
    token : str
        Bearer credential for the contents API.
    file_path : str
        Path of the JSON document inside the repository.
    branch : str
        Branch the document is read from and committed to.
    base_url : str
        API base URL. Defaults to the public GitHub API.
    api_trace_enabled : bool
        Log redacted request/response bodies at DEBUG level.
    """

    repo: str
    token: str
    file_path: str = DEFAULT_FILE_PATH
    branch: str = DEFAULT_BRANCH
    base_url: str = BASE_URL
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        repo = self.repo.strip().strip("/")
        if repo.count("/") != 1 or not all(repo.split("/")):
            raise PortalConfigError(f"repo must look like 'owner/name', got {self.repo!r}")
        if not self.token.strip():
            raise PortalConfigError("token must be non-empty")
        file_path = self.file_path.strip().lstrip("/")
        if not file_path:
            raise PortalConfigError("file_path must be non-empty")
        object.__setattr__(self, "repo", repo)
        object.__setattr__(self, "file_path", file_path)
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> RemoteStoreConfig:
        """Create configuration from environment variables.

        Reads ``PORTALDB_REPO``, ``PORTALDB_TOKEN`` and the optional
        ``PORTALDB_*`` variables. Explicit keyword arguments override
        environment values.

        Raises
        ------
        PortalConfigError
            If ``repo`` or ``token`` is available from neither source.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "PORTALDB_REPO": "repo",
            "PORTALDB_TOKEN": "token",
            "PORTALDB_FILE_PATH": "file_path",
            "PORTALDB_BRANCH": "branch",
            "PORTALDB_BASE_URL": "base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("PORTALDB_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        missing = [name for name in ("repo", "token") if not config_kwargs.get(name)]
        if missing:
            raise PortalConfigError(f"missing configuration: {', '.join(missing)}")

        return cls(**config_kwargs)
