#!/usr/bin/env python3
"""Check the remote store and dump the document it holds.

This script verifies that the configured repository is reachable, fetches
the stored document together with its revision, and prints a summary plus
the document JSON with passwords redacted.

Usage
-----
Set environment variables and run::

    export PORTALDB_REPO="owner/name"
    export PORTALDB_TOKEN="..."
    python scripts/dump_remote.py

Options::

    --branch NAME        Read from this branch instead of PORTALDB_BRANCH
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --verbose            Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from portaldb import PortalError, RemoteStoreClient, RemoteStoreConfig  # noqa: E402
from portaldb._redact import redact_document  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump the portal document held by the remote store.",
    )
    parser.add_argument("--branch", help="Branch to read (default: PORTALDB_BRANCH or main)")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.branch:
        overrides["branch"] = args.branch
    config = RemoteStoreConfig.from_env(**overrides)

    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "repo": config.repo,
        "branch": config.branch,
        "file_path": config.file_path,
    }

    async with RemoteStoreClient(config) as client:
        try:
            await client.test_connection()
        except PortalError as exc:
            print(f"Connection failed: {exc}", file=sys.stderr)
            sys.exit(1)
        snapshot = await client.fetch()

    document = snapshot.document
    result["revision"] = snapshot.revision
    result["document"] = redact_document(json.loads(document.to_json()))

    if args.json_mode or args.output:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
        return

    out: list[str] = [_section("portaldb dump_remote")]
    out.append(f"  repo      : {config.repo}@{config.branch}")
    out.append(f"  path      : {config.file_path}")
    out.append(f"  revision  : {snapshot.revision or '<absent>'}")
    out.append(f"  updated   : {document.last_updated}")
    out.append(_section("USERS"))
    for user in document.users:
        state = "expired" if user.is_expired(datetime.now(UTC)) else "active"
        expires = f"{user.expires_at:%Y-%m-%d}" if user.expires_at is not None else "never set"
        out.append(f"  {user.username:<20} {user.role:<6} {state:<8} expires {expires}")
    out.append(_section("BUG REQUESTS"))
    for request in document.bug_requests:
        out.append(
            f"  {request.id:<14} {request.bug_type.label:<14} {request.status:<10} "
            f"{request.username} {request.timestamp}"
        )
    print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
