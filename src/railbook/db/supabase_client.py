from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


def get_client(url: str, key: str) -> Any:
    """Build a Supabase client for the given project."""
    try:
        from supabase import create_client
    except Exception as exc:  # pragma: no cover - import path only exercised in supabase mode
        raise RuntimeError(
            "supabase package is required for RAILBOOK_STORAGE_BACKEND=supabase"
        ) from exc

    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set for the supabase backend")
    return create_client(url, key)


def fetch_table_columns(url: str, key: str, timeout: float = 10.0) -> dict[str, frozenset[str]] | None:
    """Read every exposed table's column set from the PostgREST OpenAPI document.

    Returns None when the document is unavailable (some projects hide it from
    non-service keys); callers then fall back to probing individual tables.
    """
    endpoint = f"{url.rstrip('/')}/rest/v1/"
    headers = {"apikey": key, "Authorization": f"Bearer {key}", "Accept": "application/openapi+json"}
    try:
        response = httpx.get(endpoint, headers=headers, timeout=timeout)
        response.raise_for_status()
        document = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.info("PostgREST schema document unavailable: %s", exc)
        return None
    definitions = document.get("definitions") or {}
    return {
        table: frozenset((definition.get("properties") or {}).keys())
        for table, definition in definitions.items()
        if isinstance(definition, dict)
    }
