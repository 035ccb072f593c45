"""Small helpers shared across the server."""

from datetime import datetime, timezone

API_PREFIX = "/api"


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with millisecond precision, e.g. 2026-01-02T03:04:05.678Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def under_prefix(path: str, prefix: str) -> bool:
    """True when ``path`` is ``prefix`` itself or lies below it (segment-aware)."""
    prefix = prefix.rstrip("/")
    if not prefix:
        return path.startswith("/")
    return path == prefix or path.startswith(prefix + "/")


def is_api_path(path: str) -> bool:
    return under_prefix(path, API_PREFIX)
