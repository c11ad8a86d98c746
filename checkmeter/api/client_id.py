"""Best-effort client identity for usage quotas.

This is not a security boundary: every client behind the same proxy shares
one identity, and the cookie is whatever the browser sends.
"""

from __future__ import annotations

from fastapi import Request

UNKNOWN_CLIENT = "unknown"
CLIENT_ID_COOKIE = "client-id"
_MAX_LENGTH = 128


def resolve_client_id(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = sanitize_client_id(forwarded.split(",")[0])
        if candidate:
            return candidate
    cookie = sanitize_client_id(request.cookies.get(CLIENT_ID_COOKIE))
    if cookie:
        return cookie
    real_ip = sanitize_client_id(request.headers.get("x-real-ip"))
    if real_ip:
        return real_ip
    return UNKNOWN_CLIENT


def sanitize_client_id(raw: str | None) -> str | None:
    """Strip whitespace and control characters; return ``None`` when nothing usable remains."""

    if raw is None:
        return None
    candidate = "".join(ch for ch in raw.strip() if ch.isprintable())
    if not candidate:
        return None
    return candidate[:_MAX_LENGTH]


__all__ = ["CLIENT_ID_COOKIE", "UNKNOWN_CLIENT", "resolve_client_id", "sanitize_client_id"]
