"""Origin allow-list check applied before any other request processing."""
from __future__ import annotations
import logging
from typing import Optional, Sequence

from fastapi import Request
from fastapi.responses import PlainTextResponse

LOGGER = logging.getLogger("promptproxy.origin")

WILDCARD = "*"


def is_origin_allowed(origin: Optional[str], allowed: Sequence[str]) -> bool:
    """
    Decide whether a declared Origin may use the proxy.

    Requests without an Origin header come from non-browser clients and are
    admitted; the key stays server-side either way.

    Args:
        origin: Value of the Origin header, if any.
        allowed: Configured origins, or a list containing "*".
    """
    if not origin:
        return True
    if WILDCARD in allowed:
        return True
    return origin.rstrip("/") in allowed


def make_origin_guard(allowed: Sequence[str]):
    """Build an HTTP middleware that rejects disallowed origins with a bare 403."""
    allowed = tuple(allowed)

    async def origin_guard(request: Request, call_next):
        origin = request.headers.get("origin")
        if not is_origin_allowed(origin, allowed):
            LOGGER.warning("Rejected request from origin %s to %s", origin, request.url.path)
            return PlainTextResponse("Not allowed by CORS", status_code=403)
        return await call_next(request)

    return origin_guard
