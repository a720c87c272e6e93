"""Rate limiting for the unauthenticated surface (login, registration, invitation tokens)."""

from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from flowspace.core.config import settings

# Applied per client to every endpoint reachable without a session
PUBLIC_ENDPOINT_LIMIT = "20/minute"


def _forwarded_client(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded_for.split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = request.headers.get("X-Real-IP", "").strip()
    return real_ip or None


def client_key(request: Request) -> str:
    """Key requests by client address.

    Proxy headers are only honoured with ``BEHIND_PROXY`` set, otherwise any
    caller could pick their own bucket.
    """
    if settings.BEHIND_PROXY:
        forwarded = _forwarded_client(request)
        if forwarded:
            return forwarded
    return get_remote_address(request)


limiter = Limiter(key_func=client_key, default_limits=["100/minute"])
