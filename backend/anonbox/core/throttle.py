# anonbox/core/throttle.py

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from anonbox.core.config import get_settings
from anonbox.core.identity import client_address_from_headers


def sender_address(request: Request) -> str:
    """
    The address a request is attributed to: the throttle key and the input
    to the sender identity. Forwarding headers count only when
    TRUST_FORWARDED_HEADERS is set; otherwise the socket peer is used.
    """
    peer = get_remote_address(request)
    if not get_settings().TRUST_FORWARDED_HEADERS:
        return peer
    return client_address_from_headers(request.headers, fallback=peer)


# Coarse front-door throttle, per address and independent of recipient.
# The per-recipient limit lives in core/rate_limit.py.
limiter = Limiter(key_func=sender_address)


def ingest_limit() -> str:
    return get_settings().INGEST_THROTTLE


REGISTER_LIMIT = "10/minute"
