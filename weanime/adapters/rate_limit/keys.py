"""Client key derivation for rate limiting.

Clients are identified by IP address as reported by the proxies in front of
the service. Requests carrying none of the forwarded-IP headers all map to
the shared ``"unknown"`` key, so they draw from a single quota bucket.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

# Checked in order; the first header present wins.
FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"
VERCEL_FORWARDED_FOR_HEADER = "x-vercel-forwarded-for"


def get_client_ip(request: Any) -> str:
    """Return the client IP for ``request``.

    Prefers the first entry of ``X-Forwarded-For``, then ``X-Real-IP``, then
    ``X-Vercel-Forwarded-For``. Falls back to ``"unknown"`` instead of
    raising when none is usable.

    Args:
        request: Any object with a case-insensitive ``headers`` mapping
            (Starlette ``Request`` in production).

    Returns:
        str: Client IP or ``"unknown"``.
    """

    headers = getattr(request, "headers", None) or {}

    forwarded = headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get(REAL_IP_HEADER)
    if real_ip and real_ip.strip():
        return real_ip.strip()

    vercel_ip = headers.get(VERCEL_FORWARDED_FOR_HEADER)
    if vercel_ip and vercel_ip.strip():
        return vercel_ip.strip()

    logger.debug(
        "rate_limit.key_fallback",
        extra={"reason": "no_forwarded_ip_header", "client_key": UNKNOWN_CLIENT},
    )
    return UNKNOWN_CLIENT


def hash_key(key: str) -> str:
    """Hash a client key for logging without exposing the address."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def anonymize_key(key: str) -> str:
    """Truncate a client key for display in stats output."""
    return f"{key[:8]}..."
