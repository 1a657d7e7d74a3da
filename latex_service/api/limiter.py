"""Process-wide rate limiter, keyed by client address.

Limits are enforced by ``SlowAPIASGIMiddleware`` before routing, so a request
counts toward the quota whether or not its body turns out to be valid.
Routes that must never be limited are marked with ``@limiter.exempt``.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from latex_service.config import get_settings


def compile_rate_limit() -> str:
    """Limit string, read per request so it follows current settings."""
    return get_settings().rate_limit


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[compile_rate_limit],
    storage_uri=get_settings().rate_limit_storage_uri,
)
