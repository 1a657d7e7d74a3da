"""Shared-secret (x-api-key) dependency.

When FLY_API_KEY is unset the check is skipped entirely, so a deployment
without a secret is open to anyone who passes the origin allow-list.
"""

from __future__ import annotations

import secrets

from fastapi import Depends
from fastapi.security import APIKeyHeader

from latex_service.config import get_settings
from latex_service.exceptions import AuthError

API_KEY_HEADER = "x-api-key"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


async def require_api_key(api_key: str | None = Depends(api_key_header)) -> None:
    """Reject the request unless it carries the configured key."""
    expected = get_settings().api_key
    if not expected:
        return
    if api_key is None or not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise AuthError("Invalid or missing API key")
