"""Shared utility functions used across the service."""

from __future__ import annotations

import re
import secrets

DEFAULT_BASE_NAME = "document"
MAX_BASE_NAME_CHARS = 100

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_filename(filename: str | None) -> str:
    """Reduce a caller-supplied name to ``[A-Za-z0-9_-]`` for file-system use.

    Every other character becomes ``_``; an empty result falls back to
    ``document``. No extension is expected; one is added by the caller.
    """
    if not filename:
        return DEFAULT_BASE_NAME
    sanitized = _UNSAFE_FILENAME_CHARS.sub("_", filename)[:MAX_BASE_NAME_CHARS]
    return sanitized or DEFAULT_BASE_NAME


def new_job_id() -> str:
    """16 hex characters from 8 bytes of CSPRNG output."""
    return secrets.token_hex(8)
