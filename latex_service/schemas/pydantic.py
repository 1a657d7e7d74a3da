"""Pydantic v2 models for all request/response shapes."""

from __future__ import annotations

from pydantic import BaseModel, Field, StrictStr

from latex_service.utils import DEFAULT_BASE_NAME


# ── Compile ────────────────────────────────────────────────────────────
class CompileRequest(BaseModel):
    latex: StrictStr = Field(min_length=1)
    # Sanitized before any file-system use; see utils.sanitize_filename.
    filename: StrictStr | None = DEFAULT_BASE_NAME


# ── Health ─────────────────────────────────────────────────────────────
class HealthOut(BaseModel):
    status: str
    service: str
    timestamp: str
    engine: str


# ── Errors ─────────────────────────────────────────────────────────────
class ErrorOut(BaseModel):
    error: str
    message: str
    details: str | None = None
