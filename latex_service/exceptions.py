"""Typed exception hierarchy for the LaTeX service.

Raise these instead of bare HTTPException so that:
- Service code is testable without a FastAPI request context
- Status codes and error categories are declared in one place
- main.py's AppError handler converts them to consistent JSON responses
"""

from __future__ import annotations


class AppError(Exception):
    """Base application error — caught by FastAPI exception handler in main.py."""

    status_code: int = 500
    error: str = "Internal server error"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        error: str | None = None,
        details: str | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.error = error or self.__class__.error
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InternalError(AppError):
    """Unexpected failure: file-system errors, unhandled exceptions."""


class InputError(AppError):
    """Missing, empty or malformed request payload."""

    status_code = 400
    error = "Invalid request body"
    message = "The request body could not be processed"


class PayloadTooLargeError(InputError):
    """Request body exceeds the configured size cap."""

    status_code = 413
    error = "Payload too large"
    message = "The request body exceeds the maximum allowed size"


class AuthError(AppError):
    """Origin not allow-listed, or API key missing or wrong."""

    status_code = 403
    error = "Forbidden"
    message = "Access denied"


class NotFoundError(AppError):
    """No route matches the request."""

    status_code = 404
    error = "Not found"
    message = "The requested endpoint does not exist"


class RateLimitError(AppError):
    """Client exceeded the request cap for the current window."""

    status_code = 429
    error = "Too many requests"
    message = "Rate limit exceeded. Please try again later."


class CompileError(AppError):
    """The external compiler exited non-zero, timed out, or could not be started."""

    status_code = 500
    error = "LaTeX compilation failed"
    message = "The provided LaTeX code could not be compiled"


class ArtifactMissingError(AppError):
    """The compiler reported success but left no PDF in the output directory."""

    status_code = 500
    error = "No PDF generated"
    message = "Compilation succeeded but no PDF was produced"
