"""Request-gate middleware (pure ASGI — compatible with CORSMiddleware).

Each class short-circuits with the same JSON error shape the exception
handlers in main.py produce, since errors raised here never reach them.
"""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from latex_service.exceptions import AppError, AuthError, InternalError, PayloadTooLargeError

logger = logging.getLogger(__name__)


def error_response(exc: AppError, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


class SecurityHeadersMiddleware:
    """Add security headers to all responses."""

    _HEADERS = [
        (b"x-content-type-options", b"nosniff"),
        (b"x-frame-options", b"DENY"),
        (b"x-xss-protection", b"0"),
        (b"strict-transport-security", b"max-age=31536000; includeSubDomains"),
        (b"referrer-policy", b"no-referrer"),
        (b"cross-origin-resource-policy", b"same-origin"),
    ]

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", [])) + self._HEADERS
                message = {**message, "headers": headers}
            await send(message)

        await self.app(scope, receive, send_with_headers)


class OriginGuardMiddleware:
    """Reject requests whose Origin header is not on the allow-list.

    Requests without an Origin header (curl, server-to-server) pass.
    """

    def __init__(self, app: ASGIApp, allowed_origins: Iterable[str]) -> None:
        self.app = app
        self.allowed_origins = frozenset(allowed_origins)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        if origin is None or origin in self.allowed_origins:
            await self.app(scope, receive, send)
            return

        logger.warning("Rejected request from origin %r to %s", origin, scope.get("path"))
        response = error_response(AuthError("Origin not allowed"))
        await response(scope, receive, send)


class BodySizeLimitMiddleware:
    """Cap request bodies at ``max_bytes``.

    A declared Content-Length over the cap is refused before anything is
    read; a streamed body is counted as it arrives.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > self.max_bytes:
            logger.warning("Rejected %s-byte body to %s", content_length, scope.get("path"))
            response = error_response(PayloadTooLargeError())
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    # FastAPI re-raises HTTPException from body parsing, so the
                    # app's handler turns this into a 413 JSON response.
                    raise HTTPException(status_code=413, detail=PayloadTooLargeError.message)
            return message

        await self.app(scope, limited_receive, send)


class UnhandledErrorMiddleware:
    """Turn unexpected exceptions into the generic 500 JSON response.

    Sits inside the CORS and security-header layers so the 500 carries the
    same headers as every other response. Details go to the log only.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception:
            # Too late to replace a response that is already on the wire.
            if response_started:
                raise
            logger.exception("Unhandled error on %s %s", scope.get("method"), scope.get("path"))
            response = error_response(InternalError())
            await response(scope, receive, send)
