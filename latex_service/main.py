"""FastAPI application entrypoint."""

import logging
import shutil
from http import HTTPStatus

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIASGIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from latex_service.config import get_settings

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

from latex_service.api.limiter import limiter  # noqa: E402
from latex_service.api.routes import compilation, health  # noqa: E402
from latex_service.exceptions import (  # noqa: E402
    AppError,
    AuthError,
    InputError,
    InternalError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitError,
)
from latex_service.middleware import (  # noqa: E402
    BodySizeLimitMiddleware,
    OriginGuardMiddleware,
    SecurityHeadersMiddleware,
    UnhandledErrorMiddleware,
    error_response,
)

_STATUS_ERRORS: dict[int, type[AppError]] = {
    403: AuthError,
    404: NotFoundError,
    413: PayloadTooLargeError,
    429: RateLimitError,
}


def _input_error(errors: list[dict]) -> InputError:
    """Turn pydantic validation errors into one caller-facing InputError."""
    for err in errors:
        err_type = err.get("type")
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        if err_type == "json_invalid":
            return InputError("Request body is not valid JSON")
        # No body at all reads like a missing latex field.
        if not loc and err_type == "missing":
            loc = ["latex"]
        if not loc:
            continue
        field = loc[0]
        if field == "latex":
            if err_type == "missing":
                return InputError(
                    "Please provide a LaTeX string in the request body",
                    error="Missing required field: latex",
                )
            return InputError("LaTeX content must be a non-empty string", error="Invalid LaTeX content")
        if err_type == "missing":
            return InputError(f"Please provide {field} in the request body", error=f"Missing required field: {field}")
        return InputError(err.get("msg", "Invalid value"), error=f"Invalid field: {field}")
    return InputError("Request body must be a JSON object")


def create_app() -> FastAPI:
    settings = get_settings()
    logger.info("LaTeX engine: %s (%s)", settings.engine_label, settings.compiler_executable)
    logger.info("CORS origins: %s", settings.cors_origins)
    if not settings.api_key:
        logger.warning("FLY_API_KEY is not set; /compile accepts requests without an API key")
    if shutil.which(settings.compiler_executable) is None:
        logger.warning("%s not found on PATH; compiles will fail", settings.compiler_executable)

    app = FastAPI(title="LaTeX PDF Service", version="1.0.0")
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded for %s on %s", request.client.host if request.client else "?", request.url.path)
        return error_response(RateLimitError())

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(_input_error(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error_cls = _STATUS_ERRORS.get(exc.status_code)
        if error_cls is not None:
            return error_response(error_cls(), headers=exc.headers)
        phrase = HTTPStatus(exc.status_code).phrase
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": phrase, "message": str(exc.detail or phrase)},
            headers=exc.headers,
        )

    # Last resort for failures in the outer middleware; errors from the
    # routes are answered by UnhandledErrorMiddleware.
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(InternalError())

    # Added innermost first: security headers wrap everything. The rate
    # limiter runs before the body is read, so invalid requests count too.
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(SlowAPIASGIMiddleware)
    app.add_middleware(OriginGuardMiddleware, allowed_origins=settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(health.router)
    app.include_router(compilation.router)
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    logger.info("LaTeX PDF service listening on %s:%d", settings.host, settings.port)
    # Behind Fly.io's proxy the client address comes from X-Forwarded-For.
    uvicorn.run(
        "latex_service.main:app",
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    run()
