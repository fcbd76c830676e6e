"""Simple8 auth API - registration with admin approval, login and password recovery."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import Settings, get_settings
from app.database import init_db
from app.errors import GENERIC_ERROR_MESSAGE, AppError, ConfigurationError, StoreError
from app.routers import auth_router
from app.services.auth import MSG_MISSING_FIELDS

# Logging
logger = logging.getLogger("simple8_auth")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Refuse to start with unusable settings, then make sure the tables exist."""
    settings: Settings = app.state.settings
    problems = settings.validate()
    if problems:
        for problem in problems:
            logger.error("Configuration: %s", problem)
        raise ConfigurationError("; ".join(problems))
    if not settings.JWT_SECRET:
        logger.warning("JWT_SECRET is not set - using the development signing key")
    if not settings.smtp_configured:
        logger.info("SMTP is not configured - outbound mail is disabled")
    init_db()
    logger.info("Auth backend ready (env=%s, cors=%s)", settings.APP_ENV, settings.CORS_MODE)
    yield


# --- Error responder middleware ---
class ErrorResponderMiddleware(BaseHTTPMiddleware):
    """Turn anything the exception handlers did not render into the generic 500.

    Sits inside CORSMiddleware so browsers can read the body.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.exception("[%s] unhandled error", request.url.path)
            return JSONResponse(status_code=500, content={"message": GENERIC_ERROR_MESSAGE})


# --- Preflight middleware ---
class PreflightMiddleware(BaseHTTPMiddleware):
    """Answer every OPTIONS request with 204 and no body, keeping any CORS headers."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method != "OPTIONS":
            return await call_next(request)
        response = await call_next(request)
        headers = {
            key: value for key, value in response.headers.items() if key.lower().startswith("access-control-")
        }
        if "vary" in response.headers:
            headers["vary"] = response.headers["vary"]
        return Response(status_code=204, headers=headers)


# --- Request logging middleware ---
class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        status_code, length = 500, "-"
        try:
            response = await call_next(request)
            status_code = response.status_code
            length = response.headers.get("content-length", "-")
            return response
        finally:
            logger.info(
                "%s %s %d %s - %.1f ms",
                request.method,
                request.url.path,
                status_code,
                length,
                (time.time() - start) * 1000,
            )


def cors_options(settings: Settings) -> dict:
    """CORSMiddleware arguments for the configured CORS mode."""
    if settings.CORS_MODE == "allowlist":
        return {"allow_origins": list(settings.CORS_ORIGINS), "allow_credentials": True}
    return {"allow_origins": ["*"], "allow_credentials": False}


# --- Error responders: every failure is {"message": ...} ---
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("[%s] %s", request.url.path, exc, exc_info=exc.cause)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("[%s] rejected body: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"message": MSG_MISSING_FIELDS})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: nothing reaches the transport unformatted."""
    logger.exception("[%s] unhandled error", request.url.path)
    return JSONResponse(status_code=500, content={"message": GENERIC_ERROR_MESSAGE})


def health_check() -> dict:
    """Liveness probe."""
    return {"ok": True}


def create_app(settings: Settings) -> FastAPI:
    """Build the application for the given settings."""
    app = FastAPI(title="Simple8 Auth", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    # Last added runs first: logging wraps preflight, which wraps CORS, which wraps the error responder.
    app.add_middleware(ErrorResponderMiddleware)
    app.add_middleware(CORSMiddleware, allow_methods=["*"], allow_headers=["*"], **cors_options(settings))
    app.add_middleware(PreflightMiddleware)
    app.add_middleware(RequestLogMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth_router)
    app.add_api_route("/api/health", health_check, methods=["GET", "POST"])
    return app


app = create_app(get_settings())


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT)
