"""E-Ballot API application.

Wires the auth and voting routers, the error taxonomy and the housekeeping
scheduler into one FastAPI app. Run locally with ``python -m app.main`` or
``uvicorn app.main:app``.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.config import settings
from app.jobs.scheduler import register_jobs, scheduler
from app.routers import auth, voting
from app.utils.errors import AppError, InvalidInputError
from app.utils.supabase_client import close_service_client
from app.utils.time import now_utc, to_iso

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("app")


def content_security_policy() -> str:
    """Build the CSP header for the configured frontend origins."""
    connect = ["'self'", *settings.origins_list, "https://*.linkedin.com", "https://*.google.com"]
    images = ["'self'", "data:", "https://*.googleusercontent.com", "https://*.licdn.com"]
    directives = {
        "default-src": ["'self'"],
        "connect-src": connect,
        "img-src": images,
        "frame-ancestors": ["'none'"],
    }
    return "; ".join(f"{name} {' '.join(values)}" for name, values in directives.items())


SECURITY_HEADERS = {
    "Content-Security-Policy": content_security_policy(),
    "X-Content-Type-Options": "nosniff",
    "Cross-Origin-Opener-Policy": "same-origin-allow-popups",
    "Cross-Origin-Resource-Policy": "cross-origin",
}


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.is_production and settings.session_secret == "change-me":
        logger.warning("SESSION_SECRET is still the default in production")
    if not settings.mail_configured:
        logger.warning("EMAIL_USER/EMAIL_PASSWORD not set; reset links go to the log")
    if settings.enable_scheduler:
        register_jobs()
        scheduler.start()
        logger.info("Housekeeping scheduler started (%s)", settings.timezone)
    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)
            logger.info("Housekeeping scheduler stopped")
        close_service_client()


app = FastAPI(
    title=settings.app_name,
    description="Single-ballot voting with OAuth and local sign-in",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
# Secure cookies need the original scheme when deployed behind a TLS proxy.
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


@app.middleware("http")
async def request_log(request: Request, call_next):
    """Time each request; debug-log API traffic and warn on slow calls."""
    path = request.url.path
    if path.startswith(("/api", "/auth")):
        logger.debug(
            "%s %s has_session_cookie=%s",
            request.method,
            path,
            settings.session_cookie_name in request.cookies,
        )

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.1f}"

    threshold_ms = settings.slow_request_log_threshold_ms
    if threshold_ms > 0 and elapsed_ms >= threshold_ms:
        logger.warning("Slow request %s %s %.1fms", request.method, path, elapsed_ms)
    return response


@app.exception_handler(AppError)
async def handle_app_error(_: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 INVALID_INPUT, naming the first bad field."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        message = f"{field}: {message}" if field else message
    else:
        message = "Invalid request"
    error = InvalidInputError(message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def handle_unexpected_error(_: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception", exc_info=exc)
    content = {"error": "Internal server error", "code": "INTERNAL_ERROR"}
    if not settings.is_production:
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(voting.router, prefix="/api", tags=["voting"])


@app.get("/", tags=["meta"])
async def root() -> dict[str, str]:
    return {"message": "Backend is running!", "timestamp": to_iso(now_utc())}


@app.get("/health", tags=["meta"])
async def health() -> dict[str, str]:
    """Liveness probe used by deploys and uptime checks."""
    return {"status": "ok", "version": settings.app_version}


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )
