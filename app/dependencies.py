"""FastAPI dependency injection helpers."""

from __future__ import annotations

from functools import lru_cache

import httpx
from fastapi import Depends, Request, Response

from app.config import settings
from app.schemas.user import SessionIdentity
from app.services.mail_service import MailService
from app.services.session_service import SessionService
from app.utils.errors import UnauthorizedError
from app.utils.supabase_client import get_service_client
from supabase import Client

OAUTH_STATE_COOKIE = "eballot.oauth_state"


def get_db_client() -> Client:
    """Return the Supabase client used by backend services."""
    return get_service_client()


@lru_cache(maxsize=1)
def _oauth_http_client() -> httpx.Client:
    return httpx.Client(timeout=httpx.Timeout(max(1, settings.oauth_http_timeout_seconds)))


def get_oauth_http() -> httpx.Client:
    """Return the shared HTTP client for OAuth provider calls."""
    return _oauth_http_client()


def get_mailer() -> MailService:
    """Return the outbound mail service."""
    return MailService(settings)


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session cookie with the configured security attributes."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie on the client."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        path="/",
    )


def get_session_token(request: Request) -> str | None:
    """Return the raw session cookie value, if any."""
    return request.cookies.get(settings.session_cookie_name)


def get_optional_identity(
    response: Response,
    token: str | None = Depends(get_session_token),
    client: Client = Depends(get_db_client),
) -> SessionIdentity | None:
    """Resolve the session cookie to an identity, or None when signed out.

    A refreshed session also re-issues the cookie so the browser-side expiry
    slides with server-side activity.
    """
    session = SessionService(client).resolve(token)
    if session is None:
        return None
    if session.refreshed:
        set_session_cookie(response, session.token)
    return session.identity


def get_current_identity(
    identity: SessionIdentity | None = Depends(get_optional_identity),
) -> SessionIdentity:
    """Return the caller's identity or raise 401."""
    if identity is None:
        raise UnauthorizedError("Please login to continue")
    return identity
