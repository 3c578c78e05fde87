"""Authentication endpoints."""

from __future__ import annotations

import logging
import secrets

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse

from app.config import settings
from app.dependencies import (
    OAUTH_STATE_COOKIE,
    clear_session_cookie,
    get_db_client,
    get_mailer,
    get_oauth_http,
    get_optional_identity,
    get_session_token,
    set_session_cookie,
)
from app.schemas.auth import (
    AuthUserResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionStatusResponse,
)
from app.schemas.user import SessionIdentity
from app.services.auth_service import AuthService
from app.services.common import SupabaseService, public_user
from app.services.mail_service import MailService
from app.services.oauth_service import OAuthService
from app.services.session_service import SessionService
from app.utils.errors import AppError, UnauthorizedError
from supabase import Client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=201, response_model=AuthUserResponse)
def register(
    payload: RegisterRequest,
    response: Response,
    client: Client = Depends(get_db_client),
) -> dict:
    """Create a local account and sign it in."""
    user = AuthService(client).register(payload.name, payload.email, payload.password)
    set_session_cookie(response, SessionService(client).create(user))
    return {"message": "Registration successful", "user": public_user(user)}


@router.post("/login", response_model=AuthUserResponse)
def login(
    payload: LoginRequest,
    response: Response,
    client: Client = Depends(get_db_client),
) -> dict:
    """Sign in with email and password."""
    user = AuthService(client).login(payload.email, payload.password)
    set_session_cookie(response, SessionService(client).create(user))
    return {"message": "Login successful", "user": public_user(user)}


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    client: Client = Depends(get_db_client),
    mailer: MailService = Depends(get_mailer),
) -> dict:
    """Start a password reset without revealing whether the email exists."""
    result = AuthService(client, mailer=mailer).forgot_password(payload.email)
    reset_url = result.reset_url if settings.expose_reset_links else None
    return {"message": result.message, "reset_url": reset_url}


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    client: Client = Depends(get_db_client),
) -> dict:
    """Complete a password reset with a mailed token."""
    AuthService(client).reset_password(payload.token, payload.password)
    return {"message": "Password reset successful"}


@router.get("/login/success", response_model=SessionStatusResponse)
def login_success(
    identity: SessionIdentity | None = Depends(get_optional_identity),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return the signed-in user, reloaded from storage, or 401."""
    if identity is None:
        raise UnauthorizedError("Not authenticated")
    user = SupabaseService(client).find_one("users", {"id": identity.id})
    if user is None:
        raise UnauthorizedError("Not authenticated")
    return {"success": True, "user": public_user(user)}


@router.get("/logout")
def logout(
    token: str | None = Depends(get_session_token),
    client: Client = Depends(get_db_client),
) -> RedirectResponse:
    """Destroy the session server-side and clear the cookie."""
    SessionService(client).destroy(token)
    response = RedirectResponse(f"{settings.frontend_url}/", status_code=302)
    clear_session_cookie(response)
    return response


@router.get("/{provider}")
def oauth_start(
    provider: str,
    http: httpx.Client = Depends(get_oauth_http),
) -> RedirectResponse:
    """Redirect to the provider's consent screen."""
    state = secrets.token_urlsafe(16)
    url = OAuthService(http).authorization_url(provider, state)
    response = RedirectResponse(url, status_code=302)
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=f"{provider}:{state}",
        max_age=settings.oauth_state_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/auth",
    )
    return response


@router.get("/{provider}/callback")
def oauth_callback(
    provider: str,
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    http: httpx.Client = Depends(get_oauth_http),
    client: Client = Depends(get_db_client),
) -> RedirectResponse:
    """Finish the OAuth handshake and sign the resolved user in."""
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    failure = RedirectResponse(f"{settings.frontend_url}/login", status_code=302)
    failure.delete_cookie(OAUTH_STATE_COOKIE, path="/auth")

    if error:
        logger.warning("%s login error: %s", provider, error)
        return failure
    if not code or not state or expected_state != f"{provider}:{state}":
        logger.warning("%s callback rejected: missing code or state mismatch", provider)
        return failure

    try:
        profile = OAuthService(http).authenticate(provider, code)
        user = AuthService(client).resolve_oauth_user(profile)
        token = SessionService(client).create(user)
    except AppError as exc:
        logger.warning("%s callback failed: %s", provider, exc.message)
        return failure

    response = RedirectResponse(f"{settings.frontend_url}/dashboard", status_code=302)
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/auth")
    set_session_cookie(response, token)
    return response
