"""Authentication request and response schemas."""

from pydantic import BaseModel

from app.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """Request body for local registration."""

    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    """Request body for local login."""

    email: str = ""
    password: str = ""


class ForgotPasswordRequest(BaseModel):
    """Request body for starting a password reset."""

    email: str = ""


class ResetPasswordRequest(BaseModel):
    """Request body for completing a password reset."""

    token: str = ""
    password: str = ""


class AuthUserResponse(BaseModel):
    """Envelope for endpoints that return the signed-in user."""

    message: str
    user: UserResponse


class SessionStatusResponse(BaseModel):
    """Session probe result."""

    success: bool
    user: UserResponse


class MessageResponse(BaseModel):
    """Generic message envelope.

    ``reset_url`` is only populated when reset links are explicitly exposed
    for local development.
    """

    message: str
    reset_url: str | None = None
