"""Account registration, credential checks, OAuth resolution and password resets."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any

from app.config import settings
from app.services.common import SupabaseService, normalize_email
from app.services.mail_service import MailService
from app.services.oauth_service import OAuthProfile
from app.services.session_service import SessionService, hash_token
from app.utils.errors import ConflictError, InvalidInputError, UnauthorizedError
from app.utils.passwords import (
    MIN_PASSWORD_LENGTH,
    hash_password,
    needs_rehash,
    verify_password,
)
from app.utils.time import is_expired, now_utc, seconds_from_now, to_iso
from supabase import Client

logger = logging.getLogger(__name__)

GENERIC_RESET_MESSAGE = "If the email exists, a reset link will be sent"
INVALID_CREDENTIALS = "Invalid credentials"
INVALID_RESET_TOKEN = "Token invalid or expired"


@dataclass(frozen=True)
class ForgotPasswordResult:
    """Outcome of a reset request; ``reset_url`` is set only when one was issued."""

    message: str
    reset_url: str | None = None


class AuthService:
    """User identity lifecycle backed by the ``users`` table."""

    def __init__(self, client: Client, mailer: MailService | None = None) -> None:
        self.db = SupabaseService(client)
        self.mailer = mailer or MailService()

    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        """Create a local account and return the stored user row."""
        name = name.strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise InvalidInputError("All fields are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        if self.db.find_user_by_email(email) is not None:
            raise ConflictError("Email already registered", code="EMAIL_TAKEN")

        try:
            user = self.db.insert_one(
                "users",
                {
                    "name": name,
                    "email": email,
                    "password_hash": hash_password(password),
                    "provider": "local",
                    "provider_id": None,
                    "avatar_url": "",
                    "profile_url": "",
                    "has_voted": False,
                    "voted_at": None,
                    "voted_for": None,
                },
            )
        except ConflictError as exc:
            # Lost a race with a concurrent registration for the same email.
            raise ConflictError("Email already registered", code="EMAIL_TAKEN") from exc

        logger.info("Registered local user %s", user["id"])
        return user

    def login(self, email: str, password: str) -> dict[str, Any]:
        """Return the user for valid local credentials.

        Unknown emails, OAuth-only accounts and wrong passwords all fail the
        same way.
        """
        email = normalize_email(email)
        if not email or not password:
            raise InvalidInputError("Email and password required")

        user = self.db.find_user_by_email(email)
        if user is None or not verify_password(password, user.get("password_hash")):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if needs_rehash(user["password_hash"]):
            user = self._update_user(user, {"password_hash": hash_password(password)})
            logger.info("Upgraded password hash for user %s", user["id"])

        logger.info("Local login for user %s", user["id"])
        return user

    def forgot_password(self, email: str) -> ForgotPasswordResult:
        """Issue a single-use reset token and mail the link."""
        email = normalize_email(email)
        if not email:
            raise InvalidInputError("Email is required")

        user = self.db.find_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return ForgotPasswordResult(GENERIC_RESET_MESSAGE)

        provider = user["provider"]
        if provider != "local":
            logger.info("Password reset requested for %s account %s", provider, user["id"])
            raise InvalidInputError(
                f"This account was created using {provider}. "
                f"Please sign in with {provider} instead."
            )

        token = secrets.token_hex(32)
        self.db.update(
            "users",
            {"id": user["id"]},
            {
                "reset_token_hash": hash_token(token),
                "reset_token_expires_at": to_iso(
                    seconds_from_now(settings.password_reset_ttl_seconds)
                ),
            },
        )

        reset_url = f"{settings.frontend_url}/login?resetToken={token}"
        self.mailer.send_password_reset(user["email"], user["name"], reset_url)
        return ForgotPasswordResult(GENERIC_RESET_MESSAGE, reset_url=reset_url)

    def reset_password(self, token: str, password: str) -> None:
        """Replace the password for a valid, unexpired, unused token."""
        if not token or len(password or "") < MIN_PASSWORD_LENGTH:
            raise InvalidInputError("Invalid request")

        token_hash = hash_token(token)
        user = self.db.find_one("users", {"reset_token_hash": token_hash})
        if user is None or is_expired(user.get("reset_token_expires_at")):
            raise InvalidInputError(INVALID_RESET_TOKEN)

        # Guarding on the token hash makes consumption single-use even when two
        # requests race with the same token.
        updated = self.db.update(
            "users",
            {"id": user["id"], "reset_token_hash": token_hash},
            {
                "password_hash": hash_password(password),
                "reset_token_hash": None,
                "reset_token_expires_at": None,
            },
        )
        if not updated:
            raise InvalidInputError(INVALID_RESET_TOKEN)

        revoked = SessionService(self.db.client).destroy_for_user(user["id"])
        logger.info(
            "Password reset completed for user %s; %d session(s) revoked", user["id"], revoked
        )

    def purge_expired_reset_tokens(self) -> int:
        """Clear reset tokens whose expiry has passed."""
        query = (
            self.db.client.table("users")
            .update({"reset_token_hash": None, "reset_token_expires_at": None})
            .lt("reset_token_expires_at", to_iso(now_utc()))
        )
        return len(self.db.execute(query, default=[]))

    def resolve_oauth_user(self, profile: OAuthProfile) -> dict[str, Any]:
        """Find, link or create the user behind an OAuth profile.

        Precedence: provider + provider id, then email (linking the existing
        account to this provider), then a new account. An email the provider
        reports as unverified is never used to link or stored.
        """
        user = self.db.find_one(
            "users",
            {"provider": profile.provider, "provider_id": profile.provider_id},
        )
        if user is not None:
            changes: dict[str, Any] = {}
            if profile.avatar_url and user.get("avatar_url") != profile.avatar_url:
                changes["avatar_url"] = profile.avatar_url
            if profile.profile_url and not user.get("profile_url"):
                changes["profile_url"] = profile.profile_url
            if changes:
                user = self._update_user(user, changes)
            logger.info("OAuth login for existing %s user %s", profile.provider, user["id"])
            return user

        email = normalize_email(profile.email or "")
        if profile.email_verified is False:
            logger.warning(
                "%s user %s has an unverified email; not linking by email",
                profile.provider,
                profile.provider_id,
            )
            email = ""
        if email:
            user = self.db.find_user_by_email(email)
            if user is not None:
                changes = {
                    "provider": profile.provider,
                    "provider_id": profile.provider_id,
                }
                if profile.avatar_url:
                    changes["avatar_url"] = profile.avatar_url
                if profile.profile_url and not user.get("profile_url"):
                    changes["profile_url"] = profile.profile_url
                user = self._update_user(user, changes)
                logger.info("Linked user %s to %s", user["id"], profile.provider)
                return user
        else:
            email = f"{profile.provider_id}@{profile.provider}.invalid".lower()

        try:
            user = self.db.insert_one(
                "users",
                {
                    "name": profile.name,
                    "email": email,
                    "password_hash": None,
                    "provider": profile.provider,
                    "provider_id": profile.provider_id,
                    "avatar_url": profile.avatar_url,
                    "profile_url": profile.profile_url,
                    "has_voted": False,
                    "voted_at": None,
                    "voted_for": None,
                },
            )
        except ConflictError:
            # A concurrent callback created the account first.
            existing = self.db.find_user_by_email(email)
            if existing is None:
                raise
            return existing

        if not profile.profile_url and profile.provider == "linkedin":
            logger.info("New LinkedIn user %s has no profile URL yet", user["id"])
        logger.info("Created %s user %s", profile.provider, user["id"])
        return user

    def _update_user(self, user: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
        rows = self.db.update("users", {"id": user["id"]}, changes)
        if rows:
            return rows[0]
        return {**user, **changes}
