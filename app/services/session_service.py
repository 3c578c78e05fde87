"""Server-side session store backed by the ``sessions`` table."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Any

from app.config import settings
from app.schemas.user import SessionIdentity
from app.services.common import SupabaseService
from app.utils.time import is_expired, now_utc, parse_timestamp, seconds_from_now, to_iso
from supabase import Client

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """Return the storage key for an opaque token, keyed by the session secret."""
    key = settings.session_secret.encode("utf-8")
    return hmac.new(key, token.encode("utf-8"), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class ResolvedSession:
    """A live session looked up from a cookie value."""

    token: str
    identity: SessionIdentity
    refreshed: bool = False


class SessionService:
    """Create, resolve, refresh and destroy cookie-keyed sessions.

    Only a hash of the cookie value is stored, so a leaked table dump cannot
    be replayed as cookies.
    """

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def create(self, user: dict[str, Any]) -> str:
        """Start a session for ``user`` and return the raw cookie token."""
        identity = SessionIdentity(
            id=str(user["id"]),
            name=user["name"],
            email=user["email"],
            provider=user["provider"],
            avatar_url=user.get("avatar_url"),
        )
        token = secrets.token_urlsafe(32)
        now = now_utc()
        self.db.insert_one(
            "sessions",
            {
                "id": hash_token(token),
                "user_id": identity.id,
                "data": identity.model_dump(),
                "expires_at": to_iso(seconds_from_now(settings.session_ttl_seconds)),
                "last_seen_at": to_iso(now),
            },
        )
        logger.info("Session started for user %s", identity.id)
        return token

    def resolve(self, token: str | None) -> ResolvedSession | None:
        """Return the live session for ``token`` or None.

        Expired rows are removed on sight. A session touched more than
        ``session_touch_after_seconds`` ago gets its expiry pushed forward.
        """
        if not token:
            return None

        session_id = hash_token(token)
        row = self.db.find_one("sessions", {"id": session_id})
        if row is None:
            return None

        now = now_utc()
        if is_expired(row.get("expires_at"), now):
            self.db.delete("sessions", {"id": session_id})
            return None

        identity = SessionIdentity.model_validate(row["data"])
        last_seen = parse_timestamp(row.get("last_seen_at"))
        refreshed = False
        idle_seconds = (now - last_seen).total_seconds() if last_seen else None
        if idle_seconds is None or idle_seconds >= settings.session_touch_after_seconds:
            self.db.update(
                "sessions",
                {"id": session_id},
                {
                    "expires_at": to_iso(seconds_from_now(settings.session_ttl_seconds)),
                    "last_seen_at": to_iso(now),
                },
            )
            refreshed = True

        return ResolvedSession(token=token, identity=identity, refreshed=refreshed)

    def destroy(self, token: str | None) -> None:
        """Remove the session for ``token`` if it exists."""
        if not token:
            return
        self.db.delete("sessions", {"id": hash_token(token)})

    def destroy_for_user(self, user_id: str) -> int:
        """Remove every session belonging to ``user_id``."""
        return len(self.db.delete("sessions", {"user_id": user_id}))

    def purge_expired(self) -> int:
        """Delete expired sessions and return how many were removed."""
        removed = self.db.delete_before("sessions", "expires_at", to_iso(now_utc()))
        return len(removed)
