"""Expired session and reset-token cleanup."""

from __future__ import annotations

import logging

from app.services.auth_service import AuthService
from app.services.session_service import SessionService
from app.utils.supabase_client import get_service_client

logger = logging.getLogger(__name__)


async def purge_expired_sessions() -> None:
    """Delete sessions whose sliding expiry has passed."""
    removed = SessionService(get_service_client()).purge_expired()
    logger.info("purge_expired_sessions removed %s sessions", removed)


async def purge_expired_reset_tokens() -> None:
    """Clear password-reset tokens that can no longer be redeemed."""
    cleared = AuthService(get_service_client()).purge_expired_reset_tokens()
    logger.info("purge_expired_reset_tokens cleared %s tokens", cleared)
