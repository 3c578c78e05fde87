"""Background job modules for periodic housekeeping."""

from app.jobs.housekeeping import purge_expired_reset_tokens, purge_expired_sessions

__all__ = [
    "purge_expired_reset_tokens",
    "purge_expired_sessions",
]
