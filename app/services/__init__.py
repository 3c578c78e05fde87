"""Domain services: accounts, sessions, OAuth, mail and the ballot."""

from app.services.auth_service import AuthService
from app.services.common import SupabaseService
from app.services.mail_service import MailService
from app.services.oauth_service import OAuthService
from app.services.session_service import SessionService
from app.services.voting_service import VotingService

__all__ = [
    "AuthService",
    "MailService",
    "OAuthService",
    "SessionService",
    "SupabaseService",
    "VotingService",
]
