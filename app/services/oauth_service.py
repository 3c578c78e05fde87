"""OAuth 2.0 authorization-code flow for Google and LinkedIn."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from app.config import Settings, settings
from app.utils.errors import NotFoundError, UnauthorizedError
from app.utils.profile_url import extract_linkedin_profile_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthProvider:
    """Static endpoints and credentials for one provider."""

    name: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scopes: tuple[str, ...]
    client_id: str
    client_secret: str
    callback_url: str

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class OAuthProfile:
    """Provider identity normalized across providers."""

    provider: str
    provider_id: str
    name: str
    email: str | None
    avatar_url: str
    profile_url: str
    # None when the provider does not say whether the email was verified.
    email_verified: bool | None = None


def build_providers(config: Settings) -> dict[str, OAuthProvider]:
    """Return the provider registry for ``config``."""
    return {
        "google": OAuthProvider(
            name="google",
            authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",
            userinfo_url="https://openidconnect.googleapis.com/v1/userinfo",
            scopes=("openid", "email", "profile"),
            client_id=config.google_client_id,
            client_secret=config.google_client_secret,
            callback_url=config.google_callback_url,
        ),
        "linkedin": OAuthProvider(
            name="linkedin",
            authorize_url="https://www.linkedin.com/oauth/v2/authorization",
            token_url="https://www.linkedin.com/oauth/v2/accessToken",
            userinfo_url="https://api.linkedin.com/v2/userinfo",
            scopes=("openid", "profile", "email"),
            client_id=config.linkedin_client_id,
            client_secret=config.linkedin_client_secret,
            callback_url=config.linkedin_callback_url,
        ),
    }


class OAuthService:
    """Build consent redirects and turn callback codes into profiles."""

    def __init__(self, http: httpx.Client, config: Settings | None = None) -> None:
        self.http = http
        self.providers = build_providers(config or settings)

    def provider(self, name: str) -> OAuthProvider:
        """Return a configured provider or raise NotFoundError."""
        provider = self.providers.get(name)
        if provider is None or not provider.configured:
            raise NotFoundError("Authentication provider")
        return provider

    def authorization_url(self, name: str, state: str) -> str:
        """Return the consent-screen URL for ``name``."""
        provider = self.provider(name)
        params = {
            "client_id": provider.client_id,
            "response_type": "code",
            "redirect_uri": provider.callback_url,
            "scope": " ".join(provider.scopes),
            "state": state,
        }
        return f"{provider.authorize_url}?{urlencode(params)}"

    def exchange_code(self, name: str, code: str) -> str:
        """Exchange an authorization code for an access token."""
        provider = self.provider(name)
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": provider.callback_url,
            "client_id": provider.client_id,
            "client_secret": provider.client_secret,
        }
        try:
            response = self.http.post(
                provider.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("%s token request failed: %s", provider.name, exc)
            raise UnauthorizedError("Authentication failed") from exc

        if response.status_code != 200:
            logger.warning(
                "%s token exchange failed: %s %s",
                provider.name,
                response.status_code,
                _error_detail(response),
            )
            raise UnauthorizedError("Authentication failed")

        access_token = _json_object(provider.name, "token", response).get("access_token")
        if not access_token:
            raise UnauthorizedError("Authentication failed")
        return str(access_token)

    def fetch_profile(self, name: str, access_token: str) -> OAuthProfile:
        """Fetch and normalize the provider's userinfo document."""
        provider = self.provider(name)
        try:
            response = self.http.get(
                provider.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("%s userinfo request failed: %s", provider.name, exc)
            raise UnauthorizedError("Authentication failed") from exc

        if response.status_code != 200:
            logger.warning("%s userinfo failed: %s", provider.name, response.status_code)
            raise UnauthorizedError("Authentication failed")

        return normalize_profile(provider.name, _json_object(provider.name, "userinfo", response))

    def authenticate(self, name: str, code: str) -> OAuthProfile:
        """Run the full callback exchange for ``name``."""
        token = self.exchange_code(name, code)
        return self.fetch_profile(name, token)


def normalize_profile(provider: str, userinfo: dict[str, Any]) -> OAuthProfile:
    """Map an OpenID userinfo payload onto :class:`OAuthProfile`."""
    if not isinstance(userinfo, dict):
        raise UnauthorizedError("Authentication failed")
    provider_id = str(userinfo.get("sub") or userinfo.get("id") or "")
    if not provider_id:
        raise UnauthorizedError("Authentication failed")

    email = userinfo.get("email")
    default_name = "LinkedIn User" if provider == "linkedin" else "Google User"
    profile_url = extract_linkedin_profile_url(userinfo) if provider == "linkedin" else ""
    return OAuthProfile(
        provider=provider,
        provider_id=provider_id,
        name=str(userinfo.get("name") or default_name),
        email=str(email) if email else None,
        avatar_url=str(userinfo.get("picture") or ""),
        profile_url=profile_url,
        email_verified=_optional_bool(userinfo.get("email_verified")),
    )


def _json_object(provider: str, endpoint: str, response: httpx.Response) -> dict[str, Any]:
    """Return the JSON object body of a provider response or fail authentication."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        logger.warning("%s %s response was not a JSON object", provider, endpoint)
        raise UnauthorizedError("Authentication failed")
    return payload


def _optional_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    return str(payload.get("error_description") or payload.get("error") or payload)
