"""LinkedIn profile URL validation and extraction helpers."""

from __future__ import annotations

import re
from typing import Any

LINKEDIN_PROFILE_PATTERN = re.compile(
    r"^(https?://)?(www\.)?linkedin\.com/(in|pub|company)/.+$",
    re.IGNORECASE,
)

# Opaque member ids LinkedIn sometimes returns in place of a vanity name.
_OPAQUE_ID_PATTERN = re.compile(r"linkedin\.com/in/[0-9a-f-]{20,}$", re.IGNORECASE)
_SHORT_ID_PATTERN = re.compile(r"linkedin\.com/in/([a-zA-Z0-9]{1,15})$")
_VANITY_PATTERN = re.compile(r"linkedin\.com/in/[a-z][a-z0-9-]+$")


def is_valid_profile_url(url: str | None) -> bool:
    """Return True when ``url`` looks like a LinkedIn profile/company URL."""
    if not url or not url.strip():
        return False
    return bool(LINKEDIN_PROFILE_PATTERN.match(url.strip()))


def absolute_profile_url(url: str) -> str:
    """Prefix a scheme-less profile URL with https."""
    value = url.strip()
    if not value.lower().startswith(("http://", "https://")):
        value = f"https://{value}"
    return value


def looks_like_opaque_member_id(url: str | None) -> bool:
    """Return True for stored URLs that carry an internal id, not a vanity name."""
    if not url:
        return False
    if "-" in url and _OPAQUE_ID_PATTERN.search(url):
        return True
    match = _SHORT_ID_PATTERN.search(url)
    if not match:
        return False
    slug = match.group(1)
    has_upper = any(ch.isupper() for ch in slug)
    has_lower = any(ch.islower() for ch in slug)
    return has_upper and has_lower and not _VANITY_PATTERN.search(url)


def extract_linkedin_profile_url(userinfo: dict[str, Any]) -> str:
    """Best-effort mapping of a LinkedIn userinfo payload to a profile URL.

    LinkedIn's OpenID userinfo does not reliably include the public profile,
    so several legacy fields are inspected in order. Anything unusable yields
    an empty string and the user is asked to supply the URL manually.
    """
    for key in ("profile", "publicProfileUrl"):
        candidate = userinfo.get(key)
        if isinstance(candidate, str) and is_valid_profile_url(candidate):
            return absolute_profile_url(candidate)

    vanity_name = userinfo.get("vanityName")
    if isinstance(vanity_name, str) and vanity_name.strip():
        candidate = f"https://www.linkedin.com/in/{vanity_name.strip()}"
        if not looks_like_opaque_member_id(candidate):
            return candidate

    return ""
