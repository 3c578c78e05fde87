"""User-related schemas."""

from datetime import datetime

from pydantic import BaseModel


class UserResponse(BaseModel):
    """Account representation returned to its owner."""

    id: str
    name: str
    email: str
    provider: str
    avatar_url: str | None = None
    profile_url: str | None = ""
    has_voted: bool = False
    voted_at: datetime | None = None
    voted_for: str | None = None
    created_at: datetime | None = None


class SessionIdentity(BaseModel):
    """Minimal identity serialized into a session row.

    Display fields are a snapshot taken at login; anything that gates a
    business rule is re-read from the users table.
    """

    id: str
    name: str
    email: str
    provider: str
    avatar_url: str | None = None
