"""API router package."""

from app.routers import auth, voting

__all__ = [
    "auth",
    "voting",
]
