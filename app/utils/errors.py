"""Custom exception hierarchy for the E-Ballot API."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base application error with a stable machine-readable code."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error in the API standard shape."""
        return {"error": self.message, "code": self.code, **self.extra}


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str) -> None:
        super().__init__(message=f"{resource} not found", code="NOT_FOUND", status_code=404)


class ProfileUrlRequiredError(AppError):
    """Raised when a vote is attempted without a professional profile URL on file."""

    def __init__(self) -> None:
        super().__init__(
            message="Please add your LinkedIn profile URL before voting",
            code="PROFILE_URL_REQUIRED",
            status_code=403,
            extra={"requires_profile_url": True},
        )


class ConflictError(AppError):
    """Raised on duplicate/conflicting operations."""

    def __init__(self, reason: str, code: str = "CONFLICT") -> None:
        super().__init__(message=reason, code=code, status_code=409)


class AlreadyVotedError(AppError):
    """Raised when the caller has already cast their vote."""

    def __init__(self) -> None:
        super().__init__(
            message="You have already cast your vote",
            code="ALREADY_VOTED",
            status_code=400,
        )


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    def __init__(self, reason: str = "Unauthorized") -> None:
        super().__init__(message=reason, code="UNAUTHORIZED", status_code=401)


class InvalidInputError(AppError):
    """Raised for request payload or parameter validation issues."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="INVALID_INPUT", status_code=400)


class ServiceUnavailableError(AppError):
    """Raised when a backing service (database, provider) cannot be reached."""

    def __init__(self, reason: str = "Service temporarily unavailable, please retry later") -> None:
        super().__init__(message=reason, code="SERVICE_UNAVAILABLE", status_code=503)
