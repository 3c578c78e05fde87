"""Time utility helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def now_utc() -> datetime:
    """Return current timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def to_iso(value: datetime) -> str:
    """Serialize a datetime as an ISO-8601 UTC string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a stored timestamp into an aware datetime, or None."""
    if not value:
        return None

    if isinstance(value, str):
        normalized = value.replace("Z", "+00:00")
        parsed = datetime.fromisoformat(normalized)
    else:
        parsed = value

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def is_expired(value: str | datetime | None, now: datetime | None = None) -> bool:
    """Return True when ``value`` is missing or not strictly in the future."""
    expires_at = parse_timestamp(value)
    if expires_at is None:
        return True
    return expires_at <= (now or now_utc())


def seconds_from_now(seconds: int) -> datetime:
    """Return an aware datetime ``seconds`` in the future."""
    return now_utc() + timedelta(seconds=seconds)
