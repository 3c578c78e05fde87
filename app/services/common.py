"""Shared Supabase data access helpers."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from postgrest import APIError

from app.config import settings
from app.utils.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    ServiceUnavailableError,
)
from supabase import Client

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODE = "23505"
# Raised by Postgres for a malformed literal, e.g. a non-uuid id.
INVALID_TEXT_REPRESENTATION_CODE = "22P02"
# Rows requested per page; PostgREST may still return fewer (``max_rows``).
PAGE_SIZE = 1000

# Columns safe to return to the account owner.
USER_PUBLIC_COLUMNS = (
    "id,name,email,provider,avatar_url,profile_url,has_voted,voted_at,voted_for,created_at"
)
# Columns safe to return to anyone.
VOTER_COLUMNS = "id,name,avatar_url,voted_at,profile_url"


def is_unique_violation(exc: APIError) -> bool:
    """Return True when a write failed on a unique constraint."""
    message = str(getattr(exc, "message", "")).lower()
    code = str(getattr(exc, "code", "")).lower()
    return "duplicate key value" in message or code == UNIQUE_VIOLATION_CODE


class SupabaseService:
    """Thin helper wrapper around a Supabase client."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def run(self, query):
        """Execute a Supabase query and return the raw response.

        Database diagnostics are logged, never returned to the caller.
        """
        started = time.perf_counter()
        try:
            response = query.execute()
        except APIError as exc:
            if is_unique_violation(exc):
                raise ConflictError("Record already exists") from exc
            logger.error(
                "Supabase query rejected: code=%s message=%s",
                getattr(exc, "code", None),
                getattr(exc, "message", exc),
            )
            if str(getattr(exc, "code", "")) == INVALID_TEXT_REPRESENTATION_CODE:
                raise NotFoundError("Record") from exc
            raise InvalidInputError("Database request failed") from exc
        except httpx.HTTPError as exc:
            logger.error("Supabase request failed: %s", exc)
            raise ServiceUnavailableError() from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        threshold_ms = settings.slow_query_log_threshold_ms
        if threshold_ms > 0 and elapsed_ms >= threshold_ms:
            logger.warning("Slow Supabase query %.1fms", elapsed_ms)
        return response

    def execute(self, query, default: Any = None) -> Any:
        """Execute a Supabase query and return its rows."""
        data = self.run(query).data
        return default if data is None and default is not None else data

    def select_one(
        self,
        table: str,
        filters: dict[str, Any],
        columns: str = "*",
        not_found_label: str | None = None,
    ) -> dict[str, Any]:
        """Select a single row and raise NotFoundError when missing."""
        row = self.find_one(table, filters, columns)
        if row is None:
            raise NotFoundError(not_found_label or table)
        return row

    def find_one(
        self,
        table: str,
        filters: dict[str, Any],
        columns: str = "*",
    ) -> dict[str, Any] | None:
        """Select a single row, returning None when missing."""
        query = self.client.table(table).select(columns)
        for key, value in filters.items():
            query = query.eq(key, value)
        rows = self.execute(query.limit(1), default=[])
        return rows[0] if rows else None

    def select_many(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Select every matching row, paging past the server's row cap.

        Pages are ordered by ``order_by`` with ``id`` as tie-breaker so rows
        neither repeat nor go missing between pages.
        """
        rows: list[dict[str, Any]] = []
        total: int | None = None
        while total is None or len(rows) < total:
            query = self.client.table(table).select(columns, count="exact")
            for key, value in (filters or {}).items():
                query = query.eq(key, value)
            if order_by:
                query = query.order(order_by, desc=descending)
            query = query.order("id").range(len(rows), len(rows) + PAGE_SIZE - 1)

            response = self.run(query)
            page = response.data or []
            if response.count is not None:
                total = response.count
            if not page:
                break
            rows.extend(page)
            if total is None and len(page) < PAGE_SIZE:
                break
        return rows

    def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Return the exact number of rows matching every equality filter."""
        query = self.client.table(table).select("id", count="exact", head=True)
        for key, value in (filters or {}).items():
            query = query.eq(key, value)
        return int(self.run(query).count or 0)

    def insert_one(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return the created object."""
        rows = self.execute(self.client.table(table).insert(payload), default=[])
        if not rows:
            raise InvalidInputError(f"Failed to insert into {table}")
        return rows[0]

    def insert_many(self, table: str, payloads: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert many rows and return inserted rows."""
        if not payloads:
            return []
        return self.execute(self.client.table(table).insert(payloads), default=[])

    def update(
        self,
        table: str,
        filters: dict[str, Any],
        payload: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Update rows matching every equality filter and return the updated rows.

        The filters are applied by the database in the same statement as the
        write, so adding a guard column (for example ``has_voted=False``) turns
        this into a compare-and-set: an empty result means the guard no longer
        held and nothing was written.
        """
        query = self.client.table(table).update(payload)
        for key, value in filters.items():
            query = query.eq(key, value)
        return self.execute(query, default=[])

    def delete(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """Delete rows by equality filters and return removed rows."""
        query = self.client.table(table).delete()
        for key, value in filters.items():
            query = query.eq(key, value)
        return self.execute(query, default=[])

    def delete_before(self, table: str, column: str, cutoff: str) -> list[dict[str, Any]]:
        """Delete rows whose ``column`` is strictly earlier than ``cutoff``."""
        query = self.client.table(table).delete().lt(column, cutoff)
        return self.execute(query, default=[])

    def get_user(self, user_id: str, columns: str = "*") -> dict[str, Any]:
        """Return a user record or raise NotFoundError."""
        return self.select_one("users", {"id": user_id}, columns=columns, not_found_label="User")

    def find_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Return the user owning ``email`` (case-insensitive), if any."""
        return self.find_one("users", {"email": normalize_email(email)})


def normalize_email(email: str) -> str:
    """Normalize an email for storage and lookup."""
    return email.strip().lower()


def public_user(row: dict[str, Any]) -> dict[str, Any]:
    """Project a user row onto the fields the account owner may see."""
    return {key: row.get(key) for key in USER_PUBLIC_COLUMNS.split(",")}
